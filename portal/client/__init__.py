"""Client-side session and state layer for the portal API.

Typical wiring for one session ("tab")::

    storage = FileTokenStorage("~/.portal/session.json")
    api = ApiClient(API_BASE_URL, storage=storage)
    store = create_store(api)
    sync = SessionSync(store, storage)
    sync.hydrate()
    await store.dispatch(sign_in({"email": ..., "password": ...}))
"""
from .api import ApiClient, ApiError, err
from .store import Store, create_store
from .storage import FileTokenStorage, SessionSync, StorageEvent, TokenStorage
from .status_selector import StatusSelector
from . import actions

__all__ = [
    "ApiClient",
    "ApiError",
    "err",
    "Store",
    "create_store",
    "FileTokenStorage",
    "SessionSync",
    "StorageEvent",
    "TokenStorage",
    "StatusSelector",
    "actions",
]
