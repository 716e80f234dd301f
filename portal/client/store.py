"""Centralized client state.

State shape::

    {
        "session_state": {"token": str | None, "user": dict | None},
        "flash_state": {"msg_green": str, "msg_red": str},
    }

Actions are plain dicts with a ``type`` key. ``Store.dispatch`` also accepts
callables (thunks), invoked as ``thunk(dispatch, get_state, extra)``; whatever
they return (often a coroutine) is handed back to the caller.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from portal.utils import get_logger

logger = get_logger(__name__)

AUTH_USER_SET = "AUTH_USER_SET"
AUTH_TOKEN_SET = "AUTH_TOKEN_SET"
FLASH_GREEN_SET = "FLASH_GREEN_SET"
FLASH_RED_SET = "FLASH_RED_SET"

Reducer = Callable[[Optional[dict], dict], dict]
Listener = Callable[[], None]

SESSION_INITIAL_STATE: dict = {"token": None, "user": None}
FLASH_INITIAL_STATE: dict = {"msg_green": "", "msg_red": ""}


def session_reducer(state: Optional[dict], action: dict) -> dict:
    if state is None:
        state = dict(SESSION_INITIAL_STATE)
    kind = action.get("type")
    if kind == AUTH_TOKEN_SET:
        token = action.get("token")
        if not token:
            # No token means no session; the user goes with it
            return {**state, "token": token, "user": None}
        return {**state, "token": token}
    if kind == AUTH_USER_SET:
        return {**state, "user": action.get("user")}
    return state


def flash_reducer(state: Optional[dict], action: dict) -> dict:
    if state is None:
        state = dict(FLASH_INITIAL_STATE)
    kind = action.get("type")
    if kind == FLASH_GREEN_SET:
        return {**state, "msg_green": action.get("msgGreen") or ""}
    if kind == FLASH_RED_SET:
        return {**state, "msg_red": action.get("msgRed") or ""}
    return state


def combine_reducers(reducers: Dict[str, Reducer]) -> Reducer:
    def combined(state: Optional[dict], action: dict) -> dict:
        state = state or {}
        next_state = {key: reducer(state.get(key), action) for key, reducer in reducers.items()}
        if all(next_state[key] is state.get(key) for key in reducers):
            return state
        return next_state
    return combined


root_reducer = combine_reducers({
    "session_state": session_reducer,
    "flash_state": flash_reducer,
})


class Store:
    def __init__(self, reducer: Reducer = root_reducer, state: Optional[dict] = None, extra: Any = None):
        self._reducer = reducer
        # Run an init action so every slice has its defaults
        self._state = reducer(state, {"type": "@@INIT"})
        self._listeners: List[Listener] = []
        self.extra = extra

    def get_state(self) -> dict:
        return self._state

    def dispatch(self, action: Any) -> Any:
        if callable(action):
            return action(self.dispatch, self.get_state, self.extra)
        if not isinstance(action, dict) or "type" not in action:
            raise TypeError(f"Actions must be dicts with a 'type' key, got {action!r}")

        previous = self._state
        self._state = self._reducer(previous, action)
        logger.debug("Action dispatched", action_type=action["type"])
        if self._state is not previous:
            for listener in list(self._listeners):
                listener()
        return action

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe


def create_store(api: Any = None, state: Optional[dict] = None) -> Store:
    """Store wired with the API client as the thunk ``extra`` argument."""
    return Store(root_reducer, state=state, extra=api)


__all__ = [
    "AUTH_USER_SET",
    "AUTH_TOKEN_SET",
    "FLASH_GREEN_SET",
    "FLASH_RED_SET",
    "session_reducer",
    "flash_reducer",
    "combine_reducers",
    "root_reducer",
    "Store",
    "create_store",
]
