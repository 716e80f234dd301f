"""Action creators and thunks for the client store.

Thunks receive ``(dispatch, get_state, api)``. Network thunks are coroutine
functions; the caller awaits what ``store.dispatch`` returns. Failures are
never retried: ``ApiError`` (server answered) or the transport exception (no
answer) propagate unchanged to the caller, which shows them as a flash message.
"""
from __future__ import annotations

from typing import Any, Callable, Optional

from portal.utils import get_logger
from .api import ApiClient
from .store import AUTH_TOKEN_SET, AUTH_USER_SET, FLASH_GREEN_SET, FLASH_RED_SET

logger = get_logger(__name__)

TOKEN_KEY = "token"


def get_token(state: dict) -> Optional[str]:
    return state["session_state"]["token"]


def make_creator(action_type: str, *arg_names: str) -> Callable[..., dict]:
    """Build an action creator mapping positional args onto named fields."""
    def creator(*args: Any) -> dict:
        action = {"type": action_type}
        for index, name in enumerate(arg_names):
            action[name] = args[index] if index < len(args) else None
        return action
    creator.__name__ = f"create_{action_type.lower()}"
    return creator


set_user = make_creator(AUTH_USER_SET, "user")
set_token = make_creator(AUTH_TOKEN_SET, "token")

set_green_flash = make_creator(FLASH_GREEN_SET, "msgGreen")
set_red_flash = make_creator(FLASH_RED_SET, "msgRed")


# ------------------------------- Session ---------------------------------- #

def _open_session(path: str, body: dict):
    async def thunk(dispatch, get_state, api: ApiClient) -> dict:
        data = await api.post(path, json=body)
        response = data["response"]
        dispatch(set_token(response["token"]))
        dispatch(set_user(response["user"]))
        return response
    return thunk


def sign_up(body: dict):
    return _open_session("/auth/signup", body)


def sign_in(body: dict):
    return _open_session("/auth/login", body)


def sign_out():
    def thunk(dispatch, get_state, api) -> None:
        dispatch(set_token(""))
        dispatch(set_user(None))
    return thunk


def refresh_token(params: Optional[dict] = None):
    async def thunk(dispatch, get_state, api: ApiClient) -> Optional[dict]:
        token = get_token(get_state())
        if not token:
            dispatch(set_user(None))
            dispatch(set_token(None))
            return None
        data = await api.get(
            "/api/auth/refresh",
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )
        response = data["response"]
        dispatch(set_user(response["user"]))
        dispatch(set_token(response["token"]))
        return response
    return thunk


def storage_changed(event):
    """React to the persisted token changing in another tab or process."""
    def thunk(dispatch, get_state, api) -> None:
        if event.key is not None and event.key != TOKEN_KEY:
            return
        token = event.new_value
        if not token:
            logger.info("Session cleared elsewhere; signing out")
            sign_out()(dispatch, get_state, api)
        elif token != get_token(get_state()):
            # The user on hand belongs to the old token; refresh_token fills it back in
            dispatch(set_token(token))
            dispatch(set_user(None))
    return thunk


# -------------------------------- Flash ----------------------------------- #

def send_flash_message(msg: str, type: str = "red"):
    def thunk(dispatch, get_state, api) -> None:
        if type == "red":
            dispatch(set_red_flash(msg))
        else:
            dispatch(set_green_flash(msg))
    return thunk


def send_error_message(msg: str):
    return send_flash_message(msg, "red")


def send_success_message(msg: str):
    return send_flash_message(msg, "green")


def clear_flash_messages():
    def thunk(dispatch, get_state, api) -> None:
        dispatch(set_green_flash(""))
        dispatch(set_red_flash(""))
    return thunk


# ------------------------- Calls outside the store ------------------------ #

async def forgot_password(api: ApiClient, email: str) -> dict:
    data = await api.post("/api/auth/forgot", json={"email": email})
    return data["response"]


async def reset_password(api: ApiClient, password: str, password_confirm: str, token: str) -> dict:
    data = await api.post(
        "/api/auth/reset",
        json={"password": password, "passwordConfirm": password_confirm, "token": token},
    )
    return data["response"]


async def get_application(api: ApiClient, application_id: int) -> dict:
    data = await api.get(f"/api/applications/{application_id}")
    return data["response"]


async def update_application_status(api: ApiClient, application_id: int, status: str) -> dict:
    data = await api.put(f"/api/applications/{application_id}/status", json={"status": status})
    return data["response"]


__all__ = [
    "TOKEN_KEY",
    "get_token",
    "make_creator",
    "set_user",
    "set_token",
    "set_green_flash",
    "set_red_flash",
    "sign_up",
    "sign_in",
    "sign_out",
    "refresh_token",
    "storage_changed",
    "send_flash_message",
    "send_error_message",
    "send_success_message",
    "clear_flash_messages",
    "forgot_password",
    "reset_password",
    "get_application",
    "update_application_status",
]
