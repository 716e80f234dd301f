import asyncio
import pytest
from portal.client import actions
from portal.client.api import ApiError
from portal.client.storage import StorageEvent
from portal.client.store import create_store

USER = {"id": 7, "name": "Ada", "email": "ada@example.com", "role": "USER", "is_active": True}


def _session(store):
    return store.get_state()["session_state"]


def _flash(store):
    return store.get_state()["flash_state"]


def test_make_creator_maps_positional_args():
    create = actions.make_creator("THING_SET", "first", "second")
    assert create(1, 2) == {"type": "THING_SET", "first": 1, "second": 2}
    assert create(1) == {"type": "THING_SET", "first": 1, "second": None}


def test_sign_in_stores_token_and_user(recording_api):
    recording_api.responses[("POST", "/auth/login")] = {"response": {"token": "tok-1", "user": USER}}
    store = create_store(recording_api)

    result = asyncio.run(store.dispatch(actions.sign_in({"email": "ada@example.com", "password": "pw"})))

    assert result == {"token": "tok-1", "user": USER}
    assert _session(store) == {"token": "tok-1", "user": USER}
    assert recording_api.calls[0]["json"] == {"email": "ada@example.com", "password": "pw"}


def test_sign_up_posts_to_signup(recording_api):
    recording_api.responses[("POST", "/auth/signup")] = {"response": {"token": "tok-2", "user": USER}}
    store = create_store(recording_api)
    asyncio.run(store.dispatch(actions.sign_up({"name": "Ada", "email": "ada@example.com", "password": "pw"})))
    assert actions.get_token(store.get_state()) == "tok-2"
    assert recording_api.calls[0]["path"] == "/auth/signup"


def test_failed_sign_in_leaves_state_and_propagates(recording_api):
    recording_api.responses[("POST", "/auth/login")] = ApiError(401, {"success": False, "message": "Invalid email or password"})
    store = create_store(recording_api)
    with pytest.raises(ApiError) as exc_info:
        asyncio.run(store.dispatch(actions.sign_in({"email": "x@example.com", "password": "bad"})))
    assert exc_info.value.status == 401
    assert _session(store) == {"token": None, "user": None}


def test_sign_out_clears_session():
    store = create_store(state={"session_state": {"token": "tok", "user": USER}})
    store.dispatch(actions.sign_out())
    assert _session(store) == {"token": "", "user": None}


def test_sign_out_without_a_session():
    store = create_store()
    assert _session(store) == {"token": None, "user": None}
    store.dispatch(actions.sign_out())
    assert _session(store) == {"token": "", "user": None}


def test_refresh_without_token_makes_no_request(recording_api):
    store = create_store(recording_api)
    assert asyncio.run(store.dispatch(actions.refresh_token())) is None
    assert recording_api.calls == []
    assert _session(store) == {"token": None, "user": None}


def test_refresh_sends_current_token(recording_api):
    recording_api.responses[("GET", "/api/auth/refresh")] = {"response": {"token": "tok-new", "user": USER}}
    store = create_store(recording_api, state={"session_state": {"token": "tok-old", "user": None}})

    asyncio.run(store.dispatch(actions.refresh_token({"include": "profile"})))

    call = recording_api.calls[0]
    assert call["headers"] == {"Authorization": "Bearer tok-old"}
    assert call["params"] == {"include": "profile"}
    assert _session(store) == {"token": "tok-new", "user": USER}


def test_refresh_failure_keeps_old_session(recording_api):
    recording_api.responses[("GET", "/api/auth/refresh")] = ApiError(401, {"success": False, "message": "Invalid or expired token"})
    store = create_store(recording_api, state={"session_state": {"token": "tok-old", "user": USER}})
    with pytest.raises(ApiError):
        asyncio.run(store.dispatch(actions.refresh_token()))
    assert _session(store) == {"token": "tok-old", "user": USER}


def test_storage_changed_sets_token_or_signs_out():
    store = create_store(state={"session_state": {"token": "tok", "user": USER}})

    store.dispatch(actions.storage_changed(StorageEvent("token", "tok", "tok-other-tab")))
    assert _session(store) == {"token": "tok-other-tab", "user": None}

    store.dispatch(actions.set_user(USER))
    store.dispatch(actions.storage_changed(StorageEvent("token", None, "tok-other-tab")))
    assert _session(store) == {"token": "tok-other-tab", "user": USER}

    store.dispatch(actions.storage_changed(StorageEvent("token", "tok-other-tab", None)))
    assert _session(store) == {"token": "", "user": None}


def test_storage_changed_ignores_other_keys_and_handles_clear():
    store = create_store(state={"session_state": {"token": "tok", "user": USER}})
    store.dispatch(actions.storage_changed(StorageEvent("theme", None, "dark")))
    assert _session(store)["token"] == "tok"

    store.dispatch(actions.storage_changed(StorageEvent(None, None, None)))
    assert _session(store) == {"token": "", "user": None}


def test_flash_messages():
    store = create_store()
    store.dispatch(actions.send_error_message("Broken"))
    store.dispatch(actions.send_success_message("Saved"))
    assert _flash(store) == {"msg_green": "Saved", "msg_red": "Broken"}

    store.dispatch(actions.send_flash_message("Default is red"))
    assert _flash(store)["msg_red"] == "Default is red"

    store.dispatch(actions.clear_flash_messages())
    assert _flash(store) == {"msg_green": "", "msg_red": ""}


def test_password_reset_calls(recording_api):
    recording_api.responses[("POST", "/api/auth/forgot")] = {"response": {"message": "sent"}}
    recording_api.responses[("POST", "/api/auth/reset")] = {"response": {"message": "Password has been reset"}}

    assert asyncio.run(actions.forgot_password(recording_api, "ada@example.com")) == {"message": "sent"}
    result = asyncio.run(actions.reset_password(recording_api, "new-pass-1", "new-pass-1", "raw-token"))
    assert result == {"message": "Password has been reset"}
    assert recording_api.calls[1]["json"] == {"password": "new-pass-1", "passwordConfirm": "new-pass-1", "token": "raw-token"}


def test_application_calls(recording_api):
    app_body = {"id": 3, "status": "reviewed"}
    recording_api.responses[("GET", "/api/applications/3")] = {"response": {"id": 3, "status": "submitted"}}
    recording_api.responses[("PUT", "/api/applications/3/status")] = {"response": app_body}

    assert asyncio.run(actions.get_application(recording_api, 3))["status"] == "submitted"
    assert asyncio.run(actions.update_application_status(recording_api, 3, "reviewed")) == app_body
    assert recording_api.calls[1]["json"] == {"status": "reviewed"}
