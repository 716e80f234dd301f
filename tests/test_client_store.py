import pytest
from portal.client.store import (
    AUTH_TOKEN_SET,
    AUTH_USER_SET,
    FLASH_GREEN_SET,
    FLASH_RED_SET,
    Store,
    create_store,
    flash_reducer,
    session_reducer,
)


def test_initial_state_shape():
    store = create_store()
    assert store.get_state() == {
        "session_state": {"token": None, "user": None},
        "flash_state": {"msg_green": "", "msg_red": ""},
    }


def test_session_reducer_sets_token_and_user():
    state = session_reducer(None, {"type": AUTH_TOKEN_SET, "token": "abc"})
    state = session_reducer(state, {"type": AUTH_USER_SET, "user": {"id": 1}})
    assert state == {"token": "abc", "user": {"id": 1}}


def test_clearing_token_drops_user():
    state = {"token": "abc", "user": {"id": 1}}
    assert session_reducer(state, {"type": AUTH_TOKEN_SET, "token": ""}) == {"token": "", "user": None}
    assert session_reducer(state, {"type": AUTH_TOKEN_SET, "token": None})["user"] is None


def test_flash_reducer_maps_message_keys():
    state = flash_reducer(None, {"type": FLASH_GREEN_SET, "msgGreen": "Saved"})
    state = flash_reducer(state, {"type": FLASH_RED_SET, "msgRed": "Oops"})
    assert state == {"msg_green": "Saved", "msg_red": "Oops"}
    assert flash_reducer(state, {"type": FLASH_RED_SET, "msgRed": None})["msg_red"] == ""


def test_unknown_action_keeps_state_identity():
    store = create_store()
    before = store.get_state()
    store.dispatch({"type": "SOMETHING_ELSE"})
    assert store.get_state() is before


def test_listeners_notified_only_on_change():
    store = create_store()
    calls = []
    unsubscribe = store.subscribe(lambda: calls.append(store.get_state()["session_state"]["token"]))

    store.dispatch({"type": AUTH_TOKEN_SET, "token": "t1"})
    store.dispatch({"type": "NOOP"})
    assert calls == ["t1"]

    unsubscribe()
    store.dispatch({"type": AUTH_TOKEN_SET, "token": "t2"})
    assert calls == ["t1"]


def test_thunks_receive_dispatch_state_and_extra():
    api = object()
    store = create_store(api)
    seen = {}

    def thunk(dispatch, get_state, extra):
        seen["extra"] = extra
        dispatch({"type": AUTH_TOKEN_SET, "token": "from-thunk"})
        return get_state()["session_state"]["token"]

    assert store.dispatch(thunk) == "from-thunk"
    assert seen["extra"] is api


def test_invalid_action_rejected():
    store = Store()
    with pytest.raises(TypeError):
        store.dispatch({"token": "no type"})
    with pytest.raises(TypeError):
        store.dispatch("AUTH_TOKEN_SET")


def test_preloaded_state_is_kept():
    store = create_store(state={"session_state": {"token": "saved", "user": None}})
    assert store.get_state()["session_state"]["token"] == "saved"
    assert store.get_state()["flash_state"] == {"msg_green": "", "msg_red": ""}
