import json
import logging
from portal.utils.logger import JSONFormatter, REDACTED, get_logger


class _Collect(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


def _capture(name):
    log = get_logger(name)
    handler = _Collect()
    log.logger.addHandler(handler)
    log.logger.setLevel(logging.DEBUG)
    return log, handler


def test_get_logger_namespaces_under_portal():
    assert get_logger("audit").logger.name == "portal.audit"
    assert get_logger("portal.services.auth").logger.name == "portal.services.auth"


def test_bound_fields_merge_and_credentials_are_masked():
    log, handler = _capture("tests.bind")
    try:
        log.bind(request_id="req-1").warning("Login failed", email="a@example.com", password="hunter22", token=None)
    finally:
        log.logger.removeHandler(handler)

    fields = handler.records[0].fields
    assert fields == {"request_id": "req-1", "email": "a@example.com", "password": REDACTED}


def test_json_formatter_emits_fields_and_exception():
    log, handler = _capture("tests.json")
    try:
        try:
            raise ValueError("bad")
        except ValueError:
            log.error("Something broke", exc_info=True, user_id=3, Authorization="Bearer abc")
    finally:
        log.logger.removeHandler(handler)

    out = json.loads(JSONFormatter().format(handler.records[0]))
    assert out["message"] == "Something broke"
    assert out["level"] == "ERROR"
    assert out["user_id"] == 3
    assert out["Authorization"] == REDACTED
    assert "ValueError: bad" in out["exception"]
