import logging

from myjantes.logging import RedactSecrets, get_logger, set_level


def _record(msg, *args):
    return logging.LogRecord("myjantes.test", logging.INFO, __file__, 1, msg, args, None)


def test_session_cookie_is_masked():
    record = _record("Restoring cookie %s", "connect.sid=s%3Aabc.def; theme=dark")
    assert RedactSecrets().filter(record)
    assert record.getMessage() == "Restoring cookie connect.sid=***; theme=dark"


def test_password_values_are_masked():
    record = _record('payload={"email": "a@b.fr", "password": "hunter22", "newPassword": "x9"}')
    RedactSecrets().filter(record)
    message = record.getMessage()
    assert "hunter22" not in message and "x9" not in message
    assert '"email": "a@b.fr"' in message


def test_plain_messages_are_untouched():
    record = _record("GET %s -> %d", "/api/quotes", 200)
    RedactSecrets().filter(record)
    assert record.getMessage() == "GET /api/quotes -> 200"
    assert record.args == ("/api/quotes", 200)


def test_module_loggers_share_the_package_level():
    log = get_logger("test-module")
    assert log.name == "myjantes.test-module"
    set_level("DEBUG")
    try:
        assert log.isEnabledFor(logging.DEBUG)
        set_level("warn")
        assert not log.isEnabledFor(logging.INFO)
    finally:
        set_level("INFO")
