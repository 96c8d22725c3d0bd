import logging

import pytest

from sheetbot.core.errors import (
    DATA_UNAVAILABLE_TEXT,
    RELOAD_FAILED_TEXT,
    ConfigurationError,
    DataUnavailableError,
    DurableStoreError,
    RemoteFetchError,
    translate_error,
)


def test_taxonomy():
    assert issubclass(RemoteFetchError, DataUnavailableError)
    assert issubclass(DurableStoreError, DataUnavailableError)
    assert not issubclass(ConfigurationError, DataUnavailableError)
    assert RemoteFetchError("x", status_code=503).status_code == 503


@pytest.mark.parametrize(
    "event, expected",
    [("message", DATA_UNAVAILABLE_TEXT), ("reload", RELOAD_FAILED_TEXT), ("scheduled", None)],
)
def test_notice_per_event(event, expected):
    assert translate_error(RemoteFetchError("Sheets API returned 500"), event=event) == expected


def test_notice_never_leaks_details():
    notice = translate_error(RuntimeError("secret-token-123"), event="message")
    assert "secret-token-123" not in notice


def test_known_error_logged_without_traceback(caplog):
    with caplog.at_level(logging.ERROR, logger="sheetbot.core.errors"):
        translate_error(RemoteFetchError("Sheets API returned 503", status_code=503), event="message")

    (record,) = caplog.records
    assert "RemoteFetchError" in record.getMessage()
    assert "status=503" in record.getMessage()
    assert record.exc_info is None


def test_unexpected_error_logged_with_traceback(caplog):
    with caplog.at_level(logging.ERROR, logger="sheetbot.core.errors"):
        translate_error(ValueError("bad"), event="reload")

    (record,) = caplog.records
    assert record.exc_info is not None
    assert record.exc_info[0] is ValueError
