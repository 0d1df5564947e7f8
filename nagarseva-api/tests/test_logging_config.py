import json
import logging
import sys

from nagarseva.logging_config import ChatLoggerAdapter, JSONFormatter, get_logger, redact_secrets


def make_record(message, context=None, exc_info=None):
    record = logging.LogRecord("nagarseva.test", logging.INFO, __file__, 1, message, None, exc_info)
    if context is not None:
        record.context = context
    return record


class TestRedactSecrets:
    def test_masks_bot_token_in_url(self):
        url = "https://api.telegram.org/bot123456:AAH-x_yz/sendMessage"
        assert redact_secrets(url) == "https://api.telegram.org/bot<redacted>/sendMessage"

    def test_leaves_plain_text(self):
        assert redact_secrets("Ticket created") == "Ticket created"


class TestJSONFormatter:
    def test_trace_fields_are_top_level(self):
        record = make_record("Ticket created", {"chat_id": "555", "ticket_number": "TGM-A-1", "category_id": 3})

        data = json.loads(JSONFormatter().format(record))

        assert data["service"] == "nagarseva-api"
        assert data["chat_id"] == "555"
        assert data["ticket_number"] == "TGM-A-1"
        assert data["context"] == {"category_id": 3}

    def test_no_context_key_when_only_trace_fields(self):
        data = json.loads(JSONFormatter().format(make_record("x", {"update_id": 7})))
        assert data["update_id"] == 7
        assert "context" not in data

    def test_exception_text_is_redacted(self):
        try:
            raise RuntimeError("POST https://api.telegram.org/bot42:secret/sendMessage failed")
        except RuntimeError:
            record = make_record("Telegram API error", exc_info=sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert "secret" not in data["exception"]
        assert "bot<redacted>" in data["exception"]


def test_chat_logger_merges_context(caplog):
    adapter = ChatLoggerAdapter(get_logger("intake_service"), "555", 9)

    with caplog.at_level(logging.INFO, logger="nagarseva.intake_service"):
        adapter.info("Session updated", context={"to_state": "idle", "update_id": 10})

    record = caplog.records[-1]
    assert record.context == {"chat_id": "555", "update_id": 10, "to_state": "idle"}
