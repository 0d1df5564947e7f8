from typing import Optional

import httpx

from nagarseva.logging_config import get_logger
from nagarseva.services.replies import OutboundReply

logger = get_logger("telegram_service")


class TelegramService:
    """Service for calling the Telegram Bot API.

    Calls are best effort: failures are logged and returned as ``{"ok": False}``,
    never raised, so a Telegram outage cannot undo committed conversation state.
    """

    BASE_URL = "https://api.telegram.org/bot{token}"

    def __init__(self, bot_token: str, timeout: float = 30.0):
        self.bot_token = bot_token
        self.base_url = self.BASE_URL.format(token=bot_token)
        self.timeout = timeout

    def _make_request(self, method: str, data: Optional[dict] = None) -> dict:
        """Make request to Telegram API."""
        url = f"{self.base_url}/{method}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(url, json=data or {})
            result = response.json()
        except Exception as e:
            logger.error(f"Telegram API error: {e}", extra={"context": {"method": method}})
            return {"ok": False, "error": str(e)}

        if not isinstance(result, dict):
            result = {"ok": False, "error": "Unexpected response"}
        if response.status_code >= 400 or not result.get("ok"):
            logger.warning(
                f"Telegram API {method} failed",
                extra={"context": {"status_code": response.status_code, "description": result.get("description")}},
            )
        return result

    def send_message(
        self,
        chat_id: str,
        text: str,
        reply_markup: Optional[dict] = None,
    ) -> dict:
        """Send message to Telegram chat."""
        data = {
            "chat_id": chat_id,
            "text": text,
        }
        if reply_markup:
            data["reply_markup"] = reply_markup

        return self._make_request("sendMessage", data)

    def send_reply(self, reply: OutboundReply) -> dict:
        return self.send_message(chat_id=reply.chat_id, text=reply.text, reply_markup=reply.reply_markup)

    def answer_callback_query(self, callback_query_id: str, text: Optional[str] = None) -> dict:
        """Stop the spinner on an inline button."""
        data = {"callback_query_id": callback_query_id}
        if text:
            data["text"] = text
        return self._make_request("answerCallbackQuery", data)

    def set_webhook(self, url: str, secret_token: Optional[str] = None) -> dict:
        data = {"url": url}
        if secret_token:
            data["secret_token"] = secret_token
        return self._make_request("setWebhook", data)


def deliver_outbound(bot_token: str, replies: list[OutboundReply], callback_query_id: Optional[str] = None) -> None:
    """Send replies after the webhook has been acknowledged."""
    telegram = TelegramService(bot_token)
    if callback_query_id:
        telegram.answer_callback_query(callback_query_id)
    for reply in replies:
        telegram.send_reply(reply)
