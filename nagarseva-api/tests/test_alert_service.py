from unittest.mock import MagicMock, Mock, patch

from nagarseva.config import Settings
from nagarseva.services.alert_service import alert_critical, send_alert

CONFIGURED = Settings(alert_bot_token="alert-token", alert_chat_id="ops-chat")


class TestSendAlert:
    @patch("nagarseva.services.alert_service.get_settings", return_value=Settings(alert_bot_token="", alert_chat_id=""))
    def test_returns_false_when_not_configured(self, _settings):
        assert send_alert("ERROR", "Test message") is False

    @patch("nagarseva.services.alert_service.get_settings", return_value=CONFIGURED)
    @patch("nagarseva.services.alert_service.httpx.Client")
    def test_sends_alert_to_telegram(self, mock_client_class, _settings):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = Mock(status_code=200)

        result = send_alert("ERROR", "Ticket write failed", {"chat_id": "555"})

        assert result is True
        url = mock_client.post.call_args[0][0]
        json_data = mock_client.post.call_args[1]["json"]
        assert url == "https://api.telegram.org/botalert-token/sendMessage"
        assert json_data["chat_id"] == "ops-chat"
        assert "ERROR" in json_data["text"]
        assert "chat_id: 555" in json_data["text"]

    @patch("nagarseva.services.alert_service.get_settings", return_value=CONFIGURED)
    @patch("nagarseva.services.alert_service.httpx.Client")
    def test_returns_false_on_http_error(self, mock_client_class, _settings):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.side_effect = Exception("Network error")

        assert send_alert("ERROR", "Test") is False


class TestAlertCritical:
    @patch("nagarseva.services.alert_service.send_alert", return_value=True)
    def test_uses_critical_level(self, mock_send):
        alert_critical("Identity conflict", {"chat_id": "555"})
        mock_send.assert_called_once_with("CRITICAL", "Identity conflict", {"chat_id": "555"})
