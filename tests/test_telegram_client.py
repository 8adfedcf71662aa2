"""
Tests for Telegram client error handling and retry logic.

Uses `responses` library for HTTP mocking - deterministic and fast.
"""
import pytest
import requests
import responses

from target_monitor.exceptions import NotificationError, NotificationRejected
from target_monitor.telegram_client import TelegramClient

URL = "https://api.telegram.org/bottest_bot_token/sendMessage"


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def telegram_client(sleeps):
    """Create a test Telegram client."""
    TelegramClient._session = None
    return TelegramClient(token="test_bot_token", chat_id="123456789", sleep=sleeps.append)


class TestTelegramSendSuccess:
    """Tests for successful message sending."""

    @responses.activate
    def test_send_success(self, telegram_client):
        responses.add(responses.POST, URL, json={"ok": True, "result": {"message_id": 123}}, status=200)

        assert telegram_client.send("🎯 Target hits (1)") is True
        assert telegram_client._consecutive_failures == 0

    @responses.activate
    def test_send_resets_failure_counter(self, telegram_client):
        telegram_client._consecutive_failures = 3
        responses.add(responses.POST, URL, json={"ok": True, "result": {}}, status=200)

        telegram_client.send("Test message")

        assert telegram_client._consecutive_failures == 0


class TestTelegramSendFailure:
    """Tests for message send failures."""

    @responses.activate
    def test_network_errors_retried_then_false(self, telegram_client, sleeps):
        for _ in range(3):
            responses.add(responses.POST, URL, body=requests.exceptions.ConnectionError("Network error"))

        assert telegram_client.send("Test") is False
        assert telegram_client._consecutive_failures == 1
        assert sleeps == [2, 4]

    @responses.activate
    def test_critical_raises(self, telegram_client):
        for _ in range(3):
            responses.add(responses.POST, URL, body=requests.exceptions.ConnectionError("Network error"))

        with pytest.raises(NotificationError):
            telegram_client.send("Test", critical=True)

    @responses.activate
    def test_api_rejection_not_retried(self, telegram_client):
        responses.add(responses.POST, URL, json={"ok": False, "description": "chat not found"}, status=200)

        with pytest.raises(NotificationRejected):
            telegram_client.send("Test")

        assert len(responses.calls) == 1
        assert telegram_client._consecutive_failures == 0

    @responses.activate
    def test_rate_limit_honours_retry_after(self, telegram_client, sleeps):
        responses.add(responses.POST, URL, status=429, headers={"Retry-After": "7"})
        responses.add(responses.POST, URL, json={"ok": True}, status=200)

        assert telegram_client.send("Test") is True
        assert sleeps == [7]

    @responses.activate
    def test_persistent_rate_limit_fails(self, telegram_client):
        for _ in range(3):
            responses.add(responses.POST, URL, status=429)

        assert telegram_client.send("Test") is False

    @responses.activate
    def test_consecutive_failures_raise(self, telegram_client):
        for _ in range(3):
            responses.add(responses.POST, URL, body=requests.exceptions.ConnectionError("Network error"))
        telegram_client._consecutive_failures = 4

        with pytest.raises(NotificationError) as exc_info:
            telegram_client.send("Test")

        assert exc_info.value.context["consecutive_failures"] == 5
        assert not telegram_client.is_healthy()

    @responses.activate
    def test_bad_request_not_retried(self, telegram_client):
        responses.add(responses.POST, URL, json={"ok": False, "description": "can't parse entities"}, status=400)

        with pytest.raises(NotificationRejected) as exc_info:
            telegram_client.send("*unclosed")

        assert exc_info.value.context["status"] == 400
        assert len(responses.calls) == 1

    @responses.activate
    def test_server_error_retried(self, telegram_client, sleeps):
        responses.add(responses.POST, URL, status=502)
        responses.add(responses.POST, URL, json={"ok": True}, status=200)

        assert telegram_client.send("Test") is True
        assert sleeps == [2]
