"""
Unit tests for the Slack notifier Lambda function.
"""

import json
from unittest.mock import patch, MagicMock

import pytest
import requests

from conftest import FUNCTION_TIMEOUT_SECONDS, sns_record, worst_case_seconds
from src.lambda_functions.slack_notifier.handler import handler, parse_notification
from src.shared.config import MAX_SLACK_TIMEOUT_SECONDS
from src.shared.models.notification import NotificationMessage, Severity
from src.shared.utils.error_handler import RetryableError, PermanentError
from src.shared.utils.slack_client import (
    CONNECT_TIMEOUT_SECONDS, SLACK_RETRY, SlackWebhookClient, build_slack_payload
)

WEBHOOK_URL = "https://hooks.slack.com/services/T000/B000/XXXX"


@pytest.fixture
def notification():
    return NotificationMessage(
        subject="Build FAILED: api",
        text="CodeBuild project api is FAILED.",
        severity=Severity.FAILURE,
        source="aws.codebuild",
        app_name="shop",
        environment="prod",
        link="https://console.aws.amazon.com/codesuite/codebuild/projects/api",
        timestamp="2024-01-01T12:00:00Z",
    )


def mock_response(status_code, text="ok"):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    return response


class TestSlackPayload:
    """Test Slack payload construction"""

    def test_build_slack_payload(self, notification):
        payload = build_slack_payload(notification)
        attachment = payload["attachments"][0]

        assert payload["text"] == "[shop/prod] Build FAILED: api"
        assert attachment["color"] == "danger"
        assert attachment["title_link"] == notification.link
        assert {f["title"] for f in attachment["fields"]} == {"App", "Environment", "Source"}

    def test_build_slack_payload_without_link(self):
        payload = build_slack_payload(NotificationMessage(subject="hi", text="there"))
        attachment = payload["attachments"][0]

        assert attachment["color"] == "#439FE0"
        assert "title_link" not in attachment
        assert attachment["fields"] == []


class TestSlackWebhookClient:
    """Test webhook delivery and error classification"""

    def test_send_success(self, notification):
        session = MagicMock()
        session.post.return_value = mock_response(200)

        SlackWebhookClient(WEBHOOK_URL, timeout=2, session=session).send(notification)

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == WEBHOOK_URL
        assert kwargs["timeout"] == (CONNECT_TIMEOUT_SECONDS, 2)
        assert kwargs["json"]["attachments"][0]["title"] == "Build FAILED: api"

    def test_send_server_error_retries(self, notification):
        session = MagicMock()
        session.post.return_value = mock_response(503, "unavailable")

        with pytest.raises(RetryableError):
            SlackWebhookClient(WEBHOOK_URL, session=session).send(notification)

        assert session.post.call_count == SLACK_RETRY.max_attempts

    def test_send_recovers_after_throttling(self, notification):
        session = MagicMock()
        session.post.side_effect = [mock_response(429, "rate limited"), mock_response(200)]

        SlackWebhookClient(WEBHOOK_URL, session=session).send(notification)

        assert session.post.call_count == 2

    def test_send_rejected_is_permanent(self, notification):
        session = MagicMock()
        session.post.return_value = mock_response(404, "no_service")

        with pytest.raises(PermanentError):
            SlackWebhookClient(WEBHOOK_URL, session=session).send(notification)

        session.post.assert_called_once()

    def test_send_connection_error_retries(self, notification):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(requests.ConnectionError):
            SlackWebhookClient(WEBHOOK_URL, session=session).send(notification)

        assert session.post.call_count == SLACK_RETRY.max_attempts

    def test_timeouts_fit_function_timeout(self, notification, monkeypatch):
        sleeps = []
        monkeypatch.setattr("src.shared.utils.error_handler.time.sleep", sleeps.append)
        session = MagicMock()
        session.post.side_effect = requests.Timeout("read timed out")

        with pytest.raises(requests.Timeout):
            SlackWebhookClient(WEBHOOK_URL, timeout=MAX_SLACK_TIMEOUT_SECONDS, session=session).send(notification)

        connect, read = session.post.call_args.kwargs["timeout"]
        attempts = session.post.call_count
        assert attempts * (connect + read) + sum(sleeps) < FUNCTION_TIMEOUT_SECONDS
        assert worst_case_seconds(SLACK_RETRY, connect, read) < FUNCTION_TIMEOUT_SECONDS


class TestParseNotification:
    """Test decoding of notification topic messages"""

    def test_structured_message(self, notification):
        parsed = parse_notification(sns_record(notification.to_json(), subject="ignored"))
        assert parsed == notification

    def test_plain_text_message(self):
        parsed = parse_notification(sns_record("Deploy finished", subject="Manual notice"))

        assert parsed.subject == "Manual notice"
        assert parsed.text == "Deploy finished"
        assert parsed.severity == Severity.INFO
        assert parsed.timestamp == "2024-01-01T12:00:00.000Z"

    def test_plain_text_without_subject(self):
        parsed = parse_notification(sns_record(json.dumps({"unexpected": True})))

        assert parsed.subject == "DevOps notification"
        assert parsed.text == '{"unexpected": true}'


class TestLambdaHandler:
    """Test the Lambda handler function"""

    def test_handler_without_webhook_acknowledges(self, notification):
        with patch("src.lambda_functions.slack_notifier.handler.SlackWebhookClient") as mock_client:
            response = handler({"Records": [sns_record(notification.to_json())]}, {})

        mock_client.assert_not_called()
        assert response == {"statusCode": 200, "delivered": 0, "skipped": 1}

    def test_handler_delivers_each_record(self, notification, monkeypatch):
        monkeypatch.setenv("SLACK_WEBHOOK_URL", WEBHOOK_URL)

        with patch("src.lambda_functions.slack_notifier.handler.SlackWebhookClient") as mock_client:
            response = handler({"Records": [sns_record(notification.to_json()), sns_record("plain")]}, {})

        mock_client.assert_called_once_with(WEBHOOK_URL, timeout=1.5)
        assert mock_client.return_value.send.call_count == 2
        assert response == {"statusCode": 200, "delivered": 2, "skipped": 0}

    def test_handler_reraises_transient_errors(self, notification, monkeypatch):
        monkeypatch.setenv("SLACK_WEBHOOK_URL", WEBHOOK_URL)

        with patch("src.lambda_functions.slack_notifier.handler.SlackWebhookClient") as mock_client:
            mock_client.return_value.send.side_effect = RetryableError("Slack webhook returned 500")
            with pytest.raises(RetryableError):
                handler({"Records": [sns_record(notification.to_json())]}, {})

    def test_handler_returns_error_for_permanent_errors(self, notification, monkeypatch):
        monkeypatch.setenv("SLACK_WEBHOOK_URL", WEBHOOK_URL)

        with patch("src.lambda_functions.slack_notifier.handler.SlackWebhookClient") as mock_client:
            mock_client.return_value.send.side_effect = PermanentError("Slack webhook returned 404")
            response = handler({"Records": [sns_record(notification.to_json())]}, {})

        assert response["statusCode"] == 500
        assert response["body"]["function_name"] == "slack_notifier"

    @pytest.mark.parametrize("payload", [{}, {"Records": None}, {"x": 1}])
    def test_handler_acknowledges_any_payload(self, payload):
        response = handler(payload, {})
        assert response["statusCode"] == 200
