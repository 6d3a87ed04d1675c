"""
Slack incoming-webhook client.
"""
import logging
from typing import Any, Dict

import requests

from ..models.notification import NotificationMessage, Severity
from .error_handler import (
    retry_with_backoff, RetryConfig, RetryableError, PermanentError,
    ErrorType, classify_http_status
)

logger = logging.getLogger(__name__)

# Every attempt plus backoff has to finish within the 5 second function timeout
CONNECT_TIMEOUT_SECONDS = 0.5
SLACK_RETRY = RetryConfig(max_attempts=2, initial_delay=0.25, max_delay=0.25)

SEVERITY_COLORS = {
    Severity.SUCCESS: "good",
    Severity.WARNING: "warning",
    Severity.FAILURE: "danger",
    Severity.INFO: "#439FE0",
}


def build_slack_payload(message: NotificationMessage) -> Dict[str, Any]:
    """
    Build the webhook payload for a notification

    Args:
        message: Notification to deliver

    Returns:
        Slack message payload with a colored attachment
    """
    fields = []
    if message.app_name:
        fields.append({"title": "App", "value": message.app_name, "short": True})
    if message.environment:
        fields.append({"title": "Environment", "value": message.environment, "short": True})
    if message.source:
        fields.append({"title": "Source", "value": message.source, "short": True})

    attachment = {
        "fallback": message.short_text(),
        "color": SEVERITY_COLORS[message.severity],
        "title": message.subject,
        "text": message.text,
        "fields": fields,
        "footer": message.timestamp,
    }
    if message.link:
        attachment["title_link"] = message.link

    return {
        "text": message.sns_subject(),
        "attachments": [attachment],
    }


class SlackWebhookClient:
    """
    Posts notifications to a Slack incoming webhook

    ``timeout`` is the read timeout; connecting is bounded by
    CONNECT_TIMEOUT_SECONDS.
    """

    def __init__(self, webhook_url: str, timeout: float = 1.5, session: requests.Session = None):
        self.webhook_url = webhook_url
        self.timeout = (CONNECT_TIMEOUT_SECONDS, timeout)
        self.session = session or requests.Session()

    @retry_with_backoff(SLACK_RETRY)
    def send(self, message: NotificationMessage) -> None:
        """
        Deliver a notification

        Raises:
            RetryableError: For throttling and server-side errors
            PermanentError: For rejected requests (bad webhook, bad payload)
        """
        response = self.session.post(
            self.webhook_url,
            json=build_slack_payload(message),
            timeout=self.timeout,
        )

        if response.status_code == 200:
            logger.info(f"Delivered notification '{message.subject}' to Slack")
            return

        error_type = classify_http_status(response.status_code)
        error_message = f"Slack webhook returned {response.status_code}: {response.text[:200]}"
        if error_type in (ErrorType.TRANSIENT, ErrorType.THROTTLING):
            raise RetryableError(error_message, error_type)
        raise PermanentError(error_message, error_type)
