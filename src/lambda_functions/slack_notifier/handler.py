"""
Slack Notifier Lambda Function.

This Lambda function is subscribed to the notification topic and forwards
each notification to a Slack incoming webhook.
"""

import os
import json
import logging
from typing import Dict, Any, List

from src.shared.config import load_function_config
from src.shared.models.notification import NotificationMessage, Severity
from src.shared.utils.slack_client import SlackWebhookClient
from src.shared.utils.error_handler import ErrorContext, handle_lambda_errors

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

DEFAULT_SUBJECT = "DevOps notification"


def parse_notification(record: Dict[str, Any]) -> NotificationMessage:
    """
    Decode the notification carried by an SNS record.

    Messages published by the event processor are JSON; anything else is
    delivered as plain text.
    """
    sns = record.get('Sns') or {}
    message = sns.get('Message') or ''
    subject = sns.get('Subject') or DEFAULT_SUBJECT

    try:
        return NotificationMessage.from_dict(json.loads(message))
    except (json.JSONDecodeError, ValueError, TypeError):
        logger.info("Notification is not a structured message, sending as plain text")

    notification = NotificationMessage(
        subject=subject,
        text=message if isinstance(message, str) else json.dumps(message),
        severity=Severity.INFO,
    )
    if sns.get('Timestamp'):
        notification.timestamp = sns['Timestamp']
    return notification


def extract_notifications(event: Dict[str, Any]) -> List[NotificationMessage]:
    records = event.get('Records') if isinstance(event, dict) else None
    if not isinstance(records, list):
        return []
    return [parse_notification(record) for record in records if isinstance(record, dict)]


@handle_lambda_errors(ErrorContext(
    function_name="slack_notifier",
    operation="deliver_to_slack"
))
def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda function handler for Slack delivery.

    Args:
        event: SNS event delivered from the notification topic
        context: Lambda context

    Returns:
        Dictionary with the delivered and skipped counts
    """
    logger.info(f"Received notification: {json.dumps(event, default=str)}")

    config = load_function_config()
    notifications = extract_notifications(event)

    if not config.slack_webhook_url:
        logger.info("Slack webhook is not configured, acknowledging without delivery")
        return {'statusCode': 200, 'delivered': 0, 'skipped': len(notifications)}

    client = SlackWebhookClient(config.slack_webhook_url, timeout=config.slack_timeout_seconds)

    for notification in notifications:
        client.send(notification)

    return {'statusCode': 200, 'delivered': len(notifications), 'skipped': 0}
