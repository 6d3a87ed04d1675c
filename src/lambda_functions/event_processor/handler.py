"""
DevOps Event Processor Lambda Function.

This Lambda function is subscribed to the event topic. It turns raw DevOps
lifecycle events (CloudFormation, CodeBuild, CodePipeline, CodeDeploy) into
user-facing notification messages and republishes them to the
notification topic, which fans them out to Email, SMS and Slack.
"""

import os
import json
import logging
from typing import Dict, Any, List

from src.shared.config import load_function_config
from src.shared.models.devops_event import DevOpsEvent
from src.shared.utils.formatters import format_event
from src.shared.utils.sns_publisher import NotificationPublisher
from src.shared.utils.error_handler import ErrorContext, handle_lambda_errors

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

_publishers: Dict[str, NotificationPublisher] = {}


def get_publisher(topic_arn: str) -> NotificationPublisher:
    """Return a publisher for the topic, reused across warm invocations."""
    if topic_arn not in _publishers:
        _publishers[topic_arn] = NotificationPublisher(topic_arn)
    return _publishers[topic_arn]


def extract_events(event: Dict[str, Any]) -> List[DevOpsEvent]:
    """
    Extract DevOps events from the Lambda payload.

    SNS deliveries carry one event per record; a bare EventBridge event
    (direct invocation) is accepted as a single event.
    """
    records = event.get('Records') if isinstance(event, dict) else None

    if isinstance(records, list):
        return [
            DevOpsEvent.from_sns_record(record)
            for record in records
            if isinstance(record, dict)
        ]

    if isinstance(event, dict) and 'source' in event and 'detail-type' in event:
        return [DevOpsEvent.from_payload(event)]

    return []


@handle_lambda_errors(ErrorContext(
    function_name="event_processor",
    operation="process_devops_events"
))
def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda function handler for DevOps event processing.

    Args:
        event: SNS event delivered from the event topic
        context: Lambda context

    Returns:
        Dictionary with the processed, published and skipped counts
    """
    logger.info(f"Received DevOps event: {json.dumps(event, default=str)}")

    config = load_function_config()
    devops_events = extract_events(event)

    published = 0
    skipped = 0

    for devops_event in devops_events:
        message = format_event(devops_event, config.app_name, config.environment)

        if message is None:
            skipped += 1
            continue

        if not config.notification_topic_arn:
            logger.warning(f"Notification topic is not configured, dropping '{message.subject}'")
            skipped += 1
            continue

        get_publisher(config.notification_topic_arn).publish(message)
        published += 1

    response = {
        'statusCode': 200,
        'processed': len(devops_events),
        'published': published,
        'skipped': skipped
    }

    logger.info(f"Event processing completed: {json.dumps(response)}")
    return response
