"""
SNS publishing utilities for the notification topic.
"""
import logging
from typing import Optional

import boto3
from botocore.config import Config

from ..models.notification import NotificationMessage
from .error_handler import retry_with_backoff, RetryConfig

logger = logging.getLogger(__name__)

# Every attempt plus backoff has to finish within the 5 second function timeout
SNS_CLIENT_CONFIG = Config(
    connect_timeout=0.5,
    read_timeout=1.5,
    retries={"total_max_attempts": 1},
)
PUBLISH_RETRY = RetryConfig(max_attempts=2, initial_delay=0.25, max_delay=0.25)


class NotificationPublisher:
    """Publishes formatted notifications to the notification topic"""

    def __init__(self, topic_arn: str, sns_client=None, region_name: Optional[str] = None):
        """
        Initialize the publisher

        Args:
            topic_arn: ARN of the notification topic
            sns_client: Optional pre-built SNS client
            region_name: AWS region name, defaults to the topic's region
        """
        self.topic_arn = topic_arn
        if sns_client is None:
            region_name = region_name or self._region_from_arn(topic_arn)
            sns_client = boto3.client('sns', region_name=region_name, config=SNS_CLIENT_CONFIG)
        self.sns_client = sns_client

    @staticmethod
    def _region_from_arn(topic_arn: str) -> Optional[str]:
        parts = topic_arn.split(':')
        return parts[3] if len(parts) > 3 and parts[3] else None

    @retry_with_backoff(PUBLISH_RETRY)
    def publish(self, message: NotificationMessage) -> str:
        """
        Publish a notification with per-protocol bodies

        Args:
            message: Notification to publish

        Returns:
            SNS message ID
        """
        response = self.sns_client.publish(
            TopicArn=self.topic_arn,
            Message=message.to_sns_message(),
            MessageStructure='json',
            Subject=message.sns_subject(),
            MessageAttributes={
                'severity': {'DataType': 'String', 'StringValue': message.severity.value},
                'source': {'DataType': 'String', 'StringValue': message.source or 'unknown'},
            }
        )

        message_id = response.get('MessageId', '')
        logger.info(f"Published notification '{message.subject}', MessageId: {message_id}")
        return message_id
