"""
Shared utility functions for the DevOps notification relay.
"""

from .formatters import format_event
from .sns_publisher import NotificationPublisher
from .slack_client import SlackWebhookClient, build_slack_payload

__all__ = [
    'format_event',
    'NotificationPublisher',
    'SlackWebhookClient',
    'build_slack_payload'
]
