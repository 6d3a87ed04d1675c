"""
Shared pytest configuration.
"""

import os
import sys
from pathlib import Path

import pytest

# Timeout of both notification functions in the stack
FUNCTION_TIMEOUT_SECONDS = 5

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "infrastructure"))
sys.path.insert(0, str(project_root / "infrastructure" / "aws_cdk"))

# boto3 clients need a region and credentials, even when mocked
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")


@pytest.fixture(autouse=True)
def clean_function_env(monkeypatch):
    """Start every test without function configuration."""
    for name in ("NOTIFICATION_TOPIC_ARN", "APP_NAME", "ENVIRONMENT", "SLACK_WEBHOOK_URL",
                 "SLACK_TIMEOUT_SECONDS", "STACK_NAME", "NOTIFICATION_EMAIL",
                 "NOTIFICATION_SMS", "NOTIFICATION_SLACK"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def no_backoff_sleep(monkeypatch):
    """Retries run without waiting."""
    monkeypatch.setattr("src.shared.utils.error_handler.time.sleep", lambda seconds: None)


def sns_record(message, subject=None, timestamp="2024-01-01T12:00:00.000Z"):
    """Build an SNS record as delivered to a Lambda subscriber."""
    return {
        "EventSource": "aws:sns",
        "EventVersion": "1.0",
        "Sns": {
            "Type": "Notification",
            "MessageId": "95df01b4-ee98-5cb9-9903-4c221d41eb5e",
            "TopicArn": "arn:aws:sns:us-east-1:123456789012:app-dev-devops-events",
            "Subject": subject,
            "Message": message,
            "Timestamp": timestamp,
        }
    }


def worst_case_seconds(retry_config, connect_timeout, read_timeout):
    """Longest time a retried call can take when every attempt times out."""
    delays = sum(
        min(retry_config.initial_delay * retry_config.backoff_multiplier ** attempt, retry_config.max_delay)
        for attempt in range(retry_config.max_attempts - 1)
    )
    return retry_config.max_attempts * (connect_timeout + read_timeout) + delays
