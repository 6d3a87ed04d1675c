"""
Configuration module for the DevOps notification relay.

Stack settings are read from environment variables (optionally from a local
.env file) when synthesizing or deploying. Function settings are read from
the Lambda environment at invocation time.
"""

import os
import math
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

EMAIL = "email"
SMS = "sms"
SLACK = "slack"

# CloudFormation parameter names for each channel endpoint
CHANNEL_PARAMETERS = {
    EMAIL: "NotificationEmail",
    SMS: "NotificationSMS",
    SLACK: "NotificationSlack",
}


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


@dataclass
class NotificationChannels:
    """Optional notification endpoints. An empty endpoint disables its channel."""

    email: str = ""
    sms: str = ""
    slack: str = ""

    @classmethod
    def from_env(cls) -> "NotificationChannels":
        return cls(
            email=_env("NOTIFICATION_EMAIL"),
            sms=_env("NOTIFICATION_SMS"),
            slack=_env("NOTIFICATION_SLACK"),
        )

    def endpoint(self, channel: str) -> str:
        return (getattr(self, channel) or "").strip()

    def enabled_channels(self) -> List[str]:
        """Return the channels whose endpoint is non-empty, in a fixed order."""
        return [channel for channel in (EMAIL, SMS, SLACK) if self.endpoint(channel)]


@dataclass
class StackConfig:
    """Configuration used to synthesize and deploy the notifications stack."""

    app_name: str = ""
    environment: str = ""
    stack_name: str = ""
    channels: NotificationChannels = field(default_factory=NotificationChannels)
    account: Optional[str] = None
    region: str = "us-east-1"

    def __post_init__(self):
        if not self.stack_name and self.app_name and self.environment:
            self.stack_name = f"{self.app_name}-{self.environment}-notifications"

    def validate(self) -> None:
        """
        Check that the required naming inputs are present.

        Raises:
            ValueError: If the application name or environment is missing
        """
        missing = [
            name for name, value in (("APP_NAME", self.app_name), ("ENVIRONMENT", self.environment))
            if not value
        ]
        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

    def to_cfn_parameters(self) -> Dict[str, str]:
        """Return the CloudFormation parameter values for this configuration."""
        parameters = {
            "AppName": self.app_name,
            "Environment": self.environment,
        }
        for channel, parameter_name in CHANNEL_PARAMETERS.items():
            parameters[parameter_name] = self.channels.endpoint(channel)
        return parameters


def load_stack_config(dotenv_path: Optional[str] = None) -> StackConfig:
    """
    Load the stack configuration from the environment.

    Args:
        dotenv_path: Optional path to a .env file; defaults to searching
            from the current directory

    Returns:
        StackConfig: The stack configuration
    """
    load_dotenv(dotenv_path)

    config = StackConfig(
        app_name=_env("APP_NAME"),
        environment=_env("ENVIRONMENT"),
        stack_name=_env("STACK_NAME"),
        channels=NotificationChannels.from_env(),
        account=os.getenv("CDK_DEFAULT_ACCOUNT"),
        region=_env("CDK_DEFAULT_REGION", "us-east-1"),
    )
    logger.debug(
        f"Loaded stack config for {config.app_name}/{config.environment}, "
        f"channels: {config.channels.enabled_channels()}"
    )
    return config


DEFAULT_SLACK_TIMEOUT_SECONDS = 1.5
# Larger read timeouts no longer fit two Slack attempts into the function timeout
MAX_SLACK_TIMEOUT_SECONDS = 1.75


@dataclass
class FunctionConfig:
    """Settings of a notification Lambda function."""

    notification_topic_arn: str = ""
    app_name: str = ""
    environment: str = ""
    slack_webhook_url: str = ""
    slack_timeout_seconds: float = DEFAULT_SLACK_TIMEOUT_SECONDS
    log_level: str = "INFO"


def load_function_config() -> FunctionConfig:
    """Read the function configuration from the Lambda environment."""
    raw_timeout = _env("SLACK_TIMEOUT_SECONDS")
    try:
        timeout = float(raw_timeout) if raw_timeout else DEFAULT_SLACK_TIMEOUT_SECONDS
    except ValueError:
        timeout = math.nan

    if not (math.isfinite(timeout) and 0 < timeout <= MAX_SLACK_TIMEOUT_SECONDS):
        logger.warning(f"Invalid SLACK_TIMEOUT_SECONDS '{raw_timeout}', using {DEFAULT_SLACK_TIMEOUT_SECONDS}")
        timeout = DEFAULT_SLACK_TIMEOUT_SECONDS

    return FunctionConfig(
        notification_topic_arn=_env("NOTIFICATION_TOPIC_ARN"),
        app_name=_env("APP_NAME"),
        environment=_env("ENVIRONMENT"),
        slack_webhook_url=_env("SLACK_WEBHOOK_URL"),
        slack_timeout_seconds=timeout,
        log_level=_env("LOG_LEVEL", "INFO"),
    )
