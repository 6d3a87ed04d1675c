#!/usr/bin/env python3
"""
AWS CDK App for the DevOps notification relay
"""
import sys
from pathlib import Path

from aws_cdk import App, Environment

# Add the project root to Python path
project_root = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(project_root))

from src.shared.config import load_stack_config
from notification_stack import NotificationStack

app = App()

config = load_stack_config()
stack_name = app.node.try_get_context("stack_name") or config.stack_name or "devops-notifications"

NotificationStack(
    app,
    stack_name,
    app_name=config.app_name or None,
    environment=config.environment or None,
    notification_email=config.channels.email,
    notification_sms=config.channels.sms,
    notification_slack=config.channels.slack,
    env=Environment(account=config.account, region=config.region),
    description="Build and Deployment notifications (SMS, Email, Slack)"
)

app.synth()
