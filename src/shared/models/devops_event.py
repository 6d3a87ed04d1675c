"""
DevOps lifecycle event received on the event topic.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

UNKNOWN_SOURCE = "unknown"
CLOUDFORMATION_SOURCE = "aws.cloudformation"
CLOUDFORMATION_NOTIFICATION = "CloudFormation Stack Notification"

# CloudFormation stack notifications are plain text, one Key='Value' per line
_CFN_LINE = re.compile(r"^(\w+)='(.*)'$", re.MULTILINE)


@dataclass
class DevOpsEvent:
    """A raw DevOps event, normalized to the EventBridge envelope fields."""
    source: str
    detail_type: str
    detail: Dict[str, Any] = field(default_factory=dict)
    resources: List[str] = field(default_factory=list)
    time: Optional[str] = None
    region: Optional[str] = None
    account: Optional[str] = None
    raw: Any = None

    @property
    def is_known(self) -> bool:
        return self.source != UNKNOWN_SOURCE

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'DevOpsEvent':
        """Create a DevOpsEvent from an EventBridge event dictionary."""
        detail = payload.get('detail')
        source = payload.get('source')
        detail_type = payload.get('detail-type')
        resources = payload.get('resources')
        return cls(
            source=source if isinstance(source, str) and source else UNKNOWN_SOURCE,
            detail_type=detail_type if isinstance(detail_type, str) else '',
            detail=detail if isinstance(detail, dict) else {},
            resources=resources if isinstance(resources, list) else [],
            time=payload.get('time'),
            region=payload.get('region'),
            account=payload.get('account'),
            raw=payload,
        )

    @classmethod
    def from_cloudformation_text(cls, message: str, timestamp: Optional[str] = None) -> 'DevOpsEvent':
        """Create a DevOpsEvent from a CloudFormation stack notification."""
        detail = dict(_CFN_LINE.findall(message))
        stack_id = detail.get('StackId', '')
        arn_parts = stack_id.split(':')

        return cls(
            source=CLOUDFORMATION_SOURCE,
            detail_type=CLOUDFORMATION_NOTIFICATION,
            detail=detail,
            resources=[stack_id] if stack_id else [],
            time=detail.get('Timestamp') or timestamp,
            region=arn_parts[3] if len(arn_parts) > 4 else None,
            account=arn_parts[4] if len(arn_parts) > 4 else None,
            raw=message,
        )

    @classmethod
    def from_sns_record(cls, record: Dict[str, Any]) -> 'DevOpsEvent':
        """
        Create a DevOpsEvent from an SNS record delivered to Lambda.

        Records that cannot be recognized produce an event with an
        ``unknown`` source instead of raising.
        """
        sns = record.get('Sns') or {}
        message = sns.get('Message')
        timestamp = sns.get('Timestamp')

        if not isinstance(message, str):
            return cls(source=UNKNOWN_SOURCE, detail_type='', time=timestamp, raw=record)

        try:
            payload = json.loads(message)
        except json.JSONDecodeError:
            payload = None

        if isinstance(payload, dict) and 'source' in payload and 'detail-type' in payload:
            return cls.from_payload(payload)

        if payload is None and "StackId='" in message:
            return cls.from_cloudformation_text(message, timestamp)

        logger.debug("SNS message is neither an EventBridge event nor a stack notification")
        return cls(
            source=UNKNOWN_SOURCE,
            detail_type='',
            detail={'message': message},
            time=timestamp,
            raw=message,
        )
