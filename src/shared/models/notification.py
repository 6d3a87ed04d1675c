"""
User-facing notification message published to the notification topic.
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

SMS_MAX_LENGTH = 140
SUBJECT_MAX_LENGTH = 100


class Severity(Enum):
    """How a notification should be presented to the recipient"""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    FAILURE = "failure"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class NotificationMessage:
    """A formatted notification, ready to be delivered on any channel."""
    subject: str
    text: str
    severity: Severity = Severity.INFO
    source: str = ""
    app_name: str = ""
    environment: str = ""
    link: Optional[str] = None
    timestamp: str = field(default_factory=_utcnow)

    @property
    def prefix(self) -> str:
        parts = [part for part in (self.app_name, self.environment) if part]
        return f"[{'/'.join(parts)}]" if parts else ""

    def sns_subject(self) -> str:
        """SNS subjects are limited to 100 characters."""
        subject = f"{self.prefix} {self.subject}".strip()
        if len(subject) > SUBJECT_MAX_LENGTH:
            subject = subject[:SUBJECT_MAX_LENGTH - 3] + "..."
        return subject

    def short_text(self) -> str:
        """Text for SMS delivery."""
        text = f"{self.prefix} {self.subject}".strip()
        if len(text) > SMS_MAX_LENGTH:
            text = text[:SMS_MAX_LENGTH - 3] + "..."
        return text

    def long_text(self) -> str:
        """Text for email delivery."""
        lines = [self.sns_subject(), "", self.text]
        if self.link:
            lines.extend(["", f"Details: {self.link}"])
        lines.extend(["", f"Severity: {self.severity.value}", f"Time: {self.timestamp}"])
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['severity'] = self.severity.value
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NotificationMessage':
        """
        Create a NotificationMessage from its dictionary form.

        Raises:
            ValueError: If subject or text are missing, or severity is unknown
        """
        if not isinstance(data, dict) or 'subject' not in data or 'text' not in data:
            raise ValueError("Notification message requires 'subject' and 'text'")

        return cls(
            subject=str(data['subject']),
            text=str(data['text']),
            severity=Severity(data.get('severity', Severity.INFO.value)),
            source=data.get('source', ''),
            app_name=data.get('app_name', ''),
            environment=data.get('environment', ''),
            link=data.get('link'),
            timestamp=data.get('timestamp') or _utcnow(),
        )

    def to_sns_message(self) -> str:
        """
        Build the per-protocol message body for an SNS publish with
        ``MessageStructure='json'``.
        """
        long_text = self.long_text()
        return json.dumps({
            'default': long_text,
            'email': long_text,
            'sms': self.short_text(),
            'lambda': self.to_json(),
        })
