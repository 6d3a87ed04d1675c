"""
Shared data models for the DevOps notification relay.
"""

from .devops_event import DevOpsEvent
from .notification import NotificationMessage, Severity

__all__ = [
    'DevOpsEvent',
    'NotificationMessage',
    'Severity'
]
