"""Notification Level Enum"""

from enum import StrEnum


class NotificationLevel(StrEnum):
    INFO = 'info'
    SUCCESS = 'success'
    WARNING = 'warning'
    ERROR = 'error'
