"""User-visible notification value object."""

from typing import Optional

import attrs

from src.service.study_space.domain.enum import NotificationLevel


@attrs.define(frozen=True)
class SeatNotification:
    level: NotificationLevel
    title: str
    message: str
    seat_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'level': str(self.level),
            'title': self.title,
            'message': self.message,
            'seat_id': self.seat_id,
        }
