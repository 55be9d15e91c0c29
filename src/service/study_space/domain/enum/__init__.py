"""Study Space Enums"""

from src.service.study_space.domain.enum.notification_level import NotificationLevel
from src.service.study_space.domain.enum.seat_status import SeatStatus

__all__ = ['NotificationLevel', 'SeatStatus']
