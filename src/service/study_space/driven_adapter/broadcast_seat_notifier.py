from collections import deque
from typing import Deque, List

from src.platform.event.i_in_memory_broadcaster import IInMemoryEventBroadcaster
from src.platform.logging.loguru_io import Logger
from src.service.study_space.app.interface.i_seat_notifier import ISeatNotifier
from src.service.study_space.domain.enum import NotificationLevel
from src.service.study_space.domain.value_object.seat_notification import SeatNotification


NOTIFICATION_CHANNEL = 'study_space:notifications'

_LOG_LEVELS = {
    NotificationLevel.INFO: 'INFO',
    NotificationLevel.SUCCESS: 'SUCCESS',
    NotificationLevel.WARNING: 'WARNING',
    NotificationLevel.ERROR: 'WARNING',  # user-facing failures are expected outcomes
}


class BroadcastSeatNotifier(ISeatNotifier):
    """Logs notifications and pushes them to every open SSE stream."""

    def __init__(
        self,
        *,
        broadcaster: IInMemoryEventBroadcaster,
        channel: str = NOTIFICATION_CHANNEL,
        history_size: int = 50,
    ) -> None:
        self._broadcaster = broadcaster
        self.channel = channel
        self._history: Deque[SeatNotification] = deque(maxlen=history_size)

    @property
    def recent(self) -> List[SeatNotification]:
        return list(self._history)

    def notify(self, notification: SeatNotification) -> None:
        self._history.append(notification)
        Logger.base.log(
            _LOG_LEVELS[notification.level],
            f'🔔 [NOTIFY] {notification.title}: {notification.message}',
        )
        self._broadcaster.broadcast(
            channel=self.channel,
            event_data={'event_type': 'notification', **notification.to_dict()},
        )
