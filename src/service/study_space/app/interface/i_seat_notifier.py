from abc import ABC, abstractmethod

from src.service.study_space.domain.value_object.seat_notification import SeatNotification


class ISeatNotifier(ABC):
    """Delivers user-visible notifications (toasts on the page)."""

    @abstractmethod
    def notify(self, notification: SeatNotification) -> None:
        pass
