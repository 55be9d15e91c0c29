"""
Study Space Test Fixtures

Test doubles for the reconciler's ports plus a reconciler wired to the
seeded in-memory seat store.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

import pytest

from src.service.study_space.app.interface import ISeatNotifier, IWatchListStorage
from src.service.study_space.app.study_space_reconciler import StudySpaceReconciler
from src.service.study_space.domain.entity.seat_entity import Seat
from src.service.study_space.domain.enum import NotificationLevel, SeatStatus
from src.service.study_space.domain.study_space_errors import WatchListStorageError
from src.service.study_space.domain.value_object.seat_notification import SeatNotification
from src.service.study_space.driven_adapter.in_memory_seat_store import InMemorySeatStore


FIXED_NOW = datetime(2026, 10, 19, 14, 0, tzinfo=timezone.utc)
TEST_USER_ID = 'user-1'


class RecordingSeatNotifier(ISeatNotifier):
    """Keeps every notification for assertions"""

    def __init__(self) -> None:
        self.notifications: List[SeatNotification] = []

    def notify(self, notification: SeatNotification) -> None:
        self.notifications.append(notification)

    def of_level(self, level: NotificationLevel) -> List[SeatNotification]:
        return [n for n in self.notifications if n.level == level]

    @property
    def titles(self) -> List[str]:
        return [n.title for n in self.notifications]


class MemoryWatchListStorage(IWatchListStorage):
    def __init__(self, seat_ids: Optional[Sequence[str]] = None) -> None:
        self.stored: List[str] = list(seat_ids or [])
        self.save_count = 0
        self.fail_saves = False

    def load(self) -> List[str]:
        return list(self.stored)

    def save(self, seat_ids: Sequence[str]) -> None:
        if self.fail_saves:
            raise WatchListStorageError('Storage quota exceeded')
        self.stored = list(seat_ids)
        self.save_count += 1


@pytest.fixture
def notifier() -> RecordingSeatNotifier:
    return RecordingSeatNotifier()


@pytest.fixture
def watch_storage() -> MemoryWatchListStorage:
    return MemoryWatchListStorage()


@pytest.fixture
def seat_store() -> InMemorySeatStore:
    """Ten seats, three of them occupied by someone else"""
    seats = [Seat(id=f'I-{i}') for i in range(1, 11)]
    for i in (8, 9, 10):
        seats[i - 1] = Seat(
            id=f'I-{i}',
            status=SeatStatus.OCCUPIED,
            vacant_at=datetime(2026, 10, 19, 16, 0, tzinfo=timezone.utc),
            booked_by='someone-else',
        )
    return InMemorySeatStore(seats=seats, user_id=TEST_USER_ID)


@pytest.fixture
def reconciler(
    seat_store: InMemorySeatStore,
    watch_storage: MemoryWatchListStorage,
    notifier: RecordingSeatNotifier,
) -> StudySpaceReconciler:
    return StudySpaceReconciler(
        seat_store=seat_store,
        watch_list_storage=watch_storage,
        notifier=notifier,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def user_id() -> str:
    return TEST_USER_ID
