"""DTOs exposed by the study-space reconciler to the page layer."""

from typing import Mapping, Optional

import attrs

from src.platform.exception.exceptions import CustomBaseError
from src.service.study_space.domain.entity.seat_entity import Seat
from src.service.study_space.domain.value_object.seat_stats import SeatStats


@attrs.define(frozen=True)
class BookingOutcome:
    """Seat booking result"""

    success: bool
    seat: Optional[Seat] = None
    error: Optional[CustomBaseError] = None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None


@attrs.define(frozen=True)
class WatchOutcome:
    """Watch-list mutation result"""

    seat_id: Optional[str]
    added: bool = False
    error: Optional[CustomBaseError] = None


@attrs.define(frozen=True)
class StudySpaceSnapshot:
    """Read-only view of the reconciler for rendering"""

    loading: bool
    seats: Mapping[str, Seat]
    selected_seat: Optional[Seat]
    stats: SeatStats
    sync_error: Optional[str] = None
