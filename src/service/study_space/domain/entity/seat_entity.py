from datetime import datetime
from typing import List, Optional

import attrs

from src.service.study_space.domain.enum import SeatStatus
from src.service.study_space.domain.value_object.seat_metadata import describe_seat, lrc_seat_ids


def _default_seat_type(seat: 'Seat') -> str:
    return describe_seat(seat.id).seat_type


def _default_parent(seat: 'Seat') -> Optional[str]:
    return describe_seat(seat.id).parent


@attrs.define(frozen=True)
class Seat:
    """
    A bookable seat as stored in the seat table.

    Instances are immutable: every state change produces a new Seat, so a
    cache entry can be compared by identity to tell whether it was replaced.
    """

    id: str
    status: SeatStatus = SeatStatus.AVAILABLE
    vacant_at: Optional[datetime] = None
    booked_by: Optional[str] = None
    seat_type: str = attrs.field(
        default=attrs.Factory(_default_seat_type, takes_self=True), eq=False
    )
    parent: Optional[str] = attrs.field(
        default=attrs.Factory(_default_parent, takes_self=True), eq=False
    )

    @property
    def is_occupied(self) -> bool:
        return self.status == SeatStatus.OCCUPIED

    def occupy(self, *, booked_by: str, vacant_at: datetime) -> 'Seat':
        return attrs.evolve(
            self, status=SeatStatus.OCCUPIED, booked_by=booked_by, vacant_at=vacant_at
        )

    def release(self) -> 'Seat':
        return attrs.evolve(self, status=SeatStatus.AVAILABLE, booked_by=None, vacant_at=None)


def build_lrc_layout() -> List[Seat]:
    return [Seat(id=seat_id) for seat_id in lrc_seat_ids()]
