"""
Two-phase booking at the client boundary.

Phase 1 applies the booking speculatively to a copy of the seat cache and
keeps the prior entry so the change can be undone. Phase 2 folds the store's
answer back in: the committed row replaces the speculative one, or the prior
entry comes back. Both phases are pure so they can be exercised without a
store.
"""

from datetime import datetime, timedelta
from typing import Dict, Mapping, Optional, Tuple

import attrs

from src.service.study_space.domain.entity.seat_entity import Seat
from src.service.study_space.domain.enum import SeatStatus


@attrs.define(frozen=True)
class BookingAttempt:
    seat_id: str
    user_id: str
    vacant_at: datetime

    @classmethod
    def starting_at(
        cls, *, seat_id: str, user_id: str, now: datetime, duration_minutes: int
    ) -> 'BookingAttempt':
        return cls(
            seat_id=seat_id, user_id=user_id, vacant_at=now + timedelta(minutes=duration_minutes)
        )


@attrs.define(frozen=True)
class SeatUpdate:
    """Fields written to the seat row by a conditional update."""

    status: SeatStatus
    vacant_at: Optional[datetime] = None
    booked_by: Optional[str] = None


@attrs.define(frozen=True)
class PendingCommit:
    seat_id: str
    prior: Optional[Seat]
    speculative: Seat
    update: SeatUpdate
    expected_status: SeatStatus = SeatStatus.AVAILABLE


@attrs.define(frozen=True)
class CommitResult:
    committed: Optional[Seat] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.committed is not None

    @classmethod
    def ok(cls, seat: Seat) -> 'CommitResult':
        return cls(committed=seat)

    @classmethod
    def failed(cls, message: str) -> 'CommitResult':
        return cls(error_message=message)


def apply_optimistic_booking(
    prior_seats: Mapping[str, Seat], attempt: BookingAttempt
) -> Tuple[Dict[str, Seat], PendingCommit]:
    prior = prior_seats.get(attempt.seat_id)
    base = prior if prior is not None else Seat(id=attempt.seat_id)
    speculative = base.occupy(booked_by=attempt.user_id, vacant_at=attempt.vacant_at)

    speculative_seats = dict(prior_seats)
    speculative_seats[attempt.seat_id] = speculative

    pending = PendingCommit(
        seat_id=attempt.seat_id,
        prior=prior,
        speculative=speculative,
        update=SeatUpdate(
            status=SeatStatus.OCCUPIED,
            vacant_at=attempt.vacant_at,
            booked_by=attempt.user_id,
        ),
    )
    return speculative_seats, pending


def reconcile_booking(
    current_seats: Mapping[str, Seat], pending: PendingCommit, result: CommitResult
) -> Dict[str, Seat]:
    final_seats = dict(current_seats)

    if result.committed is not None:
        final_seats[pending.seat_id] = result.committed
        return final_seats

    # A row pushed by the store while the commit was in flight is newer than
    # the prior snapshot and stays
    if final_seats.get(pending.seat_id) is not pending.speculative:
        return final_seats

    if pending.prior is None:
        final_seats.pop(pending.seat_id, None)
    else:
        final_seats[pending.seat_id] = pending.prior
    return final_seats
