"""Occupancy statistics value object."""

from typing import Iterable

import attrs

from src.service.study_space.domain.entity.seat_entity import Seat


@attrs.define(frozen=True)
class SeatStats:
    total: int = 0
    occupied: int = 0
    available: int = 0
    percent: int = 0

    @classmethod
    def from_seats(cls, seats: Iterable[Seat]) -> 'SeatStats':
        total = 0
        occupied = 0
        for seat in seats:
            total += 1
            if seat.is_occupied:
                occupied += 1
        percent = round(occupied / total * 100) if total else 0
        return cls(total=total, occupied=occupied, available=total - occupied, percent=percent)
