"""Seat metadata value object and LRC floor layout."""

import re
from typing import List, Optional

import attrs


SOFA_TYPE = 'Casual Sofa'
GROUP_TABLE_SEAT_TYPE = 'Group Table Seat'
INDIVIDUAL_TYPE = 'Individual Study Area'
UNKNOWN_TYPE = 'Study Seat'

SOFA_COUNT = 6
GROUP_TABLE_SIDES = ('L', 'R')
GROUP_TABLES_PER_SIDE = 7
SEATS_PER_GROUP_TABLE = 10
INDIVIDUAL_COUNT = 48

_GROUP_TABLE_SEAT_RE = re.compile(r'^(GT-[LR]\d+)-S\d+$')
_SOFA_RE = re.compile(r'^Sofa-\d+$')
_INDIVIDUAL_RE = re.compile(r'^I-\d+$')


@attrs.define(frozen=True)
class SeatMetadata:
    """
    Display-only description of a seat (Value Object).

    Derived from the seat id alone, never stored in the seat table.
    """

    seat_type: str
    parent: Optional[str] = None


def describe_seat(seat_id: str) -> SeatMetadata:
    if match := _GROUP_TABLE_SEAT_RE.match(seat_id):
        return SeatMetadata(seat_type=GROUP_TABLE_SEAT_TYPE, parent=match.group(1))
    if _SOFA_RE.match(seat_id):
        return SeatMetadata(seat_type=SOFA_TYPE)
    if _INDIVIDUAL_RE.match(seat_id):
        return SeatMetadata(seat_type=INDIVIDUAL_TYPE)
    return SeatMetadata(seat_type=UNKNOWN_TYPE)


def lrc_seat_ids() -> List[str]:
    """All seat ids of the LRC floor plan, in provisioning order."""
    seat_ids = [f'Sofa-{i}' for i in range(1, SOFA_COUNT + 1)]
    for side in GROUP_TABLE_SIDES:
        for table in range(1, GROUP_TABLES_PER_SIDE + 1):
            seat_ids.extend(
                f'GT-{side}{table}-S{seat}' for seat in range(1, SEATS_PER_GROUP_TABLE + 1)
            )
    seat_ids.extend(f'I-{i}' for i in range(1, INDIVIDUAL_COUNT + 1))
    return seat_ids
