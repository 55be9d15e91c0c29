"""
Seat Row Codec

Seat rows travel as flat JSON objects:
    {"id": "I-17", "status": "Occupied", "vacant_at": "2026-10-19T16:00:00+00:00", "booked_by": "u1"}

Missing or null fields fall back to an available, unheld seat.
"""

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import orjson

from src.service.study_space.domain.booking_reconciliation import SeatUpdate
from src.service.study_space.domain.entity.seat_entity import Seat
from src.service.study_space.domain.enum import SeatStatus
from src.service.study_space.domain.study_space_errors import SeatRowDecodeError


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as e:
        raise SeatRowDecodeError(f'Invalid vacant_at value: {value!r}') from e


def decode_row(row: Mapping[str, Any]) -> Seat:
    seat_id = row.get('id')
    if not seat_id:
        raise SeatRowDecodeError(f'Seat row without id: {dict(row)!r}')

    raw_status = row.get('status') or SeatStatus.AVAILABLE
    try:
        status = SeatStatus(raw_status)
    except ValueError as e:
        raise SeatRowDecodeError(f'Unknown status {raw_status!r} for seat {seat_id}') from e

    return Seat(
        id=str(seat_id),
        status=status,
        vacant_at=_parse_datetime(row.get('vacant_at')),
        booked_by=row.get('booked_by') or None,
    )


def encode_row(seat: Seat) -> Dict[str, Optional[str]]:
    return {
        'id': seat.id,
        'status': str(seat.status),
        'vacant_at': seat.vacant_at.isoformat() if seat.vacant_at else None,
        'booked_by': seat.booked_by,
    }


def encode_update(update: SeatUpdate) -> Dict[str, str]:
    """Hash fields for a conditional update; cleared fields become empty strings."""
    return {
        'status': str(update.status),
        'vacant_at': update.vacant_at.isoformat() if update.vacant_at else '',
        'booked_by': update.booked_by or '',
    }


def loads_row(data: bytes | str) -> Seat:
    try:
        payload = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise SeatRowDecodeError(f'Malformed seat row: {e}') from e
    if not isinstance(payload, dict):
        raise SeatRowDecodeError(f'Seat row must be an object, got {type(payload).__name__}')
    return decode_row(payload)


def dumps_row(seat: Seat) -> bytes:
    return orjson.dumps(encode_row(seat))
