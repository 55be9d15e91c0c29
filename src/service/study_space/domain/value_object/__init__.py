"""Study Space Value Objects"""

from src.service.study_space.domain.value_object.seat_metadata import (
    SeatMetadata,
    describe_seat,
    lrc_seat_ids,
)

__all__ = ['SeatMetadata', 'describe_seat', 'lrc_seat_ids']
