from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.service.study_space.app.dto import StudySpaceSnapshot
from src.service.study_space.domain.entity.seat_entity import Seat
from src.service.study_space.domain.value_object.seat_notification import SeatNotification
from src.service.study_space.domain.value_object.seat_stats import SeatStats


class SeatResponse(BaseModel):
    id: str
    status: str
    vacant_at: Optional[datetime] = None
    booked_by: Optional[str] = None
    type: str
    parent: Optional[str] = None

    @classmethod
    def from_seat(cls, seat: Seat) -> 'SeatResponse':
        return cls(
            id=seat.id,
            status=str(seat.status),
            vacant_at=seat.vacant_at,
            booked_by=seat.booked_by,
            type=seat.seat_type,
            parent=seat.parent,
        )


class SeatStatsResponse(BaseModel):
    total: int
    occupied: int
    available: int
    percent: int

    @classmethod
    def from_stats(cls, stats: SeatStats) -> 'SeatStatsResponse':
        return cls(
            total=stats.total,
            occupied=stats.occupied,
            available=stats.available,
            percent=stats.percent,
        )


class StudySpaceStateResponse(BaseModel):
    loading: bool
    seats: Dict[str, SeatResponse]
    selected_seat: Optional[SeatResponse] = None
    stats: SeatStatsResponse
    sync_error: Optional[str] = None
    watching: List[str] = []

    @classmethod
    def from_snapshot(
        cls, snapshot: StudySpaceSnapshot, *, watching: List[str]
    ) -> 'StudySpaceStateResponse':
        return cls(
            loading=snapshot.loading,
            seats={seat_id: SeatResponse.from_seat(seat) for seat_id, seat in snapshot.seats.items()},
            selected_seat=(
                SeatResponse.from_seat(snapshot.selected_seat) if snapshot.selected_seat else None
            ),
            stats=SeatStatsResponse.from_stats(snapshot.stats),
            sync_error=snapshot.sync_error,
            watching=watching,
        )


class BookSeatRequest(BaseModel):
    duration_minutes: Optional[int] = Field(default=None, gt=0, le=24 * 60)


class BookingResponse(BaseModel):
    success: bool
    seat: SeatResponse


class WatchResponse(BaseModel):
    seat_id: str
    added: bool
    watching: List[str]


class NotificationResponse(BaseModel):
    level: str
    title: str
    message: str
    seat_id: Optional[str] = None

    @classmethod
    def from_notification(cls, notification: SeatNotification) -> 'NotificationResponse':
        return cls(**notification.to_dict())


class UnwatchResponse(BaseModel):
    seat_id: str
    removed: bool
    watching: List[str]
