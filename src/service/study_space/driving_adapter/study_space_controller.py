from collections.abc import AsyncGenerator
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sse_starlette.sse import EventSourceResponse

from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.event.i_in_memory_broadcaster import IInMemoryEventBroadcaster
from src.platform.logging.loguru_io import Logger
from src.service.study_space.app.study_space_reconciler import StudySpaceReconciler
from src.service.study_space.driven_adapter.broadcast_seat_notifier import BroadcastSeatNotifier
from src.service.study_space.driving_adapter.study_space_schema import (
    BookingResponse,
    BookSeatRequest,
    NotificationResponse,
    SeatResponse,
    SeatStatsResponse,
    StudySpaceStateResponse,
    UnwatchResponse,
    WatchResponse,
)


router = APIRouter()


def get_reconciler() -> StudySpaceReconciler:
    return container.study_space_reconciler()


def get_notifier() -> BroadcastSeatNotifier:
    return container.seat_notifier()


def get_broadcaster() -> IInMemoryEventBroadcaster:
    return container.event_broadcaster()


# ============================ Seat Map ============================


@router.get('/state', status_code=status.HTTP_200_OK)
async def get_state(
    reconciler: StudySpaceReconciler = Depends(get_reconciler),
) -> StudySpaceStateResponse:
    return StudySpaceStateResponse.from_snapshot(
        reconciler.state, watching=reconciler.watched_seat_ids
    )


@router.get('/stats', status_code=status.HTTP_200_OK)
async def get_stats(
    reconciler: StudySpaceReconciler = Depends(get_reconciler),
) -> SeatStatsResponse:
    return SeatStatsResponse.from_stats(reconciler.stats)


@router.get('/seats/{seat_id}', status_code=status.HTTP_200_OK)
async def get_seat(
    seat_id: str,
    reconciler: StudySpaceReconciler = Depends(get_reconciler),
) -> SeatResponse:
    seat = reconciler.get_seat(seat_id)
    if seat is None:
        raise HTTPException(status_code=404, detail=f'Seat not found: {seat_id}')
    return SeatResponse.from_seat(seat)


# ============================ Selection ============================


@router.post('/seats/{seat_id}/select', status_code=status.HTTP_200_OK)
async def select_seat(
    seat_id: str,
    reconciler: StudySpaceReconciler = Depends(get_reconciler),
) -> SeatResponse:
    """Select a seat locally. Seats not yet in the map are shown as Available."""
    return SeatResponse.from_seat(reconciler.select_seat(seat_id))


@router.delete('/selection', status_code=status.HTTP_204_NO_CONTENT)
async def clear_selection(
    reconciler: StudySpaceReconciler = Depends(get_reconciler),
) -> None:
    reconciler.clear_selection()


# ============================ Booking ============================


@router.post('/book', status_code=status.HTTP_201_CREATED)
@Logger.io
async def book_selected_seat(
    request: BookSeatRequest,
    reconciler: StudySpaceReconciler = Depends(get_reconciler),
) -> BookingResponse:
    duration = request.duration_minutes or settings.DEFAULT_BOOKING_MINUTES
    outcome = await reconciler.book(duration)
    if outcome.error is not None:
        raise outcome.error
    assert outcome.seat is not None
    return BookingResponse(success=True, seat=SeatResponse.from_seat(outcome.seat))


# ============================ Watch-list ============================


@router.get('/watch', status_code=status.HTTP_200_OK)
async def list_watched_seats(
    reconciler: StudySpaceReconciler = Depends(get_reconciler),
) -> List[str]:
    return reconciler.watched_seat_ids


@router.post('/watch', status_code=status.HTTP_200_OK)
async def watch_selected_seat(
    reconciler: StudySpaceReconciler = Depends(get_reconciler),
) -> WatchResponse:
    outcome = reconciler.watch_selected()
    if outcome.error is not None:
        raise outcome.error
    assert outcome.seat_id is not None
    return WatchResponse(
        seat_id=outcome.seat_id, added=outcome.added, watching=reconciler.watched_seat_ids
    )


@router.delete('/watch/{seat_id}', status_code=status.HTTP_200_OK)
async def unwatch_seat(
    seat_id: str,
    reconciler: StudySpaceReconciler = Depends(get_reconciler),
) -> UnwatchResponse:
    removed = reconciler.unwatch(seat_id)
    return UnwatchResponse(seat_id=seat_id, removed=removed, watching=reconciler.watched_seat_ids)


# ============================ Notifications ============================


@router.get('/notifications', status_code=status.HTTP_200_OK)
async def list_notifications(
    notifier: BroadcastSeatNotifier = Depends(get_notifier),
) -> List[NotificationResponse]:
    return [NotificationResponse.from_notification(n) for n in notifier.recent]


@router.get('/notifications/sse', status_code=status.HTTP_200_OK)
async def stream_notifications(
    notifier: BroadcastSeatNotifier = Depends(get_notifier),
    broadcaster: IInMemoryEventBroadcaster = Depends(get_broadcaster),
) -> EventSourceResponse:
    """SSE push of toast notifications for this page."""
    stream = await broadcaster.subscribe(channel=notifier.channel)

    async def event_generator() -> AsyncGenerator[dict, None]:
        try:
            async for event in stream:
                response = NotificationResponse(
                    level=event['level'],
                    title=event['title'],
                    message=event['message'],
                    seat_id=event.get('seat_id'),
                )
                yield {'event': event['event_type'], 'data': response.model_dump_json()}
        finally:
            await broadcaster.unsubscribe(channel=notifier.channel, stream=stream)

    return EventSourceResponse(event_generator())
