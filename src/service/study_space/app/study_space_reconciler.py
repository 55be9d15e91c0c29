"""
Study Space Seat Reconciler

Owns the local view of the LRC seat map for one signed-in user.

Flow:
1. mount: resolve identity, restore watch-list, fetch snapshot, follow change feed
2. select_seat: pure local selection
3. book: optimistic apply -> conditional commit -> replace or roll back
4. change feed: replace seats by id, fire watch-list notifications

Every failure is turned into one notification and a result object at the
operation that produced it; nothing is raised to the page layer.
"""

from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, Dict, List, Optional

import anyio
from anyio.abc import TaskGroup, TaskStatus

from src.platform.exception.exceptions import CustomBaseError
from src.platform.logging.loguru_io import Logger
from src.service.study_space.app.dto import BookingOutcome, StudySpaceSnapshot, WatchOutcome
from src.service.study_space.app.interface import ISeatNotifier, ISeatStore, IWatchListStorage
from src.service.study_space.app.watch_list import WatchList
from src.service.study_space.domain.booking_reconciliation import (
    BookingAttempt,
    CommitResult,
    apply_optimistic_booking,
    reconcile_booking,
)
from src.service.study_space.domain.entity.seat_entity import Seat
from src.service.study_space.domain.enum import NotificationLevel, SeatStatus
from src.service.study_space.domain.study_space_errors import (
    BookingFailedError,
    InvalidBookingDurationError,
    SeatAlreadyOccupiedError,
    SeatNotSelectedError,
    SeatSyncError,
    UnauthenticatedError,
    WatchListStorageError,
)
from src.service.study_space.domain.value_object.seat_notification import SeatNotification
from src.service.study_space.domain.value_object.seat_stats import SeatStats


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StudySpaceReconciler:
    def __init__(
        self,
        *,
        seat_store: ISeatStore,
        watch_list_storage: IWatchListStorage,
        notifier: ISeatNotifier,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = seat_store
        self._watch_list = WatchList(watch_list_storage)
        self._notifier = notifier
        self._clock = clock

        self._seats: Dict[str, Seat] = {}
        self._selected_id: Optional[str] = None
        self._user_id: Optional[str] = None
        self._loading = True
        self._sync_error: Optional[str] = None

        self._subscription_scope: Optional[anyio.CancelScope] = None
        self._following = False

    # ==================== State ====================

    @property
    def state(self) -> StudySpaceSnapshot:
        return StudySpaceSnapshot(
            loading=self._loading,
            seats=MappingProxyType(dict(self._seats)),
            selected_seat=self.selected_seat,
            stats=self.stats,
            sync_error=self._sync_error,
        )

    @property
    def is_ready(self) -> bool:
        return not self._loading

    @property
    def current_user(self) -> Optional[str]:
        return self._user_id

    @property
    def is_following_changes(self) -> bool:
        return self._following

    @property
    def selected_seat(self) -> Optional[Seat]:
        if self._selected_id is None:
            return None
        return self._seats.get(self._selected_id) or Seat(id=self._selected_id)

    @property
    def stats(self) -> SeatStats:
        return SeatStats.from_seats(self._seats.values())

    @property
    def watched_seat_ids(self) -> List[str]:
        return self._watch_list.seat_ids

    def get_seat(self, seat_id: str) -> Optional[Seat]:
        return self._seats.get(seat_id)

    # ==================== Lifecycle ====================

    @Logger.io
    async def mount(self, *, task_group: TaskGroup) -> bool:
        """
        Load identity, watch-list and seats, then follow the change feed.

        Returns:
            True once the component is ready. On failure the component stays
            loading and the call can be repeated. Mounting again after
            unmount reloads the snapshot and reopens the feed.
        """
        if not self._loading and self._following:
            return True

        try:
            self._user_id = await self._store.current_user()
            self._watch_list.restore()
            seats = await self._store.fetch_all()
            self._seats = {seat.id: seat for seat in seats}
            await task_group.start(self._follow_changes)
        except Exception as e:
            message = e.message if isinstance(e, CustomBaseError) else str(e)
            error = SeatSyncError(f'Could not load seats: {message}')
            self._sync_error = error.message
            self._report(error, title='Seat map unavailable')
            return False

        self._loading = False
        self._sync_error = None
        Logger.base.info(
            f'✅ [STUDY-SPACE] Ready with {len(self._seats)} seats, '
            f'user={self._user_id}, watching={self._watch_list.seat_ids}'
        )
        return True

    def unmount(self) -> None:
        """Release the change feed. Rows still in flight are ignored."""
        self._following = False
        if self._subscription_scope is not None:
            self._subscription_scope.cancel()
            self._subscription_scope = None
            Logger.base.info('🔌 [STUDY-SPACE] Change feed released')

    async def _follow_changes(
        self, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED
    ) -> None:
        started = False
        with anyio.CancelScope() as scope:
            self._subscription_scope = scope
            try:
                async with self._store.subscribe() as changes:
                    self._following = True
                    started = True
                    task_status.started()
                    async for seat in changes:
                        if scope.cancel_called:
                            break
                        self._apply_change(seat)
                reason = 'the change feed closed'
            except Exception as e:
                if not started:
                    raise
                reason = str(e)
            finally:
                # A remount may already own a newer scope
                if self._subscription_scope is scope:
                    self._following = False
                    self._subscription_scope = None

            if not scope.cancel_called:
                error = SeatSyncError(f'Live updates stopped: {reason}')
                self._sync_error = error.message
                self._report(error, title='Seat map out of date')

    def _apply_change(self, seat: Seat) -> None:
        self._seats[seat.id] = seat
        Logger.base.debug(f'📥 [STUDY-SPACE] {seat.id} -> {seat.status}')

        if seat.status != SeatStatus.AVAILABLE:
            return

        try:
            was_watched = self._watch_list.discard(seat.id)
        except WatchListStorageError as e:
            # The in-memory list is already updated; the user still gets told
            was_watched = True
            self._report(e, title='Could not save watch-list', seat_id=seat.id)

        if was_watched:
            self._notifier.notify(
                SeatNotification(
                    level=NotificationLevel.SUCCESS,
                    title='Seat is free',
                    message=f'{seat.id} is now available',
                    seat_id=seat.id,
                )
            )

    # ==================== Selection ====================

    def select_seat(self, seat_id: str) -> Seat:
        self._selected_id = seat_id
        selected = self.selected_seat
        assert selected is not None
        return selected

    def clear_selection(self) -> None:
        self._selected_id = None

    # ==================== Booking ====================

    @Logger.io
    async def book(self, duration_minutes: int) -> BookingOutcome:
        """
        Book the selected seat for ``duration_minutes``.

        The seat shows as occupied immediately. The store arbitrates between
        concurrent bookings; until it answers the local change is speculative
        and is undone if the commit is rejected.
        """
        try:
            seat = self._check_booking_preconditions(duration_minutes)
        except CustomBaseError as e:
            self._report(e, title='Cannot book seat', seat_id=self._selected_id)
            return BookingOutcome(success=False, seat=self.selected_seat, error=e)

        assert self._user_id is not None
        attempt = BookingAttempt.starting_at(
            seat_id=seat.id,
            user_id=self._user_id,
            now=self._clock(),
            duration_minutes=duration_minutes,
        )
        self._seats, pending = apply_optimistic_booking(self._seats, attempt)

        try:
            committed = await self._store.conditional_update(
                pending.seat_id, pending.update, expected_status=pending.expected_status
            )
            result = CommitResult.ok(committed)
        except Exception as e:
            message = e.message if isinstance(e, CustomBaseError) else str(e)
            result = CommitResult.failed(message or f'Could not book seat {seat.id}')

        self._seats = reconcile_booking(self._seats, pending, result)

        if result.committed is None:
            error = BookingFailedError(seat.id, result.error_message or 'Booking failed')
            self._report(error, title='Booking failed', seat_id=seat.id)
            return BookingOutcome(success=False, seat=self._seats.get(seat.id), error=error)

        self._selected_id = None
        booked = result.committed
        until = f' until {booked.vacant_at:%H:%M}' if booked.vacant_at else ''
        Logger.base.info(f'✅ [STUDY-SPACE] Booked {booked.id} for {booked.booked_by}{until}')
        self._notifier.notify(
            SeatNotification(
                level=NotificationLevel.SUCCESS,
                title='Seat booked',
                message=f'{booked.id} is yours{until}',
                seat_id=booked.id,
            )
        )
        return BookingOutcome(success=True, seat=booked)

    async def book_seat(self, seat_id: str, duration_minutes: int) -> BookingOutcome:
        self.select_seat(seat_id)
        return await self.book(duration_minutes)

    def _check_booking_preconditions(self, duration_minutes: int) -> Seat:
        if self._loading:
            raise SeatSyncError('Seats are still loading')
        seat = self.selected_seat
        if seat is None:
            raise SeatNotSelectedError()
        if duration_minutes <= 0:
            raise InvalidBookingDurationError(duration_minutes)
        if self._user_id is None:
            raise UnauthenticatedError()
        if seat.is_occupied:
            raise SeatAlreadyOccupiedError(seat.id)
        return seat

    # ==================== Watch-list ====================

    def watch(self, seat_id: str) -> WatchOutcome:
        try:
            added = self._watch_list.add(seat_id)
        except WatchListStorageError as e:
            self._report(e, title='Could not save watch-list', seat_id=seat_id)
            return WatchOutcome(seat_id=seat_id, added=False, error=e)

        if added:
            title, message = 'Watching seat', f"We'll let you know when {seat_id} is free"
        else:
            title, message = 'Already watching', f'You are already watching {seat_id}'
        self._notifier.notify(
            SeatNotification(
                level=NotificationLevel.INFO, title=title, message=message, seat_id=seat_id
            )
        )
        return WatchOutcome(seat_id=seat_id, added=added)

    def watch_selected(self) -> WatchOutcome:
        if self._selected_id is None:
            error = SeatNotSelectedError()
            self._report(error, title='Cannot watch seat')
            return WatchOutcome(seat_id=None, error=error)
        return self.watch(self._selected_id)

    def unwatch(self, seat_id: str) -> bool:
        try:
            return self._watch_list.discard(seat_id)
        except WatchListStorageError as e:
            self._report(e, title='Could not save watch-list', seat_id=seat_id)
            return False

    # ==================== Notifications ====================

    def _report(
        self, error: CustomBaseError, *, title: str, seat_id: Optional[str] = None
    ) -> None:
        Logger.base.warning(f'⚠️ [STUDY-SPACE] {title}: {type(error).__name__}: {error.message}')
        self._notifier.notify(
            SeatNotification(
                level=NotificationLevel.ERROR,
                title=title,
                message=error.message,
                seat_id=seat_id,
            )
        )
