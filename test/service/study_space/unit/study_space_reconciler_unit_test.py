"""
Unit tests for StudySpaceReconciler

Test Coverage:
1. Mount: identity, watch-list restore, snapshot, change feed, sync errors
2. Change feed: rows replace cache entries, unmount stops mutations
3. Booking: preconditions, optimistic apply, commit, rollback, concurrent bookings
4. Watch-list: idempotent watch, notify-when-free, storage failures
5. Statistics and exposed state
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream
from anyio import wait_all_tasks_blocked
import pytest

from src.service.study_space.app.interface import ISeatStore
from src.service.study_space.app.study_space_reconciler import StudySpaceReconciler
from src.service.study_space.domain.booking_reconciliation import SeatUpdate
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
from src.service.study_space.driven_adapter.in_memory_seat_store import InMemorySeatStore


pytestmark = pytest.mark.unit


class SignedInView(ISeatStore):
    """Shares one store between reconcilers signed in as different users"""

    def __init__(self, store: InMemorySeatStore, user_id: str) -> None:
        self._store = store
        self._user_id = user_id

    async def fetch_all(self) -> List[Seat]:
        return await self._store.fetch_all()

    def subscribe(self) -> AbstractAsyncContextManager[MemoryObjectReceiveStream[Seat]]:
        return self._store.subscribe()

    async def conditional_update(
        self,
        seat_id: str,
        update: SeatUpdate,
        *,
        expected_status: SeatStatus = SeatStatus.AVAILABLE,
    ) -> Seat:
        return await self._store.conditional_update(
            seat_id, update, expected_status=expected_status
        )

    async def current_user(self) -> Optional[str]:
        return self._user_id


def _occupied(seat_id: str, *, booked_by: str = 'walk-in') -> Seat:
    return Seat(
        id=seat_id,
        status=SeatStatus.OCCUPIED,
        vacant_at=datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc),
        booked_by=booked_by,
    )


class TestMount:
    @pytest.mark.asyncio
    async def test_mount_loads_snapshot_and_follows_changes(self, reconciler, seat_store, user_id):
        async with anyio.create_task_group() as tg:
            # When
            ready = await reconciler.mount(task_group=tg)

            # Then
            assert ready is True
            assert reconciler.is_ready
            assert reconciler.current_user == user_id
            assert len(reconciler.state.seats) == 10
            assert reconciler.is_following_changes
            assert seat_store.subscriber_count == 1
            assert seat_store.fetch_count == 1

            reconciler.unmount()

    def test_component_is_loading_before_mount(self, reconciler):
        state = reconciler.state

        assert state.loading is True
        assert state.seats == {}
        assert state.stats.total == 0

    @pytest.mark.asyncio
    async def test_mount_restores_watch_list(self, reconciler, watch_storage):
        watch_storage.stored = ['I-3', 'I-8', 'I-3']

        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)

            assert reconciler.watched_seat_ids == ['I-3', 'I-8']
            reconciler.unmount()

    @pytest.mark.asyncio
    async def test_snapshot_failure_surfaces_sync_error(self, reconciler, seat_store, notifier):
        # Given: the backend is unreachable
        seat_store.fail_next_fetch('Network down')

        async with anyio.create_task_group() as tg:
            # When
            ready = await reconciler.mount(task_group=tg)

        # Then: still loading, one error notification, no subscription opened
        assert ready is False
        state = reconciler.state
        assert state.loading is True
        assert state.sync_error is not None
        assert 'Network down' in state.sync_error
        assert seat_store.subscriber_count == 0
        assert notifier.titles == ['Seat map unavailable']
        assert notifier.notifications[0].level == NotificationLevel.ERROR

    @pytest.mark.asyncio
    async def test_mount_can_be_retried_after_failure(self, reconciler, seat_store):
        seat_store.fail_next_fetch()

        async with anyio.create_task_group() as tg:
            assert await reconciler.mount(task_group=tg) is False
            assert await reconciler.mount(task_group=tg) is True

            assert reconciler.state.sync_error is None
            assert reconciler.is_ready
            reconciler.unmount()

    @pytest.mark.asyncio
    async def test_mount_twice_keeps_single_subscription(self, reconciler, seat_store):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            await reconciler.mount(task_group=tg)

            assert seat_store.subscriber_count == 1
            assert seat_store.fetch_count == 1
            reconciler.unmount()

    @pytest.mark.asyncio
    async def test_booking_while_loading_is_rejected(self, reconciler, seat_store, notifier):
        reconciler.select_seat('I-1')

        outcome = await reconciler.book(30)

        assert outcome.success is False
        assert isinstance(outcome.error, SeatSyncError)
        assert seat_store.commit_count == 0
        assert len(notifier.of_level(NotificationLevel.ERROR)) == 1


class TestChangeFeed:
    @pytest.mark.asyncio
    async def test_inbound_row_replaces_cache_entry(self, reconciler, seat_store):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            reconciler.select_seat('I-2')

            # When: another user books I-2
            row = _occupied('I-2')
            seat_store.put(row)
            await wait_all_tasks_blocked()

            # Then: cache and selection both reflect the new row
            assert reconciler.get_seat('I-2') == row
            assert reconciler.selected_seat == row
            assert reconciler.stats.occupied == 4
            reconciler.unmount()

    @pytest.mark.asyncio
    async def test_unmount_releases_subscription(self, reconciler, seat_store):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)

            reconciler.unmount()
            await wait_all_tasks_blocked()

            assert not reconciler.is_following_changes
            assert seat_store.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_rows_after_unmount_are_ignored(self, reconciler, seat_store):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            reconciler.unmount()

            seat_store.put(_occupied('I-1'))
            await wait_all_tasks_blocked()

        assert reconciler.get_seat('I-1').status == SeatStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_remount_after_unmount_reopens_feed(self, reconciler, seat_store):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            reconciler.unmount()
            await wait_all_tasks_blocked()

            assert await reconciler.mount(task_group=tg) is True
            seat_store.put(_occupied('I-1'))
            await wait_all_tasks_blocked()

            assert reconciler.is_following_changes
            assert reconciler.get_seat('I-1').is_occupied
            assert seat_store.subscriber_count == 1
            reconciler.unmount()

    @pytest.mark.asyncio
    async def test_lost_feed_surfaces_sync_error(self, reconciler, seat_store, notifier):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)

            # When: the realtime connection drops
            await seat_store.drop_subscribers()
            await wait_all_tasks_blocked()

            # Then
            assert not reconciler.is_following_changes
            assert reconciler.state.sync_error is not None
            assert 'Live updates stopped' in reconciler.state.sync_error
            assert notifier.titles == ['Seat map out of date']


class TestSelection:
    @pytest.mark.asyncio
    async def test_select_known_seat_returns_cache_entry(self, reconciler):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)

            seat = reconciler.select_seat('I-8')

            assert seat is reconciler.get_seat('I-8')
            assert seat.is_occupied
            reconciler.unmount()

    def test_select_unknown_seat_yields_available_with_metadata(self, reconciler):
        seat = reconciler.select_seat('GT-R3-S7')

        assert seat.status == SeatStatus.AVAILABLE
        assert seat.seat_type == 'Group Table Seat'
        assert seat.parent == 'GT-R3'

    def test_clear_selection(self, reconciler):
        reconciler.select_seat('I-1')

        reconciler.clear_selection()

        assert reconciler.selected_seat is None


class TestBookingPreconditions:
    @pytest.mark.asyncio
    async def test_book_without_selection_makes_no_store_call(
        self, reconciler, seat_store, notifier
    ):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)

            outcome = await reconciler.book(30)

            assert outcome.success is False
            assert isinstance(outcome.error, SeatNotSelectedError)
            assert seat_store.commit_count == 0
            assert notifier.titles == ['Cannot book seat']
            reconciler.unmount()

    @pytest.mark.asyncio
    async def test_book_when_signed_out_is_unauthenticated(self, reconciler, seat_store):
        seat_store.sign_in(None)

        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            reconciler.select_seat('I-1')

            outcome = await reconciler.book(30)

            assert isinstance(outcome.error, UnauthenticatedError)
            assert outcome.error.status_code == 401
            assert seat_store.commit_count == 0
            assert reconciler.get_seat('I-1').status == SeatStatus.AVAILABLE
            reconciler.unmount()

    @pytest.mark.asyncio
    async def test_book_occupied_seat_is_rejected_locally(self, reconciler, seat_store):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            reconciler.select_seat('I-9')

            outcome = await reconciler.book(30)

            assert isinstance(outcome.error, SeatAlreadyOccupiedError)
            assert outcome.error_message == 'Seat I-9 is already occupied'
            assert seat_store.commit_count == 0
            reconciler.unmount()

    @pytest.mark.asyncio
    @pytest.mark.parametrize('duration', [0, -15])
    async def test_non_positive_duration_is_rejected(self, reconciler, seat_store, duration):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            reconciler.select_seat('I-1')

            outcome = await reconciler.book(duration)

            assert isinstance(outcome.error, InvalidBookingDurationError)
            assert seat_store.commit_count == 0
            reconciler.unmount()


class TestBooking:
    @pytest.mark.asyncio
    async def test_successful_booking(self, reconciler, seat_store, notifier, fixed_now, user_id):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            reconciler.select_seat('I-1')

            # When
            outcome = await reconciler.book(30)

            # Then: cache holds the committed row and the selection is cleared
            assert outcome.success is True
            assert outcome.error is None
            assert outcome.seat.vacant_at == fixed_now + timedelta(minutes=30)
            assert outcome.seat.booked_by == user_id
            assert reconciler.get_seat('I-1') == outcome.seat
            assert seat_store.get('I-1') == outcome.seat
            assert reconciler.selected_seat is None
            assert notifier.titles == ['Seat booked']
            assert notifier.notifications[0].level == NotificationLevel.SUCCESS
            reconciler.unmount()

    @pytest.mark.asyncio
    async def test_book_seat_selects_then_books(self, reconciler, seat_store):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)

            outcome = await reconciler.book_seat('I-4', 45)

            assert outcome.success is True
            assert seat_store.get('I-4').is_occupied
            reconciler.unmount()

    @pytest.mark.asyncio
    async def test_failed_commit_rolls_back(self, reconciler, seat_store, notifier):
        seat_store.fail_next_commit('Network request failed')

        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            reconciler.select_seat('I-1')

            outcome = await reconciler.book(30)

            # Then: seat is Available again, selection kept, backend message surfaced
            assert outcome.success is False
            assert isinstance(outcome.error, BookingFailedError)
            assert outcome.error_message == 'Network request failed'
            assert reconciler.get_seat('I-1').status == SeatStatus.AVAILABLE
            assert reconciler.selected_seat.id == 'I-1'
            assert notifier.titles == ['Booking failed']
            reconciler.unmount()

    @pytest.mark.asyncio
    async def test_booking_is_visible_while_commit_is_in_flight(self, watch_storage, notifier):
        store = InMemorySeatStore(seats=[Seat(id='I-1')], user_id='u1', latency=0.05)
        reconciler = StudySpaceReconciler(
            seat_store=store, watch_list_storage=watch_storage, notifier=notifier
        )
        outcomes = []

        async def book() -> None:
            outcomes.append(await reconciler.book_seat('I-1', 30))

        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            tg.start_soon(book)
            await wait_all_tasks_blocked()

            # Speculative state before the store answers
            assert reconciler.get_seat('I-1').is_occupied
            assert reconciler.stats.percent == 100
            assert store.get('I-1').status == SeatStatus.AVAILABLE

            with anyio.fail_after(1):
                while not outcomes:
                    await anyio.sleep(0.01)
            reconciler.unmount()

        assert outcomes[0].success is True

    @pytest.mark.asyncio
    async def test_rollback_keeps_row_pushed_during_commit(self, watch_storage, notifier):
        store = InMemorySeatStore(seats=[Seat(id='I-1')], user_id='u1', latency=0.05)
        reconciler = StudySpaceReconciler(
            seat_store=store, watch_list_storage=watch_storage, notifier=notifier
        )
        outcomes = []

        async def book() -> None:
            outcomes.append(await reconciler.book_seat('I-1', 30))

        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            tg.start_soon(book)
            await wait_all_tasks_blocked()

            # When: someone else wins before our commit reaches the store
            winner = _occupied('I-1', booked_by='u2')
            store.put(winner)

            with anyio.fail_after(1):
                while not outcomes:
                    await anyio.sleep(0.01)
            reconciler.unmount()

        # Then: the winner's row survives our rollback
        assert outcomes[0].success is False
        assert outcomes[0].error_message == 'Seat I-1 is already occupied'
        assert reconciler.get_seat('I-1') == winner

    @pytest.mark.asyncio
    async def test_concurrent_bookings_have_exactly_one_winner(self, watch_storage, notifier):
        store = InMemorySeatStore(seats=[Seat(id=f'I-{i}') for i in range(1, 4)])
        alice = StudySpaceReconciler(
            seat_store=SignedInView(store, 'alice'),
            watch_list_storage=watch_storage,
            notifier=notifier,
        )
        bob = StudySpaceReconciler(
            seat_store=SignedInView(store, 'bob'),
            watch_list_storage=watch_storage,
            notifier=notifier,
        )
        outcomes = []

        async def book(reconciler: StudySpaceReconciler) -> None:
            outcomes.append(await reconciler.book_seat('I-2', 60))

        async with anyio.create_task_group() as tg:
            await alice.mount(task_group=tg)
            await bob.mount(task_group=tg)

            async with anyio.create_task_group() as booking_tg:
                booking_tg.start_soon(book, alice)
                booking_tg.start_soon(book, bob)
            await wait_all_tasks_blocked()

            winners = [outcome for outcome in outcomes if outcome.success]
            losers = [outcome for outcome in outcomes if not outcome.success]
            assert len(winners) == 1
            assert len(losers) == 1
            assert isinstance(losers[0].error, BookingFailedError)

            # Both caches converge on the winning commit
            assert alice.get_seat('I-2') == winners[0].seat
            assert bob.get_seat('I-2') == winners[0].seat
            assert store.get('I-2') == winners[0].seat

            alice.unmount()
            bob.unmount()


class TestWatchList:
    def test_watch_twice_persists_once(self, reconciler, watch_storage, notifier):
        first = reconciler.watch('I-5')
        second = reconciler.watch('I-5')

        assert first.added is True
        assert second.added is False
        assert watch_storage.stored == ['I-5']
        assert notifier.titles == ['Watching seat', 'Already watching']

    def test_watch_selected_without_selection(self, reconciler, watch_storage):
        outcome = reconciler.watch_selected()

        assert isinstance(outcome.error, SeatNotSelectedError)
        assert watch_storage.stored == []

    def test_watch_selected_seat(self, reconciler, watch_storage):
        reconciler.select_seat('GT-L1-S2')

        outcome = reconciler.watch_selected()

        assert outcome.seat_id == 'GT-L1-S2'
        assert watch_storage.stored == ['GT-L1-S2']

    def test_unwatch(self, reconciler, watch_storage):
        reconciler.watch('I-5')

        assert reconciler.unwatch('I-5') is True
        assert reconciler.unwatch('I-5') is False
        assert watch_storage.stored == []

    def test_watch_storage_failure_is_reported(self, reconciler, watch_storage, notifier):
        watch_storage.fail_saves = True

        outcome = reconciler.watch('I-5')

        assert isinstance(outcome.error, WatchListStorageError)
        assert notifier.titles == ['Could not save watch-list']
        assert notifier.notifications[0].level == NotificationLevel.ERROR

    @pytest.mark.asyncio
    async def test_watched_seat_becoming_free_notifies_once(
        self, reconciler, seat_store, watch_storage, notifier
    ):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            reconciler.watch('I-5')
            notifier.notifications.clear()

            # Occupied rows never notify
            seat_store.put(_occupied('I-5'))
            await wait_all_tasks_blocked()
            assert notifier.notifications == []

            # When: the seat is released
            seat_store.release('I-5')
            await wait_all_tasks_blocked()

            # Then: one notification and the id is gone from storage
            assert notifier.titles == ['Seat is free']
            assert notifier.notifications[0].seat_id == 'I-5'
            assert watch_storage.stored == []
            assert reconciler.watched_seat_ids == []

            # A repeat Available row stays silent
            seat_store.release('I-5')
            await wait_all_tasks_blocked()
            assert notifier.titles == ['Seat is free']
            reconciler.unmount()

    @pytest.mark.asyncio
    async def test_notify_when_free_survives_storage_failure(
        self, reconciler, seat_store, watch_storage, notifier
    ):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)
            reconciler.watch('I-8')
            watch_storage.fail_saves = True
            notifier.notifications.clear()

            seat_store.release('I-8')
            await wait_all_tasks_blocked()

            assert 'Seat is free' in notifier.titles
            assert 'Could not save watch-list' in notifier.titles
            assert reconciler.watched_seat_ids == []
            reconciler.unmount()


class TestStats:
    @pytest.mark.asyncio
    async def test_stats_from_cache(self, reconciler):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)

            stats = reconciler.stats

            assert stats.total == 10
            assert stats.occupied == 3
            assert stats.available == 7
            assert stats.percent == 30
            reconciler.unmount()

    @pytest.mark.asyncio
    async def test_state_snapshot_is_read_only(self, reconciler):
        async with anyio.create_task_group() as tg:
            await reconciler.mount(task_group=tg)

            state = reconciler.state

            with pytest.raises(TypeError):
                state.seats['I-1'] = Seat(id='I-1')  # type: ignore[index]
            reconciler.unmount()
