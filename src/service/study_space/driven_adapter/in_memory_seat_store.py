"""
In-memory Seat Store

Development stand-in for the hosted backend, used when no Kvrocks instance is
configured. Seeded with the LRC floor plan so the seat map is interactive
locally. Conditional updates are atomic (no await between check and write),
so concurrent bookings race the same way they do against the real store.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Dict, Iterable, List, Optional

import anyio
from anyio import BrokenResourceError, ClosedResourceError, WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
import attrs

from src.platform.logging.loguru_io import Logger
from src.service.study_space.app.interface.i_seat_store import ISeatStore
from src.service.study_space.domain.booking_reconciliation import SeatUpdate
from src.service.study_space.domain.entity.seat_entity import Seat, build_lrc_layout
from src.service.study_space.domain.enum import SeatStatus
from src.service.study_space.domain.study_space_errors import SeatCommitRejectedError


class InMemorySeatStore(ISeatStore):
    def __init__(
        self,
        *,
        seats: Optional[Iterable[Seat]] = None,
        user_id: Optional[str] = None,
        latency: float = 0.0,
        buffer_size: float = 256,
    ) -> None:
        self._rows: Dict[str, Seat] = {
            seat.id: seat for seat in (build_lrc_layout() if seats is None else seats)
        }
        self._user_id = user_id
        self._latency = latency
        self._buffer_size = buffer_size
        self._subscribers: List[MemoryObjectSendStream[Seat]] = []
        self._pending_commit_failures: List[str] = []
        self._pending_fetch_failures: List[str] = []
        self.fetch_count = 0
        self.commit_count = 0

    # ==================== ISeatStore ====================

    async def fetch_all(self) -> List[Seat]:
        self.fetch_count += 1
        await anyio.sleep(self._latency)
        if self._pending_fetch_failures:
            raise ConnectionError(self._pending_fetch_failures.pop(0))
        return list(self._rows.values())

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[MemoryObjectReceiveStream[Seat]]:
        send_stream, receive_stream = create_memory_object_stream[Seat](
            max_buffer_size=self._buffer_size
        )
        self._subscribers.append(send_stream)
        Logger.base.debug(
            f'📡 [IN-MEMORY STORE] Subscribed (total subscribers: {len(self._subscribers)})'
        )
        try:
            yield receive_stream
        finally:
            self._subscribers.remove(send_stream)
            await send_stream.aclose()
            await receive_stream.aclose()
            Logger.base.debug(
                f'📡 [IN-MEMORY STORE] Unsubscribed (remaining: {len(self._subscribers)})'
            )

    async def conditional_update(
        self,
        seat_id: str,
        update: SeatUpdate,
        *,
        expected_status: SeatStatus = SeatStatus.AVAILABLE,
    ) -> Seat:
        self.commit_count += 1
        await anyio.sleep(self._latency)

        if self._pending_commit_failures:
            raise ConnectionError(self._pending_commit_failures.pop(0))

        # Check and write without yielding to the event loop
        current = self._rows.get(seat_id)
        if current is None:
            raise SeatCommitRejectedError(seat_id, f'Seat {seat_id} does not exist')
        if current.status != expected_status:
            raise SeatCommitRejectedError(seat_id, f'Seat {seat_id} is already occupied')

        updated = attrs.evolve(
            current,
            status=update.status,
            vacant_at=update.vacant_at,
            booked_by=update.booked_by,
        )
        self._write(updated)
        return updated

    async def current_user(self) -> Optional[str]:
        return self._user_id

    # ==================== Simulation helpers ====================

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def get(self, seat_id: str) -> Optional[Seat]:
        return self._rows.get(seat_id)

    def sign_in(self, user_id: Optional[str]) -> None:
        self._user_id = user_id

    def put(self, seat: Seat) -> None:
        """Insert or overwrite a row as an external actor would."""
        self._write(seat)

    def release(self, seat_id: str) -> Seat:
        """Free a seat as an administrator or expiry job would."""
        current = self._rows.get(seat_id) or Seat(id=seat_id)
        released = current.release()
        self._write(released)
        return released

    def fail_next_commit(self, message: str = 'Network request failed') -> None:
        self._pending_commit_failures.append(message)

    def fail_next_fetch(self, message: str = 'Network request failed') -> None:
        self._pending_fetch_failures.append(message)

    async def drop_subscribers(self) -> None:
        """Close every open change feed as a lost realtime connection would."""
        for send_stream in list(self._subscribers):
            await send_stream.aclose()

    def _write(self, seat: Seat) -> None:
        self._rows[seat.id] = seat
        for send_stream in list(self._subscribers):
            try:
                send_stream.send_nowait(seat)
            except (WouldBlock, BrokenResourceError, ClosedResourceError):
                Logger.base.warning(
                    f'⚠️ [IN-MEMORY STORE] Subscriber unavailable, dropping change for {seat.id}'
                )
