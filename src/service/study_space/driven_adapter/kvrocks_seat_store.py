"""
Kvrocks Seat Store

Production adapter for the seat table on Kvrocks (Redis protocol).

Layout:
- {table}:seat:{id}  Hash    status / vacant_at / booked_by
- {table}:ids        ZSet    seat ids scored by provisioning order
- {table}:changes    Pub/Sub every committed row, JSON encoded
- session:{token}    String  signed-in user id
"""

from collections.abc import AsyncIterator
import contextlib
from contextlib import asynccontextmanager
from typing import Any, Iterable, List, Optional

import anyio
from anyio import create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from redis.asyncio import Redis as AsyncRedis
from redis.commands.core import AsyncScript

from src.platform.config.core_setting import settings
from src.platform.constant.path import SEAT_STORE_LUA_DIR
from src.platform.logging.loguru_io import Logger
from src.platform.state.kvrocks_client import KvrocksClient, kvrocks_client
from src.service.study_space.app.interface.i_seat_store import ISeatStore
from src.service.study_space.domain.booking_reconciliation import SeatUpdate
from src.service.study_space.domain.entity.seat_entity import Seat
from src.service.study_space.domain.enum import SeatStatus
from src.service.study_space.domain.study_space_errors import (
    SeatCommitRejectedError,
    SeatRowDecodeError,
)
from src.service.study_space.driven_adapter.key_str_generator import (
    make_seat_channel,
    make_seat_index_key,
    make_seat_key,
    make_session_key,
)
from src.service.study_space.driven_adapter.seat_row_codec import (
    decode_row,
    encode_row,
    encode_update,
    loads_row,
)


CONDITIONAL_UPDATE_SCRIPT = SEAT_STORE_LUA_DIR / 'conditional_update_seat.lua'


def _to_str(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


class KvrocksSeatStore(ISeatStore):
    def __init__(
        self,
        *,
        client: KvrocksClient = kvrocks_client,
        table: str = settings.SEAT_TABLE,
        session_token: Optional[str] = None,
        buffer_size: float = settings.SUBSCRIPTION_BUFFER_SIZE,
        reconnect_delay: float = 5.0,
    ) -> None:
        self._kvrocks = client
        self.table = table
        self._session_token = session_token
        self._buffer_size = buffer_size
        self._reconnect_delay = reconnect_delay
        self._conditional_update_script: Optional[AsyncScript] = None

    @property
    def channel(self) -> str:
        return make_seat_channel(table=self.table)

    def _get_script(self, client: AsyncRedis) -> AsyncScript:
        if self._conditional_update_script is None:
            self._conditional_update_script = client.register_script(
                CONDITIONAL_UPDATE_SCRIPT.read_text()
            )
        return self._conditional_update_script

    # ==================== Reads ====================

    @Logger.io
    async def fetch_all(self) -> List[Seat]:
        client = self._kvrocks.get_client()
        raw_ids = await client.zrange(make_seat_index_key(table=self.table), 0, -1)
        seat_ids = [_to_str(seat_id) for seat_id in raw_ids]
        if not seat_ids:
            return []

        async with client.pipeline(transaction=False) as pipe:
            for seat_id in seat_ids:
                pipe.hgetall(make_seat_key(table=self.table, seat_id=seat_id))
            rows = await pipe.execute()

        seats: List[Seat] = []
        for seat_id, fields in zip(seat_ids, rows, strict=True):
            if not fields:
                Logger.base.warning(f'⚠️ [KVROCKS STORE] Indexed seat {seat_id} has no row')
                continue
            row = {_to_str(k): _to_str(v) for k, v in fields.items()}
            seats.append(decode_row({**row, 'id': seat_id}))
        return seats

    async def current_user(self) -> Optional[str]:
        if not self._session_token:
            return None
        user_id = await self._kvrocks.get_client().get(make_session_key(token=self._session_token))
        return _to_str(user_id) if user_id else None

    # ==================== Writes ====================

    @Logger.io
    async def conditional_update(
        self,
        seat_id: str,
        update: SeatUpdate,
        *,
        expected_status: SeatStatus = SeatStatus.AVAILABLE,
    ) -> Seat:
        client = self._kvrocks.get_client()
        fields = encode_update(update)
        ok, payload = await self._get_script(client)(
            keys=[make_seat_key(table=self.table, seat_id=seat_id)],
            args=[
                seat_id,
                str(expected_status),
                fields['status'],
                fields['vacant_at'],
                fields['booked_by'],
                self.channel,
            ],
        )
        if int(ok) != 1:
            raise SeatCommitRejectedError(seat_id, _to_str(payload))
        return loads_row(payload)

    async def provision(self, seats: Iterable[Seat], *, reset: bool = False) -> int:
        """
        Write seat rows and their provisioning order.

        Existing rows are left untouched unless ``reset`` is set.
        """
        client = self._kvrocks.get_client()
        index_key = make_seat_index_key(table=self.table)
        written = 0
        async with client.pipeline(transaction=True) as pipe:
            for order, seat in enumerate(seats):
                seat_key = make_seat_key(table=self.table, seat_id=seat.id)
                if not reset and await client.exists(seat_key):
                    continue
                row = encode_row(seat)
                pipe.hset(
                    seat_key,
                    mapping={
                        'status': row['status'] or str(SeatStatus.AVAILABLE),
                        'vacant_at': row['vacant_at'] or '',
                        'booked_by': row['booked_by'] or '',
                    },
                )
                pipe.zadd(index_key, {seat.id: order})
                written += 1
            await pipe.execute()
        return written

    # ==================== Change feed ====================

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[MemoryObjectReceiveStream[Seat]]:
        send_stream, receive_stream = create_memory_object_stream[Seat](
            max_buffer_size=self._buffer_size
        )
        pubsub_client = await self._kvrocks.create_pubsub_client()
        pubsub = pubsub_client.pubsub()
        await pubsub.subscribe(self.channel)
        Logger.base.info(f'📡 [KVROCKS STORE] Subscribed to {self.channel}')

        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(self._pump_changes, pubsub, send_stream)
                try:
                    yield receive_stream
                finally:
                    tg.cancel_scope.cancel()
        finally:
            # Runs while the caller is being cancelled; each round trip must still complete
            with anyio.CancelScope(shield=True):
                await self._release_pubsub(pubsub, pubsub_client)
                await send_stream.aclose()
                await receive_stream.aclose()
            Logger.base.info(f'🔌 [KVROCKS STORE] Unsubscribed from {self.channel}')

    async def _release_pubsub(self, pubsub: Any, pubsub_client: AsyncRedis) -> None:
        steps = (
            ('unsubscribe', lambda: pubsub.unsubscribe(self.channel)),
            ('close pubsub', pubsub.aclose),
            ('close connection', pubsub_client.aclose),
        )
        for name, step in steps:
            try:
                await step()
            except Exception as e:
                Logger.base.warning(f'⚠️ [KVROCKS STORE] Change feed {name} failed: {e}')

    async def _pump_changes(self, pubsub: Any, send_stream: MemoryObjectSendStream[Seat]) -> None:
        """
        Forward rows from Pub/Sub into the channel, resyncing after reconnects.

        The channel is closed once ``listen()`` ends, so subscribers see the
        feed finish instead of waiting on it forever.
        """
        async with send_stream:
            await self._forward_changes(pubsub, send_stream)
        Logger.base.warning(f'⚠️ [KVROCKS STORE] Change feed on {self.channel} ended')

    async def _forward_changes(
        self, pubsub: Any, send_stream: MemoryObjectSendStream[Seat]
    ) -> None:
        while True:
            try:
                async for message in pubsub.listen():
                    if message['type'] != 'message':
                        continue
                    try:
                        seat = loads_row(message['data'])
                    except SeatRowDecodeError as e:
                        Logger.base.warning(f'⚠️ [KVROCKS STORE] Skipping bad change row: {e}')
                        continue
                    await send_stream.send(seat)
                return
            except Exception as e:
                Logger.base.error(f'❌ [KVROCKS STORE] Change feed error: {e}')
                Logger.base.info(f'🔄 [KVROCKS STORE] Reconnecting in {self._reconnect_delay}s...')
                await anyio.sleep(self._reconnect_delay)
                with contextlib.suppress(Exception):
                    await pubsub.subscribe(self.channel)

            # Rows committed while disconnected never reach Pub/Sub
            try:
                for seat in await self.fetch_all():
                    await send_stream.send(seat)
            except Exception as e:
                Logger.base.error(f'❌ [KVROCKS STORE] Resync after reconnect failed: {e}')
