"""
In-memory Event Broadcaster Implementation

Distributes user notifications from the reconciler to SSE endpoints.
"""

from anyio import BrokenResourceError, WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from src.platform.logging.loguru_io import Logger


class InMemoryEventBroadcasterImpl:
    """
    In-memory pub/sub keyed by channel name

    Memory Management:
    - Stream max buffer: configurable, 10 events by default
    - Drop policy: drop if stream full (send_nowait raises WouldBlock)
    - Cleanup: remove empty channel lists on unsubscribe and close streams
    """

    def __init__(self, *, max_buffer_size: int = 10) -> None:
        self._max_buffer_size = max_buffer_size
        # channel -> list of (send_stream, receive_stream) tuples
        self._subscribers: dict[
            str, list[tuple[MemoryObjectSendStream[dict], MemoryObjectReceiveStream[dict]]]
        ] = {}

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, []))

    async def subscribe(self, *, channel: str) -> MemoryObjectReceiveStream[dict]:
        send_stream, receive_stream = create_memory_object_stream[dict](
            max_buffer_size=self._max_buffer_size
        )
        self._subscribers.setdefault(channel, []).append((send_stream, receive_stream))

        Logger.base.debug(
            f'📡 [BROADCASTER] Subscribed to {channel} '
            f'(total subscribers: {len(self._subscribers[channel])})'
        )
        return receive_stream

    def broadcast(self, *, channel: str, event_data: dict) -> int:
        subscribers = self._subscribers.get(channel)
        if not subscribers:
            Logger.base.debug(f'📡 [BROADCASTER] No subscribers for {channel}')
            return 0

        delivered = 0
        dropped = 0
        for send_stream, _ in subscribers:
            try:
                send_stream.send_nowait(event_data)
                delivered += 1
            except (WouldBlock, BrokenResourceError):
                # Slow or already closed consumer
                dropped += 1
                Logger.base.warning(
                    f'⚠️ [BROADCASTER] Stream unavailable for {channel}, '
                    f'dropping event (type={event_data.get("event_type")})'
                )

        Logger.base.debug(
            f'📡 [BROADCASTER] Broadcast to {channel}: delivered={delivered}, dropped={dropped}'
        )
        return delivered

    async def unsubscribe(self, *, channel: str, stream: MemoryObjectReceiveStream[dict]) -> None:
        subscribers = self._subscribers.get(channel)
        if subscribers is None:
            return

        for i, (send_stream, receive_stream) in enumerate(subscribers):
            if receive_stream is stream:
                await send_stream.aclose()
                await receive_stream.aclose()
                subscribers.pop(i)
                Logger.base.debug(
                    f'📡 [BROADCASTER] Unsubscribed from {channel} (remaining: {len(subscribers)})'
                )
                break

        if not subscribers:
            del self._subscribers[channel]
