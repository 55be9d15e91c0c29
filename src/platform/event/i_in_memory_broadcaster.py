"""
In-memory Event Broadcaster Interface

Fans out notifications produced by the study-space reconciler to the
SSE endpoints that render them within the same process.
"""

from typing import Protocol

from anyio.streams.memory import MemoryObjectReceiveStream


class IInMemoryEventBroadcaster(Protocol):
    async def subscribe(self, *, channel: str) -> MemoryObjectReceiveStream[dict]:
        """
        Subscribe to a channel

        Returns:
            MemoryObjectReceiveStream that will receive event dictionaries
        """
        ...

    def broadcast(self, *, channel: str, event_data: dict) -> int:
        """
        Broadcast event to all subscribers of the channel

        Returns:
            Number of subscribers the event was delivered to

        Note:
            - Never blocks: a full subscriber stream drops the event
            - Silently ignores channels without subscribers
        """
        ...

    async def unsubscribe(self, *, channel: str, stream: MemoryObjectReceiveStream[dict]) -> None:
        """
        Unsubscribe and close the stream

        Note:
            - Safe to call with a stream that was already removed
        """
        ...
