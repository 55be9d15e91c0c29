"""
Seat Store Interface

The hosted backend as seen by the reconciler: the system of record for seat
rows and the source of their change feed.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import List, Optional

from anyio.streams.memory import MemoryObjectReceiveStream

from src.service.study_space.domain.booking_reconciliation import SeatUpdate
from src.service.study_space.domain.entity.seat_entity import Seat
from src.service.study_space.domain.enum import SeatStatus


class ISeatStore(ABC):
    @abstractmethod
    async def fetch_all(self) -> List[Seat]:
        """Full snapshot of the seat table."""
        pass

    @abstractmethod
    def subscribe(self) -> AbstractAsyncContextManager[MemoryObjectReceiveStream[Seat]]:
        """
        Open the seat table change feed.

        Usage:
            async with store.subscribe() as changes:
                async for seat in changes:
                    ...

        The channel yields every inserted or updated row in the order the store
        committed them. Leaving the context closes the channel and releases the
        underlying connection; a closed channel cannot be reopened.
        """
        pass

    @abstractmethod
    async def conditional_update(
        self,
        seat_id: str,
        update: SeatUpdate,
        *,
        expected_status: SeatStatus = SeatStatus.AVAILABLE,
    ) -> Seat:
        """
        Atomically apply ``update`` if the stored row still has ``expected_status``.

        Returns:
            The row as stored after the update

        Raises:
            SeatCommitRejectedError: the row is missing or no longer matches
        """
        pass

    @abstractmethod
    async def current_user(self) -> Optional[str]:
        """Id of the signed-in user, None when nobody is signed in."""
        pass
