from abc import ABC, abstractmethod
from typing import List, Sequence


class IWatchListStorage(ABC):
    """Client-local durable storage for the notify-me-when-free list."""

    @abstractmethod
    def load(self) -> List[str]:
        """Stored seat ids in insertion order; empty when nothing was stored."""
        pass

    @abstractmethod
    def save(self, seat_ids: Sequence[str]) -> None:
        pass
