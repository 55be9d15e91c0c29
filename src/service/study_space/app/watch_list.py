from typing import List

from src.service.study_space.app.interface.i_watch_list_storage import IWatchListStorage


class WatchList:
    """
    Ordered set of seat ids the user wants to hear about once they are free.

    Every mutation is written through to storage before returning.
    """

    def __init__(self, storage: IWatchListStorage) -> None:
        self._storage = storage
        self._seat_ids: List[str] = []

    def restore(self) -> List[str]:
        restored: List[str] = []
        for seat_id in self._storage.load():
            if seat_id not in restored:
                restored.append(seat_id)
        self._seat_ids = restored
        return list(self._seat_ids)

    @property
    def seat_ids(self) -> List[str]:
        return list(self._seat_ids)

    def __contains__(self, seat_id: object) -> bool:
        return seat_id in self._seat_ids

    def __len__(self) -> int:
        return len(self._seat_ids)

    def add(self, seat_id: str) -> bool:
        """Returns False when the seat was already watched."""
        if seat_id in self._seat_ids:
            return False
        self._seat_ids.append(seat_id)
        self._storage.save(self._seat_ids)
        return True

    def discard(self, seat_id: str) -> bool:
        """Returns False when the seat was not watched."""
        if seat_id not in self._seat_ids:
            return False
        self._seat_ids.remove(seat_id)
        self._storage.save(self._seat_ids)
        return True
