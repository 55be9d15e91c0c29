"""
File Watch-list Storage

Client-local durable storage for the notify-me-when-free list. The file is a
JSON object of namespace -> list of seat ids, so several lists can share it:

    {"lrc_notify_list": ["I-5", "GT-L2-S3"]}

A missing, empty or unreadable file reads as an empty list.
"""

import os
from pathlib import Path
from typing import List, Sequence

import orjson

from src.platform.logging.loguru_io import Logger
from src.service.study_space.app.interface.i_watch_list_storage import IWatchListStorage
from src.service.study_space.domain.study_space_errors import WatchListStorageError


class FileWatchListStorage(IWatchListStorage):
    def __init__(self, *, path: str | Path, namespace: str) -> None:
        self.path = Path(path)
        self.namespace = namespace

    def _read_document(self) -> dict:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as e:
            Logger.base.warning(f'⚠️ [WATCH-LIST] Cannot read {self.path}: {e}')
            return {}

        if not raw.strip():
            return {}
        try:
            document = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            Logger.base.warning(f'⚠️ [WATCH-LIST] Ignoring corrupt {self.path}: {e}')
            return {}
        return document if isinstance(document, dict) else {}

    def load(self) -> List[str]:
        stored = self._read_document().get(self.namespace)
        if not isinstance(stored, list):
            return []
        return [seat_id for seat_id in stored if isinstance(seat_id, str)]

    def save(self, seat_ids: Sequence[str]) -> None:
        document = self._read_document()
        document[self.namespace] = list(seat_ids)

        tmp_path = self.path.with_name(f'{self.path.name}.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(orjson.dumps(document, option=orjson.OPT_INDENT_2))
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise WatchListStorageError(f'Could not save watch-list to {self.path}: {e}') from e

        Logger.base.debug(f'💾 [WATCH-LIST] Saved {len(seat_ids)} seat(s) to {self.path}')
