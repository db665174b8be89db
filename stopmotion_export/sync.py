"""RU: Очередь отложенных загрузок режима «send».

Очередь хранится одним JSON-массивом в `<root>/sync.json`, видео лежат в
`<root>/.sync/`. Записи никогда не удаляются: после успешной загрузки у записи
только выставляется флаг isUploaded, и список сразу сохраняется.

EN: Deferred upload queue for "send" mode.

The queue is a single JSON array in `<root>/sync.json`, videos live in
`<root>/.sync/`. Entries are never removed: a successful upload flips
isUploaded and the whole list is saved immediately.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Final

from stopmotion_export.services import SyncUploader
from stopmotion_export.utils.json_utils import read_json_if_valid, write_json_atomic

LOGGER = logging.getLogger("stopmotion")

SYNC_FILE_NAME: Final = "sync.json"
SYNC_DIR_NAME: Final = ".sync"

_KEYS: Final = {
    "api_key": "apiKey",
    "public_code": "publicCode",
    "file_name": "fileName",
    "file_extension": "fileExtension",
    "is_uploaded": "isUploaded",
}


def _as_bool(value: object) -> bool:
    """Strict flag parsing: only true or "true" (any case) count as set."""
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


@dataclass
class SyncEntry:
    api_key: str
    public_code: str
    file_name: str
    file_extension: str
    is_uploaded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {_KEYS[k]: v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncEntry:
        return cls(
            api_key=str(data.get("apiKey", "")),
            public_code=str(data.get("publicCode", "")),
            file_name=str(data.get("fileName", "")),
            file_extension=str(data.get("fileExtension", "")),
            is_uploaded=_as_bool(data.get("isUploaded", False)),
        )


class SyncQueue:
    """File-backed list of SyncEntry objects under one storage root."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    @property
    def file_path(self) -> Path:
        return self.root / SYNC_FILE_NAME

    @property
    def media_dir(self) -> Path:
        return self.root / SYNC_DIR_NAME

    def load(self) -> list[SyncEntry]:
        """Return the stored entries; unreadable files count as empty."""
        data = read_json_if_valid(self.file_path)
        if not isinstance(data, list):
            return []
        entries: list[SyncEntry] = []
        for position, item in enumerate(data):
            if not isinstance(item, dict):
                LOGGER.warning(
                    "Skipping malformed sync entry #%d in %s: %r", position, self.file_path, item,
                )
                continue
            entries.append(SyncEntry.from_dict(item))
        return entries

    def save(self, entries: list[SyncEntry]) -> list[SyncEntry]:
        """Overwrite the queue; returns the saved list, or [] on failure."""
        try:
            write_json_atomic(self.file_path, [e.to_dict() for e in entries])
        except OSError as exc:
            LOGGER.error("Failed to save sync list %s: %s", self.file_path, exc)
            return []
        return list(entries)

    def append(self, entry: SyncEntry) -> list[SyncEntry]:
        return self.save([*self.load(), entry])

    def pending(self) -> list[SyncEntry]:
        return [e for e in self.load() if not e.is_uploaded]

    def drain(self, uploader: SyncUploader) -> int:
        """Try every pending entry once; returns the number of uploads done.

        Failures are logged and the entry stays pending for the next drain.
        """
        entries = self.load()
        uploaded = 0
        for entry in entries:
            if entry.is_uploaded:
                continue
            LOGGER.info("Sync start %s (%s)", entry.public_code, entry.api_key)
            try:
                uploader.upload_file(
                    entry.api_key,
                    entry.public_code,
                    entry.file_extension,
                    self.media_dir / entry.file_name,
                )
            except Exception as exc:
                LOGGER.error(
                    "Sync failed %s (%s): %s", entry.public_code, entry.api_key, exc,
                )
                continue
            entry.is_uploaded = True
            uploaded += 1
            self.save(entries)
            LOGGER.info("Sync finished %s (%s)", entry.public_code, entry.api_key)
        return uploaded
