"""RU: Внешние сервисы: загрузка в облако, уведомления, титульный кадр.

Каждый сервис описан протоколом; реализации по умолчанию можно заменить при
создании ExportSession (например, в тестах).

EN: External collaborators: cloud upload, notifications, title card.

Each collaborator is described by a protocol; the default implementations can
be swapped when building an ExportSession (e.g. in tests).
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class Uploader(Protocol):
    def upload(
        self,
        local_path: Path,
        remote_name: str,
        folder_id: str | None = None,
        mime_type: str = "video/mp4",
    ) -> str: ...


class SyncUploader(Protocol):
    def upload_file(self, api_key: str, public_code: str, extension: str, path: Path) -> None: ...


class Notifier(Protocol):
    def notify(self, to: str, link: str) -> bool: ...


class TitleRenderer(Protocol):
    def render(self, text: str, width: int, height: int, extension: str = "jpg") -> bytes: ...
