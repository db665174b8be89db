"""HTTP client that delivers queued "send" mode videos to the event API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import requests
from requests import exceptions as requests_exceptions

from stopmotion_export.errors import UploadFailure

LOGGER = logging.getLogger("stopmotion")

_MIME_BY_EXT = {"mp4": "video/mp4", "mov": "video/quicktime", "webm": "video/webm"}


@dataclass(frozen=True)
class ApiSyncUploader:
    """POST ``<api_url>/upload`` with the event key and the public code."""

    api_url: str | None
    timeout: int = 120

    def upload_file(self, api_key: str, public_code: str, extension: str, path: Path) -> None:
        if not self.api_url:
            raise UploadFailure("sync.api_url is not configured")
        path = Path(path)
        if not path.exists():
            raise UploadFailure(f"Sync file does not exist: {path}")

        ext = extension.lstrip(".")
        try:
            with path.open("rb") as fh:
                r = requests.post(
                    f"{self.api_url}/upload",
                    headers={"X-Api-Key": api_key},
                    data={"publicCode": public_code, "extension": ext},
                    files={
                        "file": (
                            f"{public_code}.{ext}",
                            fh,
                            _MIME_BY_EXT.get(ext, "application/octet-stream"),
                        ),
                    },
                    timeout=self.timeout,
                )
            r.raise_for_status()
        except requests_exceptions.RequestException as exc:
            raise UploadFailure(f"Sync upload failed for {public_code}: {exc}") from exc
