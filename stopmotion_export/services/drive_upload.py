"""RU: Загрузка готового видео в Google Drive (Drive API v3).

Нужны OAuth2-файлы: credentials.json (client id/secret) и token.json
(access/refresh token). Файл делается доступным по ссылке для всех.

EN: Upload the finished video to Google Drive (Drive API v3).

Requires OAuth2 files: credentials.json (client id/secret) and token.json
(access/refresh token). The file is shared as readable by anyone with the link.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Final

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload

from stopmotion_export.errors import UploadFailure

LOGGER = logging.getLogger("stopmotion")

SCOPES: Final = ("https://www.googleapis.com/auth/drive.file",)
TOKEN_URI: Final = "https://oauth2.googleapis.com/token"
SHARE_LINK: Final = "https://drive.google.com/file/d/{file_id}/view"


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise UploadFailure(f"Cannot read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise UploadFailure(f"Unexpected content in {path}")
    return data


def _client_info(credentials: dict[str, Any]) -> dict[str, Any]:
    # Google console downloads wrap the client under "installed" or "web".
    for key in ("installed", "web"):
        section = credentials.get(key)
        if isinstance(section, dict):
            return section
    return credentials


def _expiry(token: dict[str, Any]) -> datetime | None:
    """Node-style ``expiry_date`` (ms since epoch) as naive UTC."""
    raw = token.get("expiry_date")
    if raw is None:
        return None
    try:
        return datetime.fromtimestamp(float(raw) / 1000.0, tz=timezone.utc).replace(tzinfo=None)
    except (TypeError, ValueError, OverflowError):
        return None


def credentials_from_files(credentials_path: Path, token_path: Path) -> Credentials:
    """Build OAuth credentials from the client file and the stored token.

    Accepts both the google-auth ``authorized_user`` layout and the
    ``access_token``/``expiry_date`` layout written by Node clients.
    """
    token = _read_json(token_path)
    if token.get("token") and token.get("client_id"):
        try:
            return Credentials.from_authorized_user_info(token, list(SCOPES))
        except ValueError as exc:
            raise UploadFailure(f"Malformed token file {token_path}: {exc}") from exc

    client = _client_info(_read_json(credentials_path))
    return Credentials(
        token=token.get("access_token"),
        refresh_token=token.get("refresh_token"),
        token_uri=client.get("token_uri", TOKEN_URI),
        client_id=client.get("client_id"),
        client_secret=client.get("client_secret"),
        scopes=list(SCOPES),
        expiry=_expiry(token),
    )


@dataclass(frozen=True)
class DriveUploader:
    credentials_path: Path
    token_path: Path

    def credentials(self) -> Credentials:
        creds = credentials_from_files(self.credentials_path, self.token_path)
        if not creds.valid and creds.refresh_token:
            LOGGER.debug("[DRIVE] Refreshing OAuth token")
            creds.refresh(Request())
            try:
                Path(self.token_path).write_text(creds.to_json(), encoding="utf-8")
            except OSError as exc:
                LOGGER.warning("[DRIVE] Could not persist refreshed token: %s", exc)
        if not creds.token:
            raise UploadFailure(f"No access token in {self.token_path}")
        return creds

    def upload(
        self,
        local_path: Path,
        remote_name: str,
        folder_id: str | None = None,
        mime_type: str = "video/mp4",
    ) -> str:
        """Upload `local_path` and return a public view link."""
        local_path = Path(local_path)
        LOGGER.info("[DRIVE] Attempting to upload: %s", local_path)
        if not local_path.exists():
            raise UploadFailure(f"File to upload does not exist: {local_path}")

        metadata: dict[str, Any] = {"name": remote_name}
        if folder_id:
            metadata["parents"] = [folder_id]

        try:
            drive = build("drive", "v3", credentials=self.credentials(), cache_discovery=False)
            media = MediaFileUpload(str(local_path), mimetype=mime_type, resumable=True)
            created = drive.files().create(body=metadata, media_body=media, fields="id").execute()
            file_id = created.get("id")
            if not file_id:
                raise UploadFailure("Drive upload response has no file id")
            drive.permissions().create(
                fileId=file_id, body={"role": "reader", "type": "anyone"},
            ).execute()
        except (HttpError, GoogleAuthError, OSError) as exc:
            raise UploadFailure(f"Drive upload failed: {exc}") from exc

        link = SHARE_LINK.format(file_id=file_id)
        LOGGER.info("[DRIVE] Upload successful: %s", link)
        return link
