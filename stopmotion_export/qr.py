"""RU: Сохранение QR-кода со ссылкой на видео.

PNG приходит как data URL и записывается в `<export_base_name>.png` в первую
доступную папку OneDrive `stopmotion` (или в `~/Desktop/stopmotion`).

EN: Save the QR code that links to the exported video.

The PNG arrives as a data URL and is written as `<export_base_name>.png` into
the first usable OneDrive `stopmotion` folder (else `~/Desktop/stopmotion`).
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import re
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Final

from stopmotion_export.errors import ExportError

LOG = logging.getLogger("stopmotion")

QR_FOLDER_NAME: Final = "stopmotion"
ONEDRIVE_ENV_VARS: Final = ("OneDriveCommercial", "OneDriveConsumer", "OneDrive")
ONEDRIVE_DIR_NAMES: Final = (
    "OneDrive - Kaunas University of Technology",
    "OneDrive - Personal",
    "OneDrive",
)
_PNG_DATA_URL = re.compile(r"^data:image/png;base64,(.+)$", re.IGNORECASE | re.DOTALL)


class QrSaveError(ExportError):
    """Raised when the QR payload or its target name is unusable."""


def decode_png_data_url(data_url: str) -> bytes:
    match = _PNG_DATA_URL.match((data_url or "").strip())
    if not match:
        raise QrSaveError("Invalid QR data URL")
    try:
        return base64.b64decode(match.group(1), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise QrSaveError(f"Invalid QR base64 payload: {exc}") from exc


def _onedrive_candidates(home: Path, env: Mapping[str, str]) -> Iterator[Path]:
    for var in ONEDRIVE_ENV_VARS:
        if env.get(var):
            yield Path(env[var])
    for name in ONEDRIVE_DIR_NAMES:
        yield home / name
    try:
        entries = sorted(home.iterdir())
    except OSError as exc:
        LOG.warning("[QR] Unable to scan %s for OneDrive folders: %s", home, exc)
        return
    for entry in entries:
        if entry.is_dir() and entry.name.lower().startswith("onedrive"):
            yield entry


def resolve_qr_save_directory(
    custom_dir: Path | None = None,
    *,
    home: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Pick (and create) the folder QR images are written to.

    Order: the configured folder, then `stopmotion/` inside the first existing
    OneDrive folder, then `~/Desktop/stopmotion`.
    """
    env = os.environ if env is None else env
    if custom_dir is not None:
        try:
            custom_dir.mkdir(parents=True, exist_ok=True)
            return custom_dir
        except OSError as exc:
            LOG.warning("[QR] Cannot use configured folder %s: %s", custom_dir, exc)

    home = home or Path(env.get("USERPROFILE") or Path.home())
    seen: set[Path] = set()
    for base in _onedrive_candidates(home, env):
        if base in seen:
            continue
        seen.add(base)
        if not base.is_dir():
            continue
        target = base / QR_FOLDER_NAME
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError:
            continue
        return target

    fallback = home / "Desktop" / QR_FOLDER_NAME
    fallback.mkdir(parents=True, exist_ok=True)
    return fallback


def save_qr_image(
    data_url: str,
    export_base_name: str,
    custom_dir: Path | None = None,
    *,
    home: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Decode `data_url` and write it as `<export_base_name>.png`."""
    if not data_url or not export_base_name:
        raise QrSaveError("Missing QR data")
    if Path(export_base_name).name != export_base_name:
        raise QrSaveError(f"Invalid export base name: {export_base_name!r}")
    payload = decode_png_data_url(data_url)

    target = resolve_qr_save_directory(custom_dir, home=home, env=env) / f"{export_base_name}.png"
    LOG.info("[QR] Writing QR to %s", target)
    target.write_bytes(payload)
    return target
