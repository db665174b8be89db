"""RU: Загрузка config.yaml и значения по умолчанию.

EN: config.yaml loading and defaults.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger("stopmotion")

DEFAULT_AUDIO_SEARCH_PATHS: tuple[str, ...] = ("~/Desktop/audio", "resources/audio")


def load_config(path: Path | str | None) -> dict[str, Any]:
    """Read a YAML config file; a missing file yields an empty config."""
    if path is None:
        return {}
    config_path = Path(path)
    if not config_path.exists():
        log.debug("Config file not found, using defaults: %s", config_path)
        return {}
    with config_path.open(encoding="utf-8") as f:
        conf = yaml.safe_load(f) or {}
    if not isinstance(conf, dict):
        raise ValueError(f"Config root must be a mapping: {config_path}")
    return conf


def _section(conf: dict[str, Any], name: str) -> dict[str, Any]:
    value = conf.get(name, {})
    return value if isinstance(value, dict) else {}


def _path(value: object, default: str) -> Path:
    return Path(os.path.expanduser(str(value or default)))


def _float_or_none(value: object) -> float | None:
    if value in (None, ""):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


@dataclass(frozen=True)
class ExportSettings:
    """Resolved settings for one export session."""

    projects_root: Path = Path("~/stopmotion/projects").expanduser()
    output_dir: Path = Path("~/Desktop/stopmotion").expanduser()
    ffmpeg_binary: str = "ffmpeg"
    ffmpeg_timeout: float | None = None
    audio_search_paths: tuple[Path, ...] = field(
        default_factory=lambda: tuple(_path(p, p) for p in DEFAULT_AUDIO_SEARCH_PATHS),
    )
    ending_seconds: float = 3.0
    ending_text_color: str = "#ffffff"
    ending_bg_color: str = "#222222"
    drive_credentials: Path = Path("credentials.json")
    drive_token: Path = Path("token.json")
    drive_folder_id: str | None = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    email_sender_name: str = "Audiovisual lab"
    email_subject: str = "Your animation is ready"
    sync_api_url: str | None = None
    sync_timeout: int = 120
    qr_save_dir: Path | None = None

    @classmethod
    def from_conf(cls, conf: dict[str, Any] | None) -> ExportSettings:
        conf = conf or {}
        paths = _section(conf, "paths")
        ff = _section(conf, "ffmpeg")
        audio = _section(conf, "audio")
        ending = _section(conf, "ending")
        drive = _section(conf, "drive")
        email = _section(conf, "email")
        sync = _section(conf, "sync")
        qr = _section(conf, "qr")

        search_raw = audio.get("search_paths")
        if isinstance(search_raw, list) and search_raw:
            search_paths = tuple(_path(p, ".") for p in search_raw if str(p).strip())
        else:
            search_paths = tuple(_path(p, p) for p in DEFAULT_AUDIO_SEARCH_PATHS)

        folder_id = drive.get("folder_id")
        api_url = sync.get("api_url")
        return cls(
            projects_root=_path(paths.get("projects_root"), "~/stopmotion/projects"),
            output_dir=_path(paths.get("output_dir"), "~/Desktop/stopmotion"),
            ffmpeg_binary=str(ff.get("binary") or "ffmpeg"),
            ffmpeg_timeout=_float_or_none(ff.get("timeout")),
            audio_search_paths=search_paths,
            ending_seconds=float(ending.get("seconds", 3)),
            ending_text_color=str(ending.get("text_color", "#ffffff")),
            ending_bg_color=str(ending.get("bg_color", "#222222")),
            drive_credentials=_path(drive.get("credentials"), "credentials.json"),
            drive_token=_path(drive.get("token"), "token.json"),
            drive_folder_id=str(folder_id) if folder_id else None,
            smtp_host=str(email.get("smtp_host", "smtp.gmail.com")),
            smtp_port=int(email.get("smtp_port", 587)),
            smtp_user=str(email["user"]) if email.get("user") else None,
            smtp_password=str(email["password"]) if email.get("password") else None,
            email_sender_name=str(email.get("sender_name", "Audiovisual lab")),
            email_subject=str(email.get("subject", "Your animation is ready")),
            sync_api_url=str(api_url).rstrip("/") if api_url else None,
            sync_timeout=int(sync.get("timeout", 120)),
            qr_save_dir=_path(qr["save_dir"], ".") if qr.get("save_dir") else None,
        )
