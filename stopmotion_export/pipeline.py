"""RU: Оркестрация экспорта сцены в видео.

Стадии одного экспорта:
1) Staging (кадры, финальные титры и фоновая музыка во временной директории)
2) Encoding (первый проход FFmpeg; без звука, если звук будет домешан)
3) MuxingAudio (второй проход: копия видеопотока + аудио)
4) Cleanup (удаление временных директорий на любом пути выхода)
5) Uploading / Notifying (опциональная загрузка в Drive и e-mail)

EN: Scene-to-video export orchestration.

Stages of one export:
1) Staging (frames, ending title frames and background audio in a temp dir)
2) Encoding (first FFmpeg pass; video only when audio is muxed afterwards)
3) MuxingAudio (second pass: stream-copied video + audio)
4) Cleanup (temp directories removed on every exit path)
5) Uploading / Notifying (optional Drive upload and e-mail)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Final

from stopmotion_export.config import ExportSettings
from stopmotion_export.errors import ConfigurationError
from stopmotion_export.ffmpeg.args import (
    UNDEFINED_OUTPUT,
    build_arguments,
    build_mux_arguments,
    resolve_output_path,
    round_half_up,
)
from stopmotion_export.ffmpeg.profiles import EncodingProfile, resolve_profile
from stopmotion_export.ffmpeg.progress import ProgressCallback, parse_log
from stopmotion_export.ffmpeg.runner import run_encoder
from stopmotion_export.models import AudioMode, ExportOptions, ExportResult, FrameReference
from stopmotion_export.services import Notifier, SyncUploader, TitleRenderer, Uploader
from stopmotion_export.services.drive_upload import DriveUploader
from stopmotion_export.services.email_sender import SmtpNotifier
from stopmotion_export.services.ending_frame import OpenCVTitleRenderer
from stopmotion_export.services.sync_api import ApiSyncUploader
from stopmotion_export.stages.frames_stage import export_frames
from stopmotion_export.stages.staging import (
    add_ending_frames,
    buffer_dir,
    copy_frames,
    count_frames,
    remove_buffer_dir,
    sequence_extension,
    stage_background_audio,
    stage_buffer,
    staging_directory,
    title_card_size,
)
from stopmotion_export.sync import SyncEntry, SyncQueue
from stopmotion_export.utils.json_utils import read_json_if_valid
from stopmotion_export.utils.naming import make_export_base_name, upload_base_name

log = logging.getLogger("stopmotion")

__all__ = [
    "ExportOutcome",
    "ExportRequest",
    "ExportSession",
    "drain_sync",
    "export_frames",
    "export_scene",
    "list_pending_sync",
    "run_export",
    "stage_buffer",
]

PROJECT_FILE_NAME: Final = "project.json"
DEFAULT_FRAMERATE: Final = 24.0
INTERMEDIATE_VIDEO: Final = "video_no_audio"
MODES: Final = ("video", "frames", "send")

EncoderRunner = Callable[..., None]


class ExportStage(Enum):
    STAGING = "staging"
    ENCODING = "encoding"
    MUXING_AUDIO = "muxing_audio"
    CLEANUP = "cleanup"
    UPLOADING = "uploading"
    NOTIFYING = "notifying"
    DONE = "done"


@dataclass
class ExportSession:
    """RU: Настройки и внешние сервисы одной сессии экспорта.

    Передаётся явно вместо глобального состояния, чтобы сессии можно было
    тестировать изолированно.

    EN: Settings and collaborators of one export session.

    Passed explicitly instead of module-level state so sessions can be
    tested in isolation.
    """

    settings: ExportSettings = field(default_factory=ExportSettings)
    uploader: Uploader | None = None
    notifier: Notifier | None = None
    title_renderer: TitleRenderer | None = None
    sync_uploader: SyncUploader | None = None
    encoder: EncoderRunner = run_encoder

    @classmethod
    def from_settings(cls, settings: ExportSettings) -> ExportSession:
        """Build a session wired to the default collaborators."""
        return cls(
            settings=settings,
            uploader=DriveUploader(
                credentials_path=settings.drive_credentials,
                token_path=settings.drive_token,
            ),
            notifier=SmtpNotifier(
                host=settings.smtp_host,
                port=settings.smtp_port,
                user=settings.smtp_user,
                password=settings.smtp_password,
                sender_name=settings.email_sender_name,
                subject=settings.email_subject,
            ),
            title_renderer=OpenCVTitleRenderer(
                text_color=settings.ending_text_color,
                bg_color=settings.ending_bg_color,
            ),
            sync_uploader=ApiSyncUploader(
                api_url=settings.sync_api_url, timeout=settings.sync_timeout,
            ),
        )


def load_project_data(project_path: Path) -> dict[str, Any]:
    data = read_json_if_valid(Path(project_path) / PROJECT_FILE_NAME)
    return data if isinstance(data, dict) else {}


def _scene_framerate(project: dict[str, Any], scene_id: object) -> float | None:
    scenes = (project.get("project") or {}).get("scenes")
    if not isinstance(scenes, list):
        return None
    try:
        scene = scenes[int(scene_id)]  # type: ignore[arg-type]
    except (TypeError, ValueError, IndexError):
        return None
    if not isinstance(scene, dict):
        return None
    try:
        fps = float(scene.get("framerate") or 0)
    except (TypeError, ValueError):
        return None
    return fps if fps > 0 else None


def _project_title(project: dict[str, Any]) -> str | None:
    inner = project.get("project")
    if isinstance(inner, dict) and inner.get("title"):
        return str(inner["title"])
    return None


def _enter(stage: ExportStage) -> ExportStage:
    log.info("[export] %s", stage.value)
    return stage


def export_scene(
    project_path: Path | str,
    scene_id: int | str,
    frames: Sequence[FrameReference],
    output_path: Path | str,
    fmt: str,
    options: ExportOptions | None = None,
    on_progress: ProgressCallback | None = None,
    *,
    session: ExportSession,
) -> ExportResult:
    """RU: Экспортирует кадры сцены в один видеофайл.

    EN: Encode the scene's frames into a single video file.

    Args:
        project_path: Project directory holding `.tmp/` buffers and project.json.
        scene_id: Scene index, used to look up the scene framerate.
        frames: Frames to encode; `index` defines the temporal order.
        output_path: Target file; the container extension is appended if missing.
        fmt: Format id (h264, hevc, prores, vp8, vp9).
        options: Export options.
        on_progress: Receives progress fractions while encoding.
        session: Settings and collaborators.

    Returns:
        ExportResult with the Drive link, or None when no upload happened.

    Raises:
        ConfigurationError: unknown format or empty output path (before any I/O).
        EncoderFailure: an encoder pass failed; temp directories are removed.

    """
    opts = options or ExportOptions()
    profile = resolve_profile(fmt)
    if not output_path or not str(output_path).strip():
        raise ConfigurationError(UNDEFINED_OUTPUT, "output path is empty")

    project_path = Path(project_path)
    settings = session.settings
    project = load_project_data(project_path)
    fps = opts.framerate or _scene_framerate(project, scene_id) or DEFAULT_FRAMERATE
    progress: ProgressCallback = on_progress or (lambda _value: None)

    # The encoder runs inside the staging dir, so the output must be absolute.
    final_output = Path(
        resolve_output_path(fmt, str(Path(output_path).expanduser().resolve())),
    )
    final_output.parent.mkdir(parents=True, exist_ok=True)

    stage = _enter(ExportStage.STAGING)
    frames_copied = False
    try:
        with staging_directory(project_path) as staging:
            ext = sequence_extension(frames)
            copied = copy_frames(frames, buffer_dir(project_path), staging, ext)
            frames_copied = True

            if opts.add_ending_text and opts.ending_text:
                if session.title_renderer is None:
                    log.warning("No title renderer configured; skipping ending frames")
                else:
                    add_ending_frames(
                        staging,
                        start_position=copied,
                        count=round_half_up(fps * settings.ending_seconds),
                        text=opts.ending_text,
                        size=title_card_size(frames),
                        extension=ext,
                        renderer=session.title_renderer,
                    )

            # Ending frames change the count, so trust the directory.
            total_frames = count_frames(staging, ext)

            audio_name = None
            if opts.background_sound:
                audio_name = stage_background_audio(
                    opts.background_sound, settings.audio_search_paths, staging,
                )
            audio_mode = AudioMode.MUXED_AUDIO if audio_name else AudioMode.NO_AUDIO

            run_opts = replace(
                opts,
                total_frames=total_frames,
                frame_extension=ext,
                background_sound_path=None,
            )
            override = run_opts.output_framerate_override

            def on_log(chunk: str) -> None:
                parse_log(chunk, total_frames, override, progress)

            stage = _enter(ExportStage.ENCODING)
            first_output = (
                f"{INTERMEDIATE_VIDEO}.{profile.extension}"
                if audio_mode is AudioMode.MUXED_AUDIO
                else str(final_output)
            )
            session.encoder(
                build_arguments(fmt, first_output, fps, run_opts),
                staging,
                on_log,
                binary=settings.ffmpeg_binary,
                timeout=settings.ffmpeg_timeout,
            )

            if audio_mode is AudioMode.MUXED_AUDIO:
                stage = _enter(ExportStage.MUXING_AUDIO)
                session.encoder(
                    build_mux_arguments(
                        fmt, first_output, str(audio_name), str(final_output), fps, run_opts,
                    ),
                    staging,
                    lambda _chunk: None,
                    binary=settings.ffmpeg_binary,
                    timeout=settings.ffmpeg_timeout,
                )
                progress(1.0)

            stage = _enter(ExportStage.CLEANUP)
    except Exception:
        log.error("[export] failed during %s", stage.value)
        raise
    finally:
        if frames_copied:
            remove_buffer_dir(project_path)

    drive_link = None
    if opts.upload_to_drive:
        drive_link = _upload(final_output, profile, opts, project, session)
        if drive_link and opts.user_email:
            _notify(opts.user_email, drive_link, session)

    _enter(ExportStage.DONE)
    return ExportResult(drive_link=drive_link, output_path=final_output)


def _upload(
    output: Path,
    profile: EncodingProfile,
    opts: ExportOptions,
    project: dict[str, Any],
    session: ExportSession,
) -> str | None:
    _enter(ExportStage.UPLOADING)
    if not output.exists():
        log.error("[DRIVE] Exported video file does not exist: %s", output)
        return None
    if session.uploader is None:
        log.warning("[DRIVE] Upload requested but no uploader is configured")
        return None

    name = upload_base_name(
        export_base_name=opts.export_base_name,
        user_email=opts.user_email,
        project_title=_project_title(project),
    )
    try:
        link = session.uploader.upload(
            output,
            f"{name}.{profile.extension}",
            session.settings.drive_folder_id,
            profile.mime_type,
        )
    except Exception as exc:
        log.error("[DRIVE] Upload failed; continuing without link: %s", exc)
        return None
    return link or None


def _notify(to: str, link: str, session: ExportSession) -> None:
    _enter(ExportStage.NOTIFYING)
    if session.notifier is None:
        log.warning("[EMAIL] No notifier configured; not e-mailing %s", to)
        return
    try:
        if not session.notifier.notify(to, link):
            log.warning("[EMAIL] Notification to %s was not delivered", to)
    except Exception as exc:
        log.error("[EMAIL] Notification failed: %s", exc)


@dataclass(frozen=True)
class ExportRequest:
    """One export as requested by the UI layer."""

    project_id: str
    scene_id: int | str = 0
    frames: tuple[FrameReference, ...] = ()
    mode: str = "video"
    format: str = "h264"
    custom_output_framerate: bool = False
    custom_output_framerate_number: float | None = 10
    framerate: float | None = 10
    output_path: str | None = None
    public_code: str = "default"
    event_key: str = ""
    add_ending_text: bool = False
    ending_text: str | None = None
    upload_to_drive: bool = False
    user_email: str | None = None
    background_sound: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExportRequest:
        frames = tuple(
            FrameReference.from_dict(f) for f in data.get("frames") or [] if isinstance(f, dict)
        )
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__ and k != "frames"}
        if "track_id" in data and "scene_id" not in known:
            known["scene_id"] = data["track_id"]
        if "uploadToDrive" in data:
            known["upload_to_drive"] = bool(data["uploadToDrive"])
        if "userEmail" in data:
            known["user_email"] = data["userEmail"]
        return cls(frames=frames, **known)


@dataclass(frozen=True)
class ExportOutcome:
    drive_link: str | None
    export_base_name: str
    output_path: Path


def run_export(
    request: ExportRequest,
    *,
    session: ExportSession,
    on_progress: ProgressCallback | None = None,
    now: datetime | None = None,
) -> ExportOutcome:
    """RU: Выполняет экспорт в режиме video, frames или send.

    EN: Run an export in video, frames or send mode.

    In send mode the video is written to the sync folder, queued as a
    SyncEntry and a drain pass runs right away.
    """
    if request.mode not in MODES:
        raise ConfigurationError("UNKNOWN_MODE", f"unsupported mode {request.mode!r}")

    settings = session.settings
    project_path = settings.projects_root / request.project_id
    project = load_project_data(project_path)
    base_name = make_export_base_name(
        user_email=request.user_email, project_data=project, now=now,
    )

    if request.mode == "frames":
        out_dir = Path(request.output_path) if request.output_path else settings.output_dir / base_name
        out_dir = out_dir.expanduser().resolve()
        export_frames(project_path, request.frames, out_dir)
        return ExportOutcome(drive_link=None, export_base_name=base_name, output_path=out_dir)

    profile = resolve_profile(request.format)
    queue = SyncQueue(settings.projects_root)
    if request.mode == "send":
        queue.media_dir.mkdir(parents=True, exist_ok=True)
        output = queue.media_dir / f"{request.public_code}.{profile.extension}"
    elif request.output_path:
        output = Path(request.output_path)
    else:
        output = settings.output_dir / f"{base_name}.{profile.extension}"

    options = ExportOptions(
        custom_output_framerate=bool(request.custom_output_framerate),
        custom_output_framerate_number=request.custom_output_framerate_number,
        framerate=float(request.framerate) if request.framerate else None,
        add_ending_text=bool(request.add_ending_text),
        ending_text=request.ending_text,
        background_sound=request.background_sound,
        upload_to_drive=bool(request.upload_to_drive),
        user_email=request.user_email,
        export_base_name=base_name,
    )
    result = export_scene(
        project_path,
        request.scene_id,
        request.frames,
        output,
        request.format,
        options,
        on_progress,
        session=session,
    )

    if request.mode == "send":
        queue.append(
            SyncEntry(
                api_key=request.event_key,
                public_code=request.public_code,
                file_name=f"{request.public_code}.{profile.extension}",
                file_extension=profile.extension,
                is_uploaded=False,
            ),
        )
        drain_sync(settings.projects_root, session=session)

    return ExportOutcome(
        drive_link=result.drive_link,
        export_base_name=base_name,
        output_path=result.output_path or Path(resolve_output_path(request.format, str(output))),
    )


def list_pending_sync(root: Path | str) -> list[SyncEntry]:
    return SyncQueue(root).pending()


def drain_sync(root: Path | str, *, session: ExportSession) -> int:
    """Attempt every pending deferred upload once."""
    if session.sync_uploader is None:
        log.warning("No sync uploader configured; %s left pending", root)
        return 0
    return SyncQueue(root).drain(session.sync_uploader)
