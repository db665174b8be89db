"""RU: Подготовка рабочей директории для энкодера.

Кадры из общей директории буферов (`<project>/.tmp/`) копируются в
одноразовую директорию `<project>/.tmp-<uuid>/` под именами
`frame-000000.<ext>`, при необходимости добавляются финальные титры и копия
фоновой музыки. Одноразовая директория удаляется на любом пути выхода.

EN: Prepare the encoder working directory.

Frames from the shared buffer directory (`<project>/.tmp/`) are copied into a
disposable `<project>/.tmp-<uuid>/` as `frame-000000.<ext>`, optionally
followed by ending title frames and a copy of the background audio. The
disposable directory is removed on every exit path.
"""

from __future__ import annotations

import logging
import shutil
import uuid
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Final

from stopmotion_export.models import FrameReference
from stopmotion_export.services import TitleRenderer

LOG = logging.getLogger("stopmotion")

BUFFER_DIR_NAME: Final = ".tmp"
STAGING_PREFIX: Final = ".tmp-"
FRAME_PREFIX: Final = "frame-"
AUDIO_STAGED_NAME: Final = "bg-audio"
AUDIO_EXTENSIONS: Final = (".mp3", ".wav", ".ogg", ".m4a")
DEFAULT_TITLE_SIZE: Final = (1920, 1080)


def buffer_dir(project_path: Path) -> Path:
    return Path(project_path) / BUFFER_DIR_NAME


def frame_file_name(position: int, extension: str) -> str:
    return f"{FRAME_PREFIX}{position:06d}.{extension.lstrip('.')}"


def stage_buffer(project_path: Path | str, buffer_id: str, data: bytes) -> Path:
    """Persist one raw frame buffer before an export starts."""
    if not buffer_id or Path(buffer_id).name != buffer_id:
        raise ValueError(f"Invalid buffer id: {buffer_id!r}")
    directory = buffer_dir(Path(project_path))
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / buffer_id
    target.write_bytes(data)
    return target


def remove_buffer_dir(project_path: Path) -> None:
    shutil.rmtree(buffer_dir(project_path), ignore_errors=True)


@contextmanager
def staging_directory(project_path: Path | str) -> Iterator[Path]:
    """Create a private working directory and always remove it afterwards."""
    path = Path(project_path) / f"{STAGING_PREFIX}{uuid.uuid4()}"
    path.mkdir(parents=True)
    LOG.debug("Staging directory created: %s", path)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        LOG.debug("Staging directory removed: %s", path)


def sequence_extension(frames: Sequence[FrameReference]) -> str:
    """The single extension used in the frame name pattern."""
    if not frames:
        return "jpg"
    ordered = sorted(frames, key=lambda f: f.index)
    ext = ordered[0].extension.lstrip(".") or "jpg"
    others = {f.extension.lstrip(".") for f in ordered} - {ext}
    if others:
        LOG.warning(
            "Mixed frame extensions %s; naming all frames .%s", sorted(others), ext,
        )
    return ext


def copy_frames(
    frames: Sequence[FrameReference],
    source_dir: Path,
    staging_dir: Path,
    extension: str,
) -> int:
    """Copy buffers in index order as a gapless sequence starting at 0."""
    ordered = sorted(frames, key=lambda f: f.index)
    for position, frame in enumerate(ordered):
        shutil.copyfile(
            source_dir / frame.buffer_id,
            staging_dir / frame_file_name(position, extension),
        )
    return len(ordered)


def add_ending_frames(
    staging_dir: Path,
    *,
    start_position: int,
    count: int,
    text: str,
    size: tuple[int, int],
    extension: str,
    renderer: TitleRenderer,
) -> int:
    """Render the title card once and write it `count` times.

    Rendering problems are not fatal: a warning is logged and no ending frames
    are written.
    """
    if count <= 0:
        return 0
    width, height = size
    try:
        data = renderer.render(text, width, height, extension)
    except Exception as exc:
        LOG.warning("Ending frame rendering failed, skipping ending frames: %s", exc)
        return 0

    LOG.debug("Generating %d ending frames at %dx%d", count, width, height)
    for i in range(count):
        (staging_dir / frame_file_name(start_position + i, extension)).write_bytes(data)
    return count


def title_card_size(frames: Sequence[FrameReference]) -> tuple[int, int]:
    if not frames:
        return DEFAULT_TITLE_SIZE
    first = min(frames, key=lambda f: f.index)
    return (first.width or DEFAULT_TITLE_SIZE[0], first.height or DEFAULT_TITLE_SIZE[1])


def count_frames(staging_dir: Path, extension: str) -> int:
    suffix = f".{extension.lstrip('.')}"
    return sum(
        1
        for p in staging_dir.iterdir()
        if p.is_file() and p.name.startswith(FRAME_PREFIX) and p.name.endswith(suffix)
    )


def find_audio_track(name: str, search_paths: Iterable[Path]) -> Path | None:
    """Return the first existing `<dir>/<name>` in search order."""
    if not name or Path(name).name != name:
        return None
    for directory in search_paths:
        candidate = Path(directory).expanduser() / name
        if candidate.is_file():
            return candidate
    return None


def stage_background_audio(
    name: str, search_paths: Sequence[Path], staging_dir: Path,
) -> str | None:
    """Copy the requested track next to the frames.

    Returns the staged file name (relative to `staging_dir`) or None when the
    track could not be found or copied.
    """
    source = find_audio_track(name, search_paths)
    if source is None:
        LOG.warning(
            "Background audio not found: %s (searched %s)",
            name,
            ", ".join(str(p) for p in search_paths),
        )
        return None
    local_name = f"{AUDIO_STAGED_NAME}{source.suffix or '.mp3'}"
    try:
        shutil.copyfile(source, staging_dir / local_name)
    except OSError as exc:
        LOG.warning("Failed preparing background audio %s: %s", source, exc)
        return None
    LOG.info("Attached background audio: %s", name)
    return local_name


def list_audio_tracks(search_paths: Iterable[Path]) -> list[str]:
    """List selectable track names; the first directory wins on duplicates."""
    seen: set[str] = set()
    tracks: list[str] = []
    for directory in search_paths:
        directory = Path(directory).expanduser()
        try:
            entries = sorted(directory.iterdir())
        except OSError:
            continue
        for entry in entries:
            if not entry.is_file() or entry.suffix.lower() not in AUDIO_EXTENSIONS:
                continue
            if entry.name in seen:
                continue
            seen.add(entry.name)
            tracks.append(entry.name)
    return tracks
