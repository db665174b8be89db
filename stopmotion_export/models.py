"""RU: Структуры данных экспорта (кадры, опции, результат).

EN: Export data structures (frames, options, results).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class FrameReference:
    """One captured frame waiting in the buffer directory."""

    index: int
    buffer_id: str
    extension: str = "jpg"
    width: int | None = None
    height: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FrameReference:
        buffer_id = data.get("buffer_id", data.get("bufferId"))
        if buffer_id is None:
            raise ValueError(f"Frame without buffer id: {data!r}")
        index = int(data.get("index", 0))
        if index < 0:
            raise ValueError(f"Negative frame index: {index}")
        width = data.get("width")
        height = data.get("height")
        return cls(
            index=index,
            buffer_id=str(buffer_id),
            extension=str(data.get("extension") or "jpg").lstrip("."),
            width=int(width) if width else None,
            height=int(height) if height else None,
        )


@dataclass(frozen=True)
class ExportOptions:
    """Options understood by the argument builder and the orchestrator."""

    custom_output_framerate: bool = False
    custom_output_framerate_number: float | None = None
    framerate: float | None = None
    add_ending_text: bool = False
    ending_text: str | None = None
    # Track name to look up in the audio search path.
    background_sound: str | None = None
    # Staged audio, relative to the staging directory.
    background_sound_path: str | None = None
    total_frames: int | None = None
    upload_to_drive: bool = False
    user_email: str | None = None
    export_base_name: str | None = None
    frame_extension: str = "jpg"

    @property
    def output_framerate_override(self) -> float | None:
        if not self.custom_output_framerate:
            return None
        try:
            number = float(self.custom_output_framerate_number or 0)
        except (TypeError, ValueError):
            return None
        return number if number > 0 else None


class AudioMode(Enum):
    """Whether the encode runs as a single pass or video pass + audio mux."""

    NO_AUDIO = "no_audio"
    MUXED_AUDIO = "muxed_audio"


@dataclass(frozen=True)
class ExportResult:
    drive_link: str | None = None
    output_path: Path | None = None
