"""Raw frame folder export (no encoding)."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from stopmotion_export.models import FrameReference
from stopmotion_export.stages.staging import buffer_dir, frame_file_name

LOG = logging.getLogger("stopmotion")


def export_frames(
    project_path: Path | str, frames: Sequence[FrameReference], output_dir: Path | str,
) -> list[Path]:
    """Copy buffers to `output_dir` named after their own frame index."""
    source = buffer_dir(Path(project_path))
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for frame in sorted(frames, key=lambda f: f.index):
        target = out / frame_file_name(frame.index, frame.extension)
        shutil.copyfile(source / frame.buffer_id, target)
        written.append(target)
    LOG.info("Exported %d frames to %s", len(written), out)
    return written
