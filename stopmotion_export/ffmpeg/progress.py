"""Turn FFmpeg status lines into progress values.

FFmpeg has no structured progress on stderr, so the text adapter below
scrapes lines such as ``frame=  150 fps= 30 q=28.0 ...``. Everything past
`ProgressEvent` is independent of the log format.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterator
from dataclasses import dataclass

FRAME_TOKEN = "frame="
FPS_TOKEN = "fps="

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class ProgressEvent:
    frames_encoded: int


def _parse_status_line(line: str) -> ProgressEvent | None:
    head, sep, _ = line.partition(FPS_TOKEN)
    if not sep:
        return None
    _, sep, counter = head.partition(FRAME_TOKEN)
    if not sep:
        return None
    counter = counter.replace(" ", "").replace("\t", "")
    if not counter:
        return None
    try:
        return ProgressEvent(frames_encoded=int(counter))
    except ValueError:
        return None


def iter_progress_events(chunk: str | None) -> Iterator[ProgressEvent]:
    """Yield one event per status line in `chunk`, in log order."""
    for line in (chunk or "").splitlines():
        event = _parse_status_line(line)
        if event is not None:
            yield event


def progress_fraction(
    event: ProgressEvent,
    total_frames: int,
    output_framerate: float | None = None,
) -> float:
    if output_framerate is None:
        divider = float(total_frames)
    else:
        divider = float(total_frames) * float(output_framerate)
    if divider <= 0 or math.isnan(divider):
        divider = 1.0
    return event.frames_encoded / divider


def parse_log(
    chunk: str | None,
    total_frames: int,
    output_framerate: float | None,
    on_progress: ProgressCallback,
) -> None:
    """Report progress for every status line in `chunk`.

    A value of 0 is never reported. Values are not deduplicated or
    reordered.
    """
    for event in iter_progress_events(chunk):
        value = progress_fraction(event, total_frames, output_framerate)
        if value and not math.isnan(value):
            on_progress(value)
