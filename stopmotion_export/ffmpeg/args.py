"""Build FFmpeg command lines for image-sequence encoding and audio muxing.

Both builders are pure: the same inputs always give the same argument list.
Paths are passed through as given, the encoder runs with the staging
directory as its working directory.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Final

from stopmotion_export.errors import ConfigurationError
from stopmotion_export.ffmpeg.profiles import EncodingProfile, resolve_profile
from stopmotion_export.models import ExportOptions

UNDEFINED_OUTPUT: Final = "UNDEFINED_OUTPUT"

FRAME_PATTERN: Final = "frame-%06d.{ext}"
STATS_PERIOD: Final = "0.1"
DEFAULT_INPUT_FPS: Final = 12.0
MAX_INPUT_FPS: Final = 240.0


def _fmt_number(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return str(value)


def clamp_input_framerate(fps: float | str | None) -> float:
    """Return `fps` when it lies in (0, 240], else the 12 fps fallback."""
    try:
        value = float(fps)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEFAULT_INPUT_FPS
    if 0 < value <= MAX_INPUT_FPS:
        return value
    return DEFAULT_INPUT_FPS


def resolve_output_path(fmt: str, output_path: str) -> str:
    """Append the container extension unless `output_path` already has it."""
    profile = resolve_profile(fmt)
    return _with_extension(profile, output_path)


def _with_extension(profile: EncodingProfile, output_path: str) -> str:
    suffix = f".{profile.extension}"
    if str(output_path).lower().endswith(suffix):
        return str(output_path)
    return f"{output_path}{suffix}"


def compute_duration(total_frames: int | None, output_fps: float) -> str | None:
    """Exact output duration in seconds with millisecond precision."""
    try:
        frames = int(total_frames or 0)
    except (TypeError, ValueError):
        return None
    if output_fps <= 0 or frames <= 0:
        return None
    # Ties round away from zero: 1 frame at 16 fps is "0.063".
    try:
        seconds = Decimal(frames) / Decimal(repr(float(output_fps)))
    except InvalidOperation:
        return None
    return str(seconds.quantize(Decimal("0.001"), rounding=ROUND_HALF_UP))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves upwards (2.5 -> 3)."""
    return math.floor(value + 0.5)


def _audio_codec_args(profile: EncodingProfile) -> list[str]:
    if profile.extension == "webm":
        return ["-c:a", "libopus", "-b:a", "128k"]
    return ["-c:a", "aac", "-b:a", "192k"]


def _effective_output_fps(input_fps: float, options: ExportOptions) -> float:
    override = options.output_framerate_override
    return override if override is not None else input_fps


def build_arguments(
    fmt: str,
    output_path: str,
    input_framerate: float | None = 24,
    options: ExportOptions | None = None,
) -> list[str]:
    """Return the encoder arguments for one image-sequence encode.

    Audio is included (looped, trimmed to the video duration) only when
    `options.background_sound_path` is set.
    """
    profile = resolve_profile(fmt)
    if not output_path:
        raise ConfigurationError(UNDEFINED_OUTPUT, "output path is empty")
    opts = options or ExportOptions()

    args = ["-y", "-stats_period", STATS_PERIOD]

    # Input 0: image sequence. -framerate sets the input rate, -r would
    # resample on output.
    input_fps = clamp_input_framerate(input_framerate)
    args += ["-framerate", _fmt_number(input_fps)]
    args += ["-i", FRAME_PATTERN.format(ext=opts.frame_extension or "jpg")]

    # Input 1: background audio, looped; the duration is capped below.
    has_audio = bool(opts.background_sound_path)
    if has_audio:
        args += ["-stream_loop", "-1", "-i", str(opts.background_sound_path)]

    args += ["-c:v", profile.codec]
    if profile.preset:
        args += ["-preset", profile.preset]

    args += ["-pix_fmt", profile.pix_fmt]

    if profile.extension == "mp4":
        args += ["-movflags", "+faststart"]

    override = opts.output_framerate_override
    if override is not None:
        args += ["-r", _fmt_number(override)]

    if fmt == "prores":
        args += ["-profile:v", "3", "-vendor", "apl0", "-bits_per_mb", "4000", "-f", "mov"]

    if has_audio:
        duration = compute_duration(opts.total_frames, _effective_output_fps(input_fps, opts))
        if duration is not None:
            args += ["-t", duration]
        args += _audio_codec_args(profile)
        args += ["-map", "0:v:0", "-map", "1:a:0"]
        args.append("-shortest")

    args.append(_with_extension(profile, output_path))
    return args


def build_mux_arguments(
    fmt: str,
    video_path: str,
    audio_path: str,
    output_path: str,
    input_framerate: float | None = 24,
    options: ExportOptions | None = None,
) -> list[str]:
    """Return the second-pass arguments attaching audio to an encoded video.

    The video stream is copied, only the audio is encoded.
    """
    profile = resolve_profile(fmt)
    if not output_path:
        raise ConfigurationError(UNDEFINED_OUTPUT, "output path is empty")
    opts = options or ExportOptions()

    args = ["-y", "-i", str(video_path)]
    args += ["-stream_loop", "-1", "-i", str(audio_path)]
    args += ["-c:v", "copy"]

    input_fps = clamp_input_framerate(input_framerate)
    duration = compute_duration(opts.total_frames, _effective_output_fps(input_fps, opts))
    if duration is not None:
        args += ["-t", duration]

    args += _audio_codec_args(profile)
    if profile.extension != "webm":
        args += ["-movflags", "+faststart"]

    args += ["-map", "0:v:0", "-map", "1:a:0", "-shortest"]
    args.append(_with_extension(profile, output_path))
    return args
