"""Static table of the supported output formats."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from stopmotion_export.errors import ConfigurationError

UNKNOWN_PROFILE: Final = "UNKNOWN_PROFILE"


@dataclass(frozen=True)
class EncodingProfile:
    """Codec/container/pixel-format tuple for one output format."""

    codec: str
    extension: str
    pix_fmt: str
    preset: str | None = None

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES.get(self.extension, "application/octet-stream")


_PROFILES: Final[dict[str, EncodingProfile]] = {
    "h264": EncodingProfile(codec="libx264", extension="mp4", pix_fmt="yuv420p", preset="faster"),
    "hevc": EncodingProfile(codec="libx265", extension="mp4", pix_fmt="yuv420p", preset="faster"),
    "prores": EncodingProfile(codec="prores_ks", extension="mov", pix_fmt="yuva444p10le"),
    "vp8": EncodingProfile(codec="libvpx", extension="webm", pix_fmt="yuv420p"),
    "vp9": EncodingProfile(codec="libvpx-vp9", extension="webm", pix_fmt="yuv420p"),
}

_MIME_TYPES: Final[dict[str, str]] = {
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "webm": "video/webm",
}


def get_encoding_profile(fmt: str | None) -> EncodingProfile | None:
    """Return the profile for `fmt`, or None if it is not registered."""
    if not fmt:
        return None
    return _PROFILES.get(fmt)


def resolve_profile(fmt: str | None) -> EncodingProfile:
    """Return the profile for `fmt` or raise ConfigurationError."""
    profile = get_encoding_profile(fmt)
    if profile is None:
        raise ConfigurationError(UNKNOWN_PROFILE, f"unsupported format {fmt!r}")
    return profile


def list_formats() -> list[str]:
    return list(_PROFILES)
