"""Tests for the encoding profile registry."""

from __future__ import annotations

import pytest

from stopmotion_export.errors import ConfigurationError
from stopmotion_export.ffmpeg.profiles import (
    get_encoding_profile,
    list_formats,
    resolve_profile,
)


@pytest.mark.parametrize(
    ("fmt", "extension"),
    [("h264", "mp4"), ("hevc", "mp4"), ("prores", "mov"), ("vp8", "webm"), ("vp9", "webm")],
)
def test_resolve_profile_containers(fmt: str, extension: str) -> None:
    profile = resolve_profile(fmt)
    assert profile.extension == extension
    assert profile.codec


def test_presets_only_on_x26x() -> None:
    assert resolve_profile("h264").preset == "faster"
    assert resolve_profile("hevc").preset == "faster"
    assert resolve_profile("prores").preset is None
    assert resolve_profile("vp9").preset is None


def test_unknown_profile_raises() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        resolve_profile("gif")
    assert exc_info.value.code == "UNKNOWN_PROFILE"


def test_get_encoding_profile_returns_none() -> None:
    assert get_encoding_profile("av1") is None
    assert get_encoding_profile(None) is None


def test_list_formats_order() -> None:
    assert list_formats() == ["h264", "hevc", "prores", "vp8", "vp9"]


def test_mime_type_by_container() -> None:
    assert resolve_profile("h264").mime_type == "video/mp4"
    assert resolve_profile("prores").mime_type == "video/quicktime"
    assert resolve_profile("vp8").mime_type == "video/webm"
