"""Tests for the staging stage."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from stopmotion_export.models import FrameReference
from stopmotion_export.stages import staging
from stopmotion_export.stages.frames_stage import export_frames


class FakeRenderer:
    def __init__(self) -> None:
        self.calls: list[tuple[str, int, int, str]] = []

    def render(self, text: str, width: int, height: int, extension: str = "jpg") -> bytes:
        self.calls.append((text, width, height, extension))
        return b"title-card"


class BrokenRenderer:
    def render(self, text: str, width: int, height: int, extension: str = "jpg") -> bytes:
        raise RuntimeError("no fonts")


def _stage_buffers(project: Path, ids: list[str]) -> None:
    for buffer_id in ids:
        staging.stage_buffer(project, buffer_id, f"data-{buffer_id}".encode())


def test_stage_buffer_writes_into_tmp(tmp_path: Path) -> None:
    path = staging.stage_buffer(tmp_path, "abc", b"123")
    assert path == tmp_path / ".tmp" / "abc"
    assert path.read_bytes() == b"123"


def test_stage_buffer_rejects_paths(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Invalid buffer id"):
        staging.stage_buffer(tmp_path, "../evil", b"x")


def test_copy_frames_orders_by_index(tmp_path: Path) -> None:
    _stage_buffers(tmp_path, ["b", "a", "c"])
    frames = [
        FrameReference(index=5, buffer_id="c"),
        FrameReference(index=0, buffer_id="a"),
        FrameReference(index=2, buffer_id="b"),
    ]
    out = tmp_path / "work"
    out.mkdir()

    assert staging.copy_frames(frames, staging.buffer_dir(tmp_path), out, "jpg") == 3
    assert (out / "frame-000000.jpg").read_bytes() == b"data-a"
    assert (out / "frame-000001.jpg").read_bytes() == b"data-b"
    assert (out / "frame-000002.jpg").read_bytes() == b"data-c"


def test_staging_directory_removed_on_error(tmp_path: Path) -> None:
    seen: list[Path] = []
    with pytest.raises(RuntimeError):
        with staging.staging_directory(tmp_path) as work:
            seen.append(work)
            (work / "frame-000000.jpg").write_bytes(b"x")
            raise RuntimeError("encoder exploded")
    assert seen and not seen[0].exists()
    assert seen[0].name.startswith(".tmp-")


def test_staging_directories_are_unique(tmp_path: Path) -> None:
    with staging.staging_directory(tmp_path) as a, staging.staging_directory(tmp_path) as b:
        assert a != b


def test_add_ending_frames_and_recount(tmp_path: Path) -> None:
    renderer = FakeRenderer()
    (tmp_path / "frame-000000.jpg").write_bytes(b"x")
    (tmp_path / "frame-000001.jpg").write_bytes(b"x")

    written = staging.add_ending_frames(
        tmp_path,
        start_position=2,
        count=36,
        text="The End",
        size=(640, 480),
        extension="jpg",
        renderer=renderer,
    )

    assert written == 36
    assert renderer.calls == [("The End", 640, 480, "jpg")]
    assert (tmp_path / "frame-000037.jpg").read_bytes() == b"title-card"
    assert staging.count_frames(tmp_path, "jpg") == 38


def test_add_ending_frames_render_failure_is_warning(
    tmp_path: Path, caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.WARNING, logger="stopmotion")
    written = staging.add_ending_frames(
        tmp_path,
        start_position=0,
        count=10,
        text="The End",
        size=(640, 480),
        extension="jpg",
        renderer=BrokenRenderer(),
    )
    assert written == 0
    assert staging.count_frames(tmp_path, "jpg") == 0
    assert "Ending frame rendering failed" in caplog.text


def test_title_card_size_defaults() -> None:
    assert staging.title_card_size([]) == (1920, 1080)
    frames = [FrameReference(index=1, buffer_id="b"), FrameReference(index=0, buffer_id="a", width=800, height=600)]
    assert staging.title_card_size(frames) == (800, 600)


def test_count_frames_ignores_other_files(tmp_path: Path) -> None:
    (tmp_path / "frame-000000.jpg").write_bytes(b"x")
    (tmp_path / "frame-000001.png").write_bytes(b"x")
    (tmp_path / "bg-audio.mp3").write_bytes(b"x")
    assert staging.count_frames(tmp_path, "jpg") == 1


def test_stage_background_audio_first_search_path_wins(tmp_path: Path) -> None:
    first = tmp_path / "desktop"
    second = tmp_path / "resources"
    first.mkdir()
    second.mkdir()
    (first / "song.wav").write_bytes(b"desktop")
    (second / "song.wav").write_bytes(b"bundled")
    work = tmp_path / "work"
    work.mkdir()

    name = staging.stage_background_audio("song.wav", [first, second], work)

    assert name == "bg-audio.wav"
    assert (work / name).read_bytes() == b"desktop"


def test_stage_background_audio_missing_is_warning(
    tmp_path: Path, caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.WARNING, logger="stopmotion")
    assert staging.stage_background_audio("nope.mp3", [tmp_path], tmp_path) is None
    assert "Background audio not found" in caplog.text


def test_list_audio_tracks_dedupes(tmp_path: Path) -> None:
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.mkdir()
    b.mkdir()
    (a / "one.mp3").write_bytes(b"")
    (a / "notes.txt").write_bytes(b"")
    (b / "one.mp3").write_bytes(b"")
    (b / "two.OGG").write_bytes(b"")

    assert staging.list_audio_tracks([a, b, tmp_path / "missing"]) == ["one.mp3", "two.OGG"]


def test_export_frames_keeps_indices(tmp_path: Path) -> None:
    project = tmp_path / "project"
    _stage_buffers(project, ["x", "y"])
    frames = [
        FrameReference(index=3, buffer_id="y", extension="png"),
        FrameReference(index=1, buffer_id="x"),
    ]
    written = export_frames(project, frames, tmp_path / "out")
    assert [p.name for p in written] == ["frame-000001.jpg", "frame-000003.png"]
