"""Tests for the deferred upload queue."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from stopmotion_export.sync import SyncEntry, SyncQueue


class RecordingUploader:
    def __init__(self, fail_codes: set[str] | None = None) -> None:
        self.calls: list[tuple[str, str, str, Path]] = []
        self.fail_codes = fail_codes or set()

    def upload_file(self, api_key: str, public_code: str, extension: str, path: Path) -> None:
        self.calls.append((api_key, public_code, extension, path))
        if public_code in self.fail_codes:
            raise ConnectionError("offline")


def _entry(code: str, uploaded: bool = False) -> SyncEntry:
    return SyncEntry(
        api_key="key",
        public_code=code,
        file_name=f"{code}.mp4",
        file_extension="mp4",
        is_uploaded=uploaded,
    )


def test_load_missing_or_corrupt_is_empty(tmp_path: Path) -> None:
    queue = SyncQueue(tmp_path)
    assert queue.load() == []
    queue.file_path.write_text("{not json", encoding="utf-8")
    assert queue.load() == []
    queue.file_path.write_text('{"a": 1}', encoding="utf-8")
    assert queue.load() == []


def test_save_uses_camel_case_keys(tmp_path: Path) -> None:
    queue = SyncQueue(tmp_path)
    saved = queue.save([_entry("abc")])
    assert saved == [_entry("abc")]
    data = json.loads(queue.file_path.read_text(encoding="utf-8"))
    assert data == [
        {
            "apiKey": "key",
            "publicCode": "abc",
            "fileName": "abc.mp4",
            "fileExtension": "mp4",
            "isUploaded": False,
        },
    ]


def test_save_failure_returns_empty(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x")
    # Root is a regular file, so the queue cannot be written below it.
    assert SyncQueue(blocker).save([_entry("abc")]) == []


def test_append_preserves_order(tmp_path: Path) -> None:
    queue = SyncQueue(tmp_path)
    queue.append(_entry("a"))
    queue.append(_entry("b"))
    assert [e.public_code for e in queue.load()] == ["a", "b"]


def test_drain_skips_uploaded_and_flips_flags(tmp_path: Path) -> None:
    queue = SyncQueue(tmp_path)
    queue.save([_entry("a", uploaded=True), _entry("b"), _entry("c")])
    uploader = RecordingUploader()

    assert queue.drain(uploader) == 2
    assert [c[1] for c in uploader.calls] == ["b", "c"]
    assert uploader.calls[0][3] == tmp_path / ".sync" / "b.mp4"
    assert all(e.is_uploaded for e in queue.load())
    assert len(queue.load()) == 3


def test_drain_is_idempotent(tmp_path: Path) -> None:
    queue = SyncQueue(tmp_path)
    queue.save([_entry("a"), _entry("b")])
    uploader = RecordingUploader()

    queue.drain(uploader)
    snapshot = queue.file_path.read_bytes()
    calls_after_first = len(uploader.calls)

    assert queue.drain(uploader) == 0
    assert len(uploader.calls) == calls_after_first
    assert queue.file_path.read_bytes() == snapshot


def test_drain_failure_leaves_entry_pending(tmp_path: Path) -> None:
    queue = SyncQueue(tmp_path)
    queue.save([_entry("a"), _entry("b"), _entry("c")])
    uploader = RecordingUploader(fail_codes={"b"})

    assert queue.drain(uploader) == 2
    assert [e.public_code for e in queue.pending()] == ["b"]

    retry = RecordingUploader()
    assert queue.drain(retry) == 1
    assert [c[1] for c in retry.calls] == ["b"]
    assert queue.pending() == []


def test_drain_persists_after_each_success(tmp_path: Path) -> None:
    queue = SyncQueue(tmp_path)
    queue.save([_entry("a"), _entry("b")])

    class CrashOnSecond:
        def upload_file(self, api_key: str, public_code: str, extension: str, path: Path) -> None:
            if public_code == "b":
                # Simulate the process dying mid-drain.
                raise KeyboardInterrupt

    try:
        queue.drain(CrashOnSecond())
    except KeyboardInterrupt:
        pass

    stored = {e.public_code: e.is_uploaded for e in SyncQueue(tmp_path).load()}
    assert stored == {"a": True, "b": False}


def test_load_parses_upload_flag_strictly(tmp_path: Path) -> None:
    (tmp_path / "sync.json").write_text(
        json.dumps(
            [
                {"publicCode": "A", "isUploaded": "false"},
                {"publicCode": "B", "isUploaded": "TRUE"},
                {"publicCode": "C", "isUploaded": 1},
                {"publicCode": "D", "isUploaded": True},
            ],
        ),
        encoding="utf-8",
    )
    flags = {e.public_code: e.is_uploaded for e in SyncQueue(tmp_path).load()}
    assert flags == {"A": False, "B": True, "C": False, "D": True}


def test_load_warns_about_malformed_entries(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="stopmotion")
    (tmp_path / "sync.json").write_text(
        json.dumps([{"publicCode": "A"}, "garbage", 7]), encoding="utf-8",
    )
    entries = SyncQueue(tmp_path).load()
    assert [e.public_code for e in entries] == ["A"]
    assert caplog.text.count("Skipping malformed sync entry") == 2
