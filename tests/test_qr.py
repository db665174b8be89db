"""Tests for saving QR images next to exported videos."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from stopmotion_export.qr import (
    QrSaveError,
    decode_png_data_url,
    resolve_qr_save_directory,
    save_qr_image,
)

PNG = b"\x89PNG\r\n\x1a\nfake"
DATA_URL = "data:image/png;base64," + base64.b64encode(PNG).decode("ascii")


def test_decode_png_data_url() -> None:
    assert decode_png_data_url(DATA_URL) == PNG
    assert decode_png_data_url(DATA_URL.replace("image/png", "IMAGE/PNG") + "\n") == PNG


@pytest.mark.parametrize(
    "bad",
    ["", "data:image/jpeg;base64,AAAA", "data:image/png;base64,***", "hello"],
)
def test_decode_rejects_invalid_data(bad: str) -> None:
    with pytest.raises(QrSaveError):
        decode_png_data_url(bad)


def test_save_uses_configured_dir(tmp_path: Path) -> None:
    target = save_qr_image(DATA_URL, "kid_20260101-1200", tmp_path / "qr", home=tmp_path, env={})
    assert target == tmp_path / "qr" / "kid_20260101-1200.png"
    assert target.read_bytes() == PNG


def test_save_rejects_missing_data_and_bad_names(tmp_path: Path) -> None:
    with pytest.raises(QrSaveError, match="Missing"):
        save_qr_image("", "name", tmp_path)
    with pytest.raises(QrSaveError, match="Invalid export base name"):
        save_qr_image(DATA_URL, "../escape", tmp_path)


def test_resolve_prefers_onedrive_env(tmp_path: Path) -> None:
    home = tmp_path / "home"
    home.mkdir()
    onedrive = tmp_path / "corp-drive"
    onedrive.mkdir()
    target = resolve_qr_save_directory(home=home, env={"OneDriveCommercial": str(onedrive)})
    assert target == onedrive / "stopmotion"
    assert target.is_dir()


def test_resolve_scans_home_for_onedrive_folders(tmp_path: Path) -> None:
    (tmp_path / "OneDrive - School").mkdir()
    target = resolve_qr_save_directory(home=tmp_path, env={})
    assert target == tmp_path / "OneDrive - School" / "stopmotion"


def test_resolve_skips_missing_env_folder_and_falls_back_to_desktop(tmp_path: Path) -> None:
    target = resolve_qr_save_directory(home=tmp_path, env={"OneDrive": str(tmp_path / "missing")})
    assert target == tmp_path / "Desktop" / "stopmotion"
    assert target.is_dir()
    assert not (tmp_path / "missing").exists()
