"""Tests for export and upload naming helpers."""

from datetime import datetime

import pytest

from stopmotion_export.utils.naming import (
    make_export_base_name,
    project_slug,
    sanitize_name,
    upload_base_name,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("a.b+c@x.com", "a_b_c_x_com"),
        ("  My Film!  ", "My_Film"),
        ("__x__", "x"),
        ("Šiauliai 2026", "iauliai_2026"),
        ("", ""),
        (None, ""),
    ],
)
def test_sanitize_name(raw: object, expected: str) -> None:
    assert sanitize_name(raw) == expected


def test_upload_base_name_order() -> None:
    assert upload_base_name(export_base_name="base", user_email="a@b.c", project_title="t") == "base"
    assert upload_base_name(export_base_name="", user_email="a@b.c", project_title="t") == "a_b_c"
    assert upload_base_name(export_base_name=None, user_email=None, project_title="My Film") == "My_Film"
    assert upload_base_name(export_base_name="!!", user_email=None, project_title=None) == "video"


def test_project_slug_prefers_author() -> None:
    data = {"project": {"title": "Film", "authorsName": "Class 3B"}}
    assert project_slug(data) == "Class_3B"
    assert project_slug({"project": {"title": "Film"}}) == "Film"
    assert project_slug({}) == ""
    assert project_slug({"project": "oops"}) == ""


def test_make_export_base_name_format() -> None:
    now = datetime(2026, 10, 19, 9, 5)
    assert make_export_base_name(user_email="kid@school.lt", project_data={}, now=now) == (
        "kid_school_lt_20261019-0905"
    )
    assert make_export_base_name(user_email=None, project_data=None, now=now) == "video_20261019-0905"
