"""File and upload naming helpers."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")


def sanitize_name(value: object) -> str:
    """Collapse every run of non-alphanumerics into one underscore.

    >>> sanitize_name("a.b+c@x.com")
    'a_b_c_x_com'
    """
    text = "" if value is None else str(value).strip()
    return _NON_ALNUM.sub("_", text).strip("_")


def upload_base_name(
    *,
    export_base_name: str | None,
    user_email: str | None,
    project_title: str | None,
) -> str:
    """Pick the first non-empty candidate and sanitize it, defaulting to 'video'."""
    for candidate in (export_base_name, user_email, project_title):
        name = sanitize_name(candidate)
        if name:
            return name
    return "video"


def project_slug(project_data: dict[str, Any] | None) -> str:
    project = (project_data or {}).get("project") or {}
    if not isinstance(project, dict):
        return ""
    for key in ("authorsName", "author", "title"):
        slug = sanitize_name(project.get(key))
        if slug:
            return slug
    return ""


def make_export_base_name(
    *,
    user_email: str | None,
    project_data: dict[str, Any] | None,
    now: datetime | None = None,
) -> str:
    """Return ``<slug>_<YYYYmmdd-HHMM>`` for naming exported files."""
    ts = (now or datetime.now()).strftime("%Y%m%d-%H%M")
    slug = sanitize_name(user_email) or project_slug(project_data) or "video"
    return f"{slug}_{ts}"
