"""RU: Утилиты чтения и атомарной записи JSON-файлов.

EN: Helpers for defensive JSON reads and atomic JSON writes.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path


def read_json_if_valid(path: Path) -> object | None:
    """Return the decoded document, or None if it is missing or unparsable."""
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, TypeError, ValueError):
        return None


def write_json_atomic(path: Path, data: object) -> None:
    """RU: Записывает JSON через временный файл и os.replace.

    Читатель видит либо старое, либо новое содержимое, но не частичную запись.

    EN: Write JSON through a temp file in the same directory and os.replace.

    Readers observe either the old or the new document, never a partial one.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
