#!/usr/bin/env python3
"""RU: Лаунчер stopmotion-export из корня репозитория.

EN: Launcher for stopmotion-export from the repository root.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


def ensure_venv() -> None:
    """Re-exec into the repo venv if not already in a venv."""
    env_flag = "STOPMOTION_VENV_ACTIVE"
    if os.environ.get(env_flag) == "1":
        return

    if sys.prefix != sys.base_prefix:
        os.environ[env_flag] = "1"
        return

    venv_python = Path(__file__).resolve().parent / ".venv" / "bin" / "python"
    if venv_python.exists():
        os.environ[env_flag] = "1"
        os.execv(str(venv_python), [str(venv_python), *sys.argv])  # noqa: S606


def main() -> None:
    ensure_venv()
    from stopmotion_export.cli import main as _main

    raise SystemExit(_main())


if __name__ == "__main__":
    main()
