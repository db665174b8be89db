"""Run the encoder process and stream its output."""

from __future__ import annotations

import logging
import subprocess
import threading
from collections import deque
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Final

from stopmotion_export.errors import EncoderFailure, EncoderTimeout

LOG = logging.getLogger("stopmotion")

TAIL_LINES: Final = 40
TERMINATE_GRACE_S: Final = 5.0
EXIT_NOT_EXECUTABLE: Final = 126
EXIT_NOT_FOUND: Final = 127


def _stop_process(proc: subprocess.Popen) -> None:
    """Terminate the encoder, escalating to kill if it does not exit."""
    try:
        proc.terminate()
        proc.wait(timeout=TERMINATE_GRACE_S)
    except subprocess.TimeoutExpired:
        LOG.warning("Encoder did not terminate in time; killing")
        try:
            proc.kill()
        except OSError:
            LOG.exception("Failed to kill encoder process")
    except OSError:
        LOG.exception("Failed to terminate encoder process")


def run_encoder(
    arguments: Sequence[str],
    working_directory: Path | str,
    on_log_chunk: Callable[[str], None],
    *,
    binary: str = "ffmpeg",
    timeout: float | None = None,
) -> None:
    """Run one encoder invocation to completion.

    Output (stderr merged into stdout) is passed line by line to
    `on_log_chunk` as it arrives. FFmpeg terminates status lines with a bare
    carriage return; universal newlines split those too.

    Raises:
        EncoderFailure: non-zero exit code or the binary could not be started.
        EncoderTimeout: the process was stopped after `timeout` seconds.

    """
    cmd = [str(binary), *[str(a) for a in arguments]]
    LOG.debug("Running in %s: %s", working_directory, " ".join(cmd))

    try:
        proc = subprocess.Popen(
            cmd,
            cwd=str(working_directory),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        )
    except OSError as exc:
        code = EXIT_NOT_FOUND if isinstance(exc, FileNotFoundError) else EXIT_NOT_EXECUTABLE
        LOG.error("Could not start encoder %s: %s", binary, exc)
        raise EncoderFailure(exit_code=code, stderr_tail=str(exc)) from exc

    tail: deque[str] = deque(maxlen=TAIL_LINES)
    timed_out = threading.Event()

    def _on_timeout() -> None:
        timed_out.set()
        LOG.error("Encoder exceeded %.1fs timeout; stopping it", timeout)
        _stop_process(proc)

    timer: threading.Timer | None = None
    if timeout is not None and timeout > 0:
        timer = threading.Timer(timeout, _on_timeout)
        timer.daemon = True
        timer.start()

    try:
        assert proc.stdout is not None
        for line in proc.stdout:
            tail.append(line.rstrip("\n"))
            on_log_chunk(line)
        returncode = proc.wait()
    finally:
        if timer is not None:
            timer.cancel()
        if proc.poll() is None:
            _stop_process(proc)
        if proc.stdout is not None:
            proc.stdout.close()

    stderr_tail = "\n".join(tail)
    if returncode == 0:
        return
    if timed_out.is_set():
        raise EncoderTimeout(
            exit_code=returncode, timeout_s=float(timeout or 0), stderr_tail=stderr_tail,
        )
    LOG.error("Encoder failed with code %s", returncode)
    raise EncoderFailure(exit_code=returncode, stderr_tail=stderr_tail)
