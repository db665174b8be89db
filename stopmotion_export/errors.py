"""Exception types raised by the export pipeline."""

from __future__ import annotations


class ExportError(RuntimeError):
    """Base class for export failures surfaced to the caller."""


class ConfigurationError(ExportError):
    """Raised before any I/O when the export request is unusable."""

    def __init__(self, code: str, detail: str = "") -> None:
        super().__init__(f"{code}: {detail}" if detail else code)
        self.code = code
        self.detail = detail


class EncoderFailure(ExportError):
    """Raised when the encoder process exits with a non-zero code."""

    def __init__(self, *, exit_code: int, stderr_tail: str = "") -> None:
        message = f"Encoder exited with code {exit_code}"
        if stderr_tail.strip():
            message += f": {stderr_tail.strip().splitlines()[-1]}"
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail


class EncoderTimeout(EncoderFailure):
    """Raised when the encoder had to be terminated after a timeout."""

    def __init__(self, *, exit_code: int, timeout_s: float, stderr_tail: str = "") -> None:
        super().__init__(exit_code=exit_code, stderr_tail=stderr_tail)
        self.args = (f"Encoder terminated after {timeout_s:.1f}s timeout",)
        self.timeout_s = timeout_s


class UploadFailure(ExportError):
    """Raised by upload collaborators when no shareable link was produced."""


class NotifyFailure(ExportError):
    """Raised by notification collaborators on delivery errors."""
