"""Exception hierarchy shared by the pipeline and its tool wrappers."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class RevendorError(RuntimeError):
    """Base class for failures raised by revendor."""


class ConfigError(RevendorError):
    """Raised when the configuration file cannot be read or validated."""


class ManifestNotFoundError(RevendorError):
    """Raised when a manifest path cannot be resolved to an existing file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Manifest not found: {self.path}")


class CargoError(RevendorError):
    """Raised when a cargo invocation exits unsuccessfully.

    The captured output is kept on the exception so callers can surface the
    tool's own diagnostics instead of a bare exit status.
    """

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        exit_code: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = tuple(command)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


class LedgerError(RevendorError):
    """Raised when a vendored package's checksum ledger is unusable."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Invalid checksum ledger {path}: {reason}")
