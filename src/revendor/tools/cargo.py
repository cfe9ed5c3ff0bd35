"""Minimal cargo helpers.

Only two cargo capabilities are used: ``cargo add`` to inject a dependency
into a manifest and ``cargo vendor`` to materialise a dependency tree on disk.
Resolution and vendoring remain cargo's business; these wrappers build the
command line, run it and turn a failing exit status into :class:`CargoError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

import logging
import os
import subprocess

from ..config import CargoSettings, DependencySpec
from ..errors import CargoError

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CargoResult:
    """Captured output of a successful cargo invocation."""

    command: tuple[str, ...]
    cwd: Path | None
    stdout: str
    stderr: str


class Cargo:
    """Lightweight wrapper around the ``cargo`` executable."""

    def __init__(self, settings: CargoSettings | None = None) -> None:
        self.settings = settings or CargoSettings()

    def _merge_env(self) -> dict[str, str] | None:
        if not self.settings.env:
            return None
        env = os.environ.copy()
        env.update({str(key): str(value) for key, value in self.settings.env.items()})
        return env

    # ---------------------------------------------------------------- cargo IO
    def run(self, args: Sequence[str], *, cwd: Path | None = None) -> CargoResult:
        """Execute ``cargo`` with ``args`` and raise on a non-zero exit."""

        command = [self.settings.executable, *args]
        LOGGER.debug("Running %s", " ".join(command))
        try:
            process = subprocess.run(  # noqa: S603 - executable comes from configuration
                command,
                cwd=cwd,
                env=self._merge_env(),
                capture_output=True,
                text=False,
                check=False,
                timeout=self.settings.timeout,
            )
        except FileNotFoundError as error:
            raise CargoError(
                f"Executable not available: {self.settings.executable}",
                command=command,
            ) from error
        except subprocess.TimeoutExpired as error:
            raise CargoError(
                f"cargo {args[0]} timed out after {self.settings.timeout}s",
                command=command,
            ) from error

        stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
        stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
        if process.returncode != 0:
            message = stderr.strip() or stdout.strip() or "unknown cargo error"
            raise CargoError(
                f"cargo {args[0]} failed: {message}",
                command=command,
                exit_code=process.returncode,
                stdout=stdout,
                stderr=stderr,
            )
        return CargoResult(command=tuple(command), cwd=cwd, stdout=stdout, stderr=stderr)

    def add(self, manifest_path: Path, dependency: DependencySpec) -> CargoResult:
        """Add ``dependency`` to the manifest at ``manifest_path``."""

        return self.run(build_add_args(manifest_path, dependency))

    def vendor(self, manifest_path: Path, directory: Path, destination: str = "vendor") -> CargoResult:
        """Vendor every dependency of ``manifest_path`` into ``directory / destination``.

        cargo runs with ``directory`` as its working directory, so a relative
        ``destination`` lands beside the manifest being vendored.
        """

        LOGGER.info("Vendoring crates into %s", directory / destination)
        return self.run(["vendor", "--manifest-path", str(manifest_path), destination], cwd=directory)


def build_add_args(manifest_path: Path, dependency: DependencySpec) -> List[str]:
    """Return the ``cargo add`` argument list for ``dependency``."""

    target = dependency.name
    if dependency.version:
        target = f"{target}@{dependency.version}"
    args: List[str] = ["add", target, "--manifest-path", str(manifest_path), "--no-optional"]
    if dependency.git:
        args.extend(["--git", dependency.git])
    if dependency.rename:
        args.extend(["--rename", dependency.rename])
    if dependency.features:
        args.extend(["--features", ",".join(dependency.features)])
    return args


def add_dependency(
    manifest_path: Path,
    dependency: DependencySpec,
    *,
    settings: CargoSettings | None = None,
) -> CargoResult:
    """Inject ``dependency`` into a single manifest."""
    return Cargo(settings).add(manifest_path, dependency)


def vendor(
    manifest_path: Path,
    directory: Path,
    destination: str = "vendor",
    *,
    settings: CargoSettings | None = None,
) -> CargoResult:
    """Vendor the dependencies of ``manifest_path`` into ``directory / destination``."""
    return Cargo(settings).vendor(manifest_path, directory, destination)

