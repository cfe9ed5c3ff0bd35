"""Checksum ledger repair for vendored packages.

``cargo vendor`` writes a ``.cargo-checksum.json`` next to every vendored
package recording the sha256 of each file. Cargo refuses to build from a
vendored directory whose files no longer match. Emptying the ``files`` map
makes cargo skip per-file verification while the ``package`` checksum (the
registry tarball hash) stays intact, which is cheaper than recomputing every
digest after a manifest edit.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import json

from ..errors import LedgerError

DEFAULT_LEDGER_NAME = ".cargo-checksum.json"


def ledger_path_for(manifest_path: Path, ledger_name: str = DEFAULT_LEDGER_NAME) -> Path:
    """Return the checksum ledger that sits beside ``manifest_path``."""

    return manifest_path.parent / ledger_name


def clear_file_checksums(manifest_path: Path, ledger_name: str = DEFAULT_LEDGER_NAME) -> Path:
    """Replace the ``files`` mapping of the sibling ledger with an empty one.

    Every other field is preserved. The file is truncated and rewritten in
    place. Raises :class:`~revendor.errors.LedgerError` when the ledger is not
    a JSON object and :class:`OSError` when it cannot be opened.
    """
    path = ledger_path_for(manifest_path, ledger_name)
    with path.open("r+", encoding="utf-8") as handle:
        try:
            metadata: Any = json.load(handle)
        except json.JSONDecodeError as error:
            raise LedgerError(path, str(error)) from error
        if not isinstance(metadata, dict):
            raise LedgerError(path, "expected a JSON object at the top level")
        metadata["files"] = {}
        handle.seek(0)
        handle.truncate()
        json.dump(metadata, handle, separators=(",", ":"))
    return path

