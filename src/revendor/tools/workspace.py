"""Detach a vendored manifest from any enclosing cargo workspace."""

from __future__ import annotations

from pathlib import Path

import re

WORKSPACE_BLOCK = "\n[workspace]\n"

_WORKSPACE_HEADER_RE = re.compile(r"^\s*\[\s*workspace\s*\]\s*(#.*)?$")
_WORKSPACE_INLINE_RE = re.compile(r"^\s*workspace\s*=")
_TABLE_HEADER_RE = re.compile(r"^\s*\[")


def has_workspace_table(text: str) -> bool:
    """Return ``True`` when ``text`` already declares a ``workspace`` table.

    Both the ``[workspace]`` header and a top-level ``workspace = {...}``
    key count. A ``workspace`` key inside another table (``package.workspace``
    or ``dep.workspace = true``) does not.
    """

    top_level = True
    for line in text.splitlines():
        if _WORKSPACE_HEADER_RE.match(line):
            return True
        if _TABLE_HEADER_RE.match(line):
            top_level = False
        elif top_level and _WORKSPACE_INLINE_RE.match(line):
            return True
    return False


def add_empty_workspace(manifest_path: Path) -> bool:
    """Append an empty ``[workspace]`` table to ``manifest_path``.

    Without it cargo treats a vendored package that sits below another
    package's directory as a member of that workspace and refuses to edit it.
    A manifest that already declares the table is left untouched, so running
    the pipeline twice over the same vendor tree does not produce a duplicate
    table. Returns whether the block was appended.
    """

    with manifest_path.open("r", encoding="utf-8") as handle:
        if has_workspace_table(handle.read()):
            return False
    with manifest_path.open("a", encoding="utf-8") as handle:
        handle.write(WORKSPACE_BLOCK)
    return True
