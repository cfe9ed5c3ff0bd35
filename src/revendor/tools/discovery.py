"""Locate the manifests of vendored packages."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import List

import os
import re

_VERSION_SUFFIX_RE = re.compile(r"^-\d+\.\d+\.\d+([-+][0-9A-Za-z.+-]*)?$")


@dataclass(slots=True)
class DiscoveryResult:
    """Nested manifests split into those to patch and those left alone."""

    selected: tuple[Path, ...] = ()
    excluded: tuple[Path, ...] = ()


def is_excluded(package_dir: str, exclude: Iterable[str]) -> bool:
    """Return ``True`` if ``package_dir`` belongs to an excluded package.

    Both the plain ``name`` directory and cargo's versioned ``name-1.2.3``
    form match.
    """

    for name in exclude:
        if package_dir == name:
            return True
        if package_dir.startswith(name) and _VERSION_SUFFIX_RE.match(package_dir[len(name):]):
            return True
    return False


def walk_manifests(root: Path, manifest_name: str, max_depth: int) -> List[Path]:
    """Return files named ``manifest_name`` at most ``max_depth`` levels below ``root``.

    ``root`` itself is depth zero, a package directory depth one and its
    manifest depth two. Unreadable directories are skipped.
    """

    found: List[Path] = []
    root = Path(root)
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        depth = len(current.relative_to(root).parts)
        if depth + 1 >= max_depth:
            dirnames[:] = []
        else:
            dirnames.sort()
        if manifest_name in filenames:
            candidate = current / manifest_name
            if candidate.is_file():
                found.append(candidate)
    return sorted(found)


def discover_manifests(
    vendor_dir: Path,
    *,
    manifest_name: str = "Cargo.toml",
    max_depth: int = 2,
    exclude: Iterable[str] = (),
) -> DiscoveryResult:
    """Find nested manifests below ``vendor_dir`` and apply the exclusion set."""

    excluded_names = frozenset(exclude)
    selected: list[Path] = []
    excluded: list[Path] = []
    for manifest in walk_manifests(vendor_dir, manifest_name, max_depth):
        if is_excluded(manifest.parent.name, excluded_names):
            excluded.append(manifest)
        else:
            selected.append(manifest)
    return DiscoveryResult(selected=tuple(selected), excluded=tuple(excluded))
