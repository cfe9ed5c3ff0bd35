"""Tool integrations used by the revendor pipeline."""

from .cargo import Cargo, CargoResult, add_dependency, build_add_args, vendor
from .checksum import clear_file_checksums, ledger_path_for
from .discovery import DiscoveryResult, discover_manifests, is_excluded, walk_manifests
from .workspace import add_empty_workspace, has_workspace_table

__all__ = [
    "Cargo",
    "CargoResult",
    "DiscoveryResult",
    "add_dependency",
    "add_empty_workspace",
    "build_add_args",
    "clear_file_checksums",
    "discover_manifests",
    "has_workspace_table",
    "is_excluded",
    "ledger_path_for",
    "vendor",
    "walk_manifests",
]
