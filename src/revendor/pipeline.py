"""Recursive patch-and-revendor pipeline.

The root manifest is patched and vendored sequentially; any failure there
aborts the run. Every manifest found inside the resulting vendor tree is then
patched on a bounded thread pool. A nested manifest is isolated from any
enclosing workspace, receives the injected dependency and finally has its
checksum ledger cleared. These three steps run in order for one manifest and
stop at the first failure, which is recorded on that manifest's outcome
without affecting its siblings.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Literal, Mapping, Sequence

import json
import logging

from .config import PatchConfig
from .errors import ManifestNotFoundError, RevendorError
from .tools.cargo import Cargo
from .tools.checksum import clear_file_checksums
from .tools.discovery import DiscoveryResult, discover_manifests
from .tools.workspace import add_empty_workspace

LOGGER = logging.getLogger(__name__)
TELEMETRY_LOGGER = logging.getLogger("revendor.telemetry")

OutcomeStatus = Literal["patched", "failed"]
PatchStep = Literal["isolate", "inject", "repair"]


@dataclass(slots=True)
class ManifestOutcome:
    """Result of patching a single nested manifest."""

    manifest: Path
    status: OutcomeStatus
    step: PatchStep | None = None
    error: str | None = None
    workspace_appended: bool = False

    @property
    def ok(self) -> bool:
        return self.status == "patched"

    def short_message(self) -> str:
        if self.ok:
            return f"{self.manifest}: patched"
        return f"{self.manifest}: failed during {self.step} ({self.error})"


@dataclass(slots=True)
class PipelineReport:
    """Summary of a pipeline run."""

    root_manifest: Path
    vendor_dir: Path
    outcomes: List[ManifestOutcome] = field(default_factory=list)
    excluded: tuple[Path, ...] = ()
    vendor_output: str = ""

    @property
    def patched(self) -> List[ManifestOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> List[ManifestOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def format_summary(self) -> str:
        lines = [
            f"Root manifest: {self.root_manifest}",
            f"Vendor directory: {self.vendor_dir}",
            f"Nested manifests: {len(self.patched)} patched, {len(self.failed)} failed, "
            f"{len(self.excluded)} excluded",
        ]
        return "\n".join(lines)


def _serialise_event_value(value: Any) -> Any:
    """Convert telemetry payload values into JSON-friendly representations."""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_serialise_event_value(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _serialise_event_value(child) for key, child in value.items()}
    return str(value)


def _emit_event(event: str, **fields: Any) -> None:
    """Log one compact JSON telemetry event."""
    payload = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat()}
    for key, value in fields.items():
        payload[key] = _serialise_event_value(value)
    TELEMETRY_LOGGER.info(json.dumps(payload, separators=(",", ":"), ensure_ascii=True))


def resolve_manifest(path: Path | str) -> Path:
    """Canonicalise ``path`` and ensure it names an existing file."""

    candidate = Path(path)
    try:
        resolved = candidate.resolve(strict=True)
    except (OSError, RuntimeError) as error:
        raise ManifestNotFoundError(candidate) from error
    if not resolved.is_file():
        raise ManifestNotFoundError(candidate)
    return resolved


class RevendorPipeline:
    """Inject ``config.dependency`` into a manifest and everything it vendors."""

    def __init__(self, config: PatchConfig, *, cargo: Cargo | None = None) -> None:
        self.config = config
        self.cargo = cargo or Cargo(config.cargo)

    # ------------------------------------------------------------- discovery
    def vendor_dir_for(self, root_manifest: Path) -> Path:
        return root_manifest.parent / self.config.vendor.directory

    def discover(self, vendor_dir: Path) -> DiscoveryResult:
        """List nested manifests below ``vendor_dir`` without modifying anything."""

        vendor = self.config.vendor
        return discover_manifests(
            vendor_dir,
            manifest_name=vendor.manifest_name,
            max_depth=vendor.max_depth,
            exclude=self.config.exclude,
        )

    # ------------------------------------------------------------ single step
    def patch_manifest(self, manifest_path: Path) -> None:
        """Add the configured dependency to ``manifest_path``."""

        self.cargo.add(manifest_path, self.config.dependency)

    def patch_nested(self, manifest_path: Path) -> ManifestOutcome:
        """Run isolate, inject and repair for one vendored manifest.

        Failures are captured on the returned outcome rather than raised.
        """

        step: PatchStep = "isolate"
        appended = False
        try:
            appended = add_empty_workspace(manifest_path)
            step = "inject"
            self.patch_manifest(manifest_path)
            step = "repair"
            clear_file_checksums(manifest_path, self.config.vendor.ledger_name)
        except (RevendorError, OSError, ValueError, RecursionError) as error:
            outcome = ManifestOutcome(
                manifest=manifest_path,
                status="failed",
                step=step,
                error=str(error),
                workspace_appended=appended,
            )
            LOGGER.warning("error patching %s", outcome.short_message())
            _emit_event("manifest_failed", manifest=manifest_path, step=step, error=str(error))
            return outcome
        LOGGER.debug("Patched %s", manifest_path)
        _emit_event("manifest_patched", manifest=manifest_path, workspace_appended=appended)
        return ManifestOutcome(manifest=manifest_path, status="patched", workspace_appended=appended)

    # ---------------------------------------------------------------- phases
    def patch_all(self, manifests: Sequence[Path]) -> List[ManifestOutcome]:
        """Patch ``manifests`` concurrently; outcomes keep the input order."""

        if not manifests:
            return []
        workers = self.config.resolve_workers(len(manifests))
        LOGGER.info("Patching %d vendored manifest(s) with %d worker(s)", len(manifests), workers)
        if workers == 1:
            return [self.patch_nested(manifest) for manifest in manifests]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="revendor") as pool:
            return list(pool.map(self.patch_nested, manifests))

    def patch_vendor_tree(self, root_manifest: Path | str) -> PipelineReport:
        """Patch every eligible manifest in an existing vendor tree."""

        root = resolve_manifest(root_manifest)
        vendor_dir = self.vendor_dir_for(root)
        discovery = self.discover(vendor_dir)
        for manifest in discovery.excluded:
            LOGGER.debug("Skipping excluded package %s", manifest.parent.name)
        outcomes = self.patch_all(discovery.selected)
        report = PipelineReport(
            root_manifest=root,
            vendor_dir=vendor_dir,
            outcomes=outcomes,
            excluded=discovery.excluded,
        )
        _emit_event(
            "run_finished",
            root=root,
            patched=len(report.patched),
            failed=len(report.failed),
            excluded=len(report.excluded),
        )
        return report

    def run(self, root_manifest: Path | str) -> PipelineReport:
        """Patch the root manifest, vendor it, then patch every vendored manifest.

        Errors while patching or vendoring the root propagate to the caller.
        """

        root = resolve_manifest(root_manifest)
        self.patch_manifest(root)
        _emit_event("root_patched", manifest=root, dependency=self.config.dependency.name)

        vendored = self.cargo.vendor(root, root.parent, self.config.vendor.directory)
        vendor_dir = self.vendor_dir_for(root)
        _emit_event("vendored", manifest=root, vendor_dir=vendor_dir)

        report = self.patch_vendor_tree(root)
        report.vendor_output = vendored.stdout
        return report


__all__ = [
    "ManifestOutcome",
    "PipelineReport",
    "RevendorPipeline",
    "resolve_manifest",
]
