"""Inject one dependency across a Cargo dependency tree and re-vendor it."""

from .config import DependencySpec, PatchConfig, load_config
from .errors import CargoError, ConfigError, LedgerError, ManifestNotFoundError, RevendorError
from .pipeline import ManifestOutcome, PipelineReport, RevendorPipeline

__all__ = [
    "CargoError",
    "ConfigError",
    "DependencySpec",
    "LedgerError",
    "ManifestNotFoundError",
    "ManifestOutcome",
    "PatchConfig",
    "PipelineReport",
    "RevendorError",
    "RevendorPipeline",
    "load_config",
]
