"""Typed configuration for the revendor pipeline."""

from __future__ import annotations

import copy
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError

DEFAULT_CONFIG_NAME = "revendor.yaml"

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "dependency": {
        "name": "atomic-core",
        "rename": "core",
        "features": ["critical-section"],
    },
    # Packages the injected dependency itself pulls in; patching them would
    # make the dependency depend on itself.
    "exclude": ["atomic-core", "critical-section", "portable-atomic"],
    "cargo": {
        "executable": "cargo",
        "timeout": None,
        "env": {},
    },
    "vendor": {
        "directory": "vendor",
        "manifest_name": "Cargo.toml",
        "ledger_name": ".cargo-checksum.json",
        "max_depth": 2,
    },
    "workers": None,
}


class SettingsModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class Source(str, Enum):
    """Where cargo resolves the injected dependency from."""

    REGISTRY = "registry"
    GIT = "git"


def _check_token(value: str, field: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field} must not be empty")
    if any(char.isspace() for char in stripped):
        raise ValueError(f"{field} must not contain whitespace: {value!r}")
    return stripped


class DependencySpec(SettingsModel):
    """The dependency injected into every patched manifest."""

    name: str
    rename: Optional[str] = None
    version: Optional[str] = None
    git: Optional[str] = None
    features: Tuple[str, ...] = ()

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return _check_token(value, "name")

    @field_validator("rename", "version", "git")
    @classmethod
    def _validate_optional(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _check_token(value, "value")

    @field_validator("features", mode="before")
    @classmethod
    def _dedupe_features(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(",")
        seen: List[str] = []
        for item in value:
            token = _check_token(str(item), "feature")
            if token not in seen:
                seen.append(token)
        return tuple(seen)

    @model_validator(mode="after")
    def _check_source(self) -> "DependencySpec":
        if self.git is not None and self.version is not None:
            raise ValueError("version requirements only apply to registry dependencies")
        return self

    @property
    def source(self) -> Source:
        return Source.GIT if self.git else Source.REGISTRY

    @property
    def local_name(self) -> str:
        """Name the dependency is referred to by inside a patched manifest."""

        return self.rename or self.name


class CargoSettings(SettingsModel):
    """How the cargo executable is invoked."""

    executable: str = "cargo"
    timeout: Optional[float] = Field(default=None, gt=0)
    env: Dict[str, str] = Field(default_factory=dict)


class VendorSettings(SettingsModel):
    """Layout of the vendor tree produced by ``cargo vendor``."""

    directory: str = "vendor"
    manifest_name: str = "Cargo.toml"
    ledger_name: str = ".cargo-checksum.json"
    max_depth: int = Field(default=2, ge=1)


class PatchConfig(SettingsModel):
    """Complete configuration handed to :class:`~revendor.pipeline.RevendorPipeline`."""

    dependency: DependencySpec
    exclude: FrozenSet[str] = frozenset()
    cargo: CargoSettings = Field(default_factory=CargoSettings)
    vendor: VendorSettings = Field(default_factory=VendorSettings)
    workers: Optional[int] = Field(default=None, ge=1)

    def resolve_workers(self, pending: int) -> int:
        """Return the pool size used for ``pending`` nested manifests."""

        limit = self.workers or min(32, (os.cpu_count() or 1) + 4)
        return max(1, min(limit, pending))

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        data["exclude"] = sorted(self.exclude)
        data["dependency"]["features"] = list(self.dependency.features)
        return data


def default_config_data() -> Dict[str, Any]:
    """Return a deep copy of the default configuration template."""
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay ``override`` on top of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict) and key != "dependency":
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


def build_config(data: Dict[str, Any] | None = None) -> PatchConfig:
    """Validate ``data`` layered over the defaults into a :class:`PatchConfig`."""
    payload = _merge(default_config_data(), data or {})
    try:
        return PatchConfig.model_validate(payload)
    except ValidationError as error:
        raise ConfigError(f"Invalid configuration: {error}") from error


def load_config(config_path: Path | str | None = None, *, required: bool = False) -> PatchConfig:
    """Load YAML configuration from disk and return the validated settings.

    When ``config_path`` does not exist and ``required`` is false the built-in
    defaults are returned, so a project without a config file still runs.
    """
    path = Path(config_path or DEFAULT_CONFIG_NAME)
    if not path.exists():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        return build_config()

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config {path}: {error}") from error
    except OSError as error:
        raise ConfigError(f"Failed to read config {path}: {error}") from error

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping at the top level.")

    return build_config(data)


__all__ = [
    "CargoSettings",
    "DEFAULT_CONFIG_NAME",
    "DependencySpec",
    "PatchConfig",
    "Source",
    "VendorSettings",
    "build_config",
    "default_config_data",
    "load_config",
]
