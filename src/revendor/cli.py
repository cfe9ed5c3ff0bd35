"""CLI commands for injecting a dependency across a vendored cargo tree."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
import yaml

from .config import DEFAULT_CONFIG_NAME, PatchConfig, load_config
from .errors import ConfigError, RevendorError
from .pipeline import PipelineReport, RevendorPipeline, resolve_manifest

APP_HELP = "Inject one dependency into a cargo manifest and every crate it vendors."
DEFAULT_MANIFEST_NAME = "Cargo.toml"

app = typer.Typer(help=APP_HELP)

_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help=f"Path to the revendor configuration file (defaults to ./{DEFAULT_CONFIG_NAME} when present).",
)
_MANIFEST_OPTION = typer.Option(
    None,
    "--manifest-path",
    "-m",
    help="Root Cargo.toml to patch (defaults to ./Cargo.toml).",
)
_VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")


def _configure_logging(verbose: bool) -> None:
    """Send log records to standard error."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    if not verbose:
        logging.getLogger("revendor.telemetry").setLevel(logging.WARNING)


def _load(config: Optional[str], jobs: Optional[int] = None) -> PatchConfig:
    """Load configuration and apply command line overrides."""
    try:
        settings = load_config(config, required=config is not None)
    except ConfigError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error
    if jobs is not None:
        settings = settings.model_copy(update={"workers": jobs})
    return settings


def _root_manifest(manifest_path: Optional[str]) -> Path:
    return Path(manifest_path) if manifest_path else Path.cwd() / DEFAULT_MANIFEST_NAME


def _render_report(report: PipelineReport) -> None:
    if report.vendor_output.strip():
        typer.echo(report.vendor_output.rstrip())
    typer.echo(report.format_summary(), err=True)


@app.command()
def run(
    manifest_path: Optional[str] = _MANIFEST_OPTION,
    config: Optional[str] = _CONFIG_OPTION,
    jobs: Optional[int] = typer.Option(
        None,
        "--jobs",
        "-j",
        min=1,
        help="Number of vendored manifests patched concurrently.",
    ),
    strict: bool = typer.Option(
        False,
        "--strict/--no-strict",
        help="Exit non-zero when any vendored manifest could not be patched.",
    ),
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Patch the root manifest, vendor it and patch every vendored crate."""
    _configure_logging(verbose)
    pipeline = RevendorPipeline(_load(config, jobs))
    try:
        report = pipeline.run(_root_manifest(manifest_path))
    except (RevendorError, OSError) as error:
        typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=1) from error

    _render_report(report)
    if strict and not report.ok:
        raise typer.Exit(code=1)


@app.command("patch-vendor")
def patch_vendor(
    manifest_path: Optional[str] = _MANIFEST_OPTION,
    config: Optional[str] = _CONFIG_OPTION,
    jobs: Optional[int] = typer.Option(None, "--jobs", "-j", min=1, help="Worker pool size."),
    strict: bool = typer.Option(False, "--strict/--no-strict", help="Exit non-zero on any failure."),
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Patch the crates of an already vendored tree without re-vendoring."""
    _configure_logging(verbose)
    pipeline = RevendorPipeline(_load(config, jobs))
    try:
        report = pipeline.patch_vendor_tree(_root_manifest(manifest_path))
    except (RevendorError, OSError) as error:
        typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=1) from error

    _render_report(report)
    if strict and not report.ok:
        raise typer.Exit(code=1)


@app.command()
def discover(
    manifest_path: Optional[str] = _MANIFEST_OPTION,
    config: Optional[str] = _CONFIG_OPTION,
) -> None:
    """List the vendored manifests a run would patch or skip."""
    pipeline = RevendorPipeline(_load(config))
    try:
        root = resolve_manifest(_root_manifest(manifest_path))
    except RevendorError as error:
        typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=1) from error

    vendor_dir = pipeline.vendor_dir_for(root)
    if not vendor_dir.is_dir():
        typer.echo(f"No vendor directory at {vendor_dir}.")
        return
    result = pipeline.discover(vendor_dir)
    for manifest in result.selected:
        typer.echo(f"patch  {manifest.relative_to(vendor_dir).as_posix()}")
    for manifest in result.excluded:
        typer.echo(f"skip   {manifest.relative_to(vendor_dir).as_posix()}")
    typer.echo(f"{len(result.selected)} to patch, {len(result.excluded)} excluded.")


@app.command("show-config")
def show_config(config: Optional[str] = _CONFIG_OPTION) -> None:
    """Print the effective configuration as YAML."""
    settings = _load(config)
    typer.echo(yaml.safe_dump(settings.to_dict(), sort_keys=False).rstrip())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
