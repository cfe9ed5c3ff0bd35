from __future__ import annotations

import json
import os
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
import yaml

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from revendor.config import PatchConfig, build_config  # noqa: E402

FAIL_ADD_MARKER = "# fake-cargo: fail-add"

FAKE_CARGO_SOURCE = textwrap.dedent(
    """
    import json
    import os
    import shutil
    import sys
    from pathlib import Path


    def option(args, name):
        if name in args:
            return args[args.index(name) + 1]
        return None


    def log(args):
        target = os.environ.get("FAKE_CARGO_LOG")
        if target:
            with open(target, "a", encoding="utf-8") as handle:
                handle.write(json.dumps({"args": args, "cwd": os.getcwd()}) + "\\n")


    def add(args):
        manifest = Path(option(args, "--manifest-path"))
        text = manifest.read_text(encoding="utf-8")
        if "FAIL_ADD_MARKER" in text:
            sys.stderr.write("error: failed to add dependency\\n")
            return 101
        name = args[1].split("@")[0]
        key = option(args, "--rename") or name
        entry = key + ' = { package = "' + name + '", version = "1"'
        features = option(args, "--features")
        if features:
            quoted = ", ".join('"' + feature + '"' for feature in features.split(","))
            entry += ", features = [" + quoted + "]"
        entry += " }"
        lines = [line for line in text.splitlines() if not line.startswith(key + " = ")]
        if "[dependencies]" in lines:
            lines.insert(lines.index("[dependencies]") + 1, entry)
        else:
            lines.extend(["", "[dependencies]", entry])
        manifest.write_text("\\n".join(lines) + "\\n", encoding="utf-8")
        return 0


    def vendor(args):
        if os.environ.get("FAKE_CARGO_FAIL_VENDOR"):
            sys.stderr.write("error: failed to sync\\n")
            return 101
        registry = Path(os.environ["FAKE_CARGO_REGISTRY"])
        positional = args[3] if len(args) > 3 else "vendor"
        target = Path.cwd() / positional
        target.mkdir(exist_ok=True)
        for package in sorted(registry.iterdir()):
            shutil.copytree(package, target / package.name, dirs_exist_ok=True)
        print("[source.crates-io]")
        print('replace-with = "vendored-sources"')
        print("")
        print("[source.vendored-sources]")
        print('directory = "' + positional + '"')
        return 0


    def main():
        args = sys.argv[1:]
        log(args)
        if args and args[0] == "add":
            return add(args)
        if args and args[0] == "vendor":
            return vendor(args)
        sys.stderr.write("error: unsupported command\\n")
        return 1


    sys.exit(main())
    """
).replace("FAIL_ADD_MARKER", FAIL_ADD_MARKER)


def package_manifest_text(name: str, *, extra: str = "") -> str:
    text = textwrap.dedent(
        f"""
        [package]
        name = "{name}"
        version = "0.1.0"
        edition = "2021"

        [dependencies]
        """
    ).lstrip()
    return text + extra


def ledger_payload(name: str) -> dict[str, Any]:
    return {
        "files": {
            "Cargo.toml": f"{name}-manifest-digest",
            "src/lib.rs": f"{name}-lib-digest",
        },
        "package": f"{name}-package-digest",
    }


@dataclass(slots=True)
class CrateTree:
    """Fixture payload: a root crate, a fake registry and a fake cargo."""

    project: Path
    registry: Path
    cargo: Path
    cargo_log: Path

    @property
    def manifest(self) -> Path:
        return self.project / "Cargo.toml"

    @property
    def vendor_dir(self) -> Path:
        return self.project / "vendor"

    def add_package(self, name: str, *, extra: str = "", ledger: Any = None) -> Path:
        package_dir = self.registry / name
        (package_dir / "src").mkdir(parents=True)
        (package_dir / "src" / "lib.rs").write_text("pub fn it_works() {}\n", encoding="utf-8")
        manifest = package_dir / "Cargo.toml"
        manifest.write_text(package_manifest_text(name, extra=extra), encoding="utf-8")
        payload = ledger_payload(name) if ledger is None else ledger
        ledger_text = payload if isinstance(payload, str) else json.dumps(payload)
        (package_dir / ".cargo-checksum.json").write_text(ledger_text, encoding="utf-8")
        return manifest

    def config_data(self, **env: str) -> dict[str, Any]:
        cargo_env = {
            "FAKE_CARGO_REGISTRY": str(self.registry),
            "FAKE_CARGO_LOG": str(self.cargo_log),
        }
        cargo_env.update(env)
        return {"cargo": {"executable": str(self.cargo), "env": cargo_env}, "workers": 4}

    def config(self, **env: str) -> PatchConfig:
        return build_config(self.config_data(**env))

    def write_config(self, **env: str) -> Path:
        path = self.project / "revendor.yaml"
        with path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(self.config_data(**env), handle)
        return path

    def invocations(self) -> list[dict[str, Any]]:
        if not self.cargo_log.exists():
            return []
        return [json.loads(line) for line in self.cargo_log.read_text(encoding="utf-8").splitlines()]


@pytest.fixture()
def fake_cargo(tmp_path: Path) -> Path:
    """Write an executable stand-in for ``cargo`` that handles ``add`` and ``vendor``."""

    if os.name == "nt":
        pytest.skip("fake cargo relies on a POSIX shebang")
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "cargo"
    script.write_text(f"#!{sys.executable}\n" + FAKE_CARGO_SOURCE, encoding="utf-8")
    script.chmod(0o755)
    return script


@pytest.fixture()
def crate_tree(tmp_path: Path, fake_cargo: Path) -> CrateTree:
    """Create a root crate depending on ``alpha``, ``beta`` and ``atomic-core``."""

    project = tmp_path / "project"
    (project / "src").mkdir(parents=True)
    (project / "src" / "main.rs").write_text("fn main() {}\n", encoding="utf-8")
    (project / "Cargo.toml").write_text(
        package_manifest_text(
            "app",
            extra='alpha = "0.1"\nbeta = "0.1"\natomic-core = "0.1"\n',
        ),
        encoding="utf-8",
    )

    tree = CrateTree(
        project=project,
        registry=tmp_path / "registry",
        cargo=fake_cargo,
        cargo_log=tmp_path / "cargo.log",
    )
    tree.registry.mkdir()
    for name in ("alpha", "beta", "atomic-core"):
        tree.add_package(name)
    return tree
