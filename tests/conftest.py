from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest


def _make_package(
    name: str,
    targets: Sequence[tuple[str, str]],
    *,
    root: Path,
    default_run: str | None = None,
) -> dict[str, Any]:
    return {
        "id": f"path+file://{root.as_posix()}#{name}@0.1.0",
        "name": name,
        "version": "0.1.0",
        "manifest_path": str(root / "Cargo.toml"),
        "default_run": default_run,
        "targets": [
            {"name": tname, "kind": [kind], "crate_types": ["bin"], "src_path": str(root / "src" / f"{tname}.rs")}
            for kind, tname in targets
        ],
    }


def _make_metadata(packages: Sequence[dict[str, Any]], *, workspace_root: Path, target_directory: Path | None = None) -> dict[str, Any]:
    return {
        "packages": list(packages),
        "workspace_members": [p["id"] for p in packages],
        "workspace_root": str(workspace_root),
        "target_directory": str(target_directory or workspace_root / "target"),
        "version": 1,
    }


@pytest.fixture
def make_package() -> Callable[..., dict[str, Any]]:
    return _make_package


@pytest.fixture
def make_metadata() -> Callable[..., dict[str, Any]]:
    return _make_metadata


@pytest.fixture
def write_script(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write an executable Python stand-in for an external tool."""
    if sys.platform == "win32":
        pytest.skip("stand-in executables use a shebang line")

    def _write(name: str, body: str) -> Path:
        path = tmp_path / "bin" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"#!{sys.executable}\n{body}")
        path.chmod(0o755)
        return path

    return _write
