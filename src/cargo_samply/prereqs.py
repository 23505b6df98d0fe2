from __future__ import annotations

import shutil

from .config import ENV_SAMPLY_PATH
from .model import PrerequisiteCheck


def check_profiler_available(samply: str, *, search_path: str | None = None) -> PrerequisiteCheck:
    path = shutil.which(samply, path=search_path)
    if path is not None:
        return PrerequisiteCheck(check_name="samply_available", status="pass", details=path)
    return PrerequisiteCheck(
        check_name="samply_available",
        status="fail",
        details=f"Run: cargo install --locked samply  (or point {ENV_SAMPLY_PATH} at the binary)",
    )


def check_cargo_available(cargo: str, *, search_path: str | None = None) -> PrerequisiteCheck:
    path = shutil.which(cargo, path=search_path)
    if path is not None:
        return PrerequisiteCheck(check_name="cargo_available", status="pass", details=path)
    return PrerequisiteCheck(
        check_name="cargo_available",
        status="fail",
        details="Install a Rust toolchain (https://rustup.rs) and ensure `cargo` is on PATH.",
    )


def check_all(
    *, cargo: str, samply: str, need_profiler: bool = True, search_path: str | None = None
) -> list[PrerequisiteCheck]:
    """Look tools up on `search_path` (the live PATH when None)."""
    checks = [check_cargo_available(cargo, search_path=search_path)]
    if need_profiler:
        checks.append(check_profiler_available(samply, search_path=search_path))
    return checks


def format_prereq_failures(checks: list[PrerequisiteCheck]) -> str:
    lines: list[str] = ["Missing prerequisites:"]
    for c in checks:
        if c.status != "fail":
            continue
        hint = f" - {c.details}" if c.details else ""
        lines.append(f"- {c.check_name}{hint}")
    return "\n".join(lines)
