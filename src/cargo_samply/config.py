from __future__ import annotations

from collections.abc import Mapping

import attrs

DEFAULT_PROFILE = "samply"
PROFILER_VERB = "record"

# Criterion and libtest bench harnesses only run benchmarks when given `--bench`.
DEFAULT_BENCH_FLAG = "--bench"
BENCH_FLAG_NONE = "none"

BENCH_SUFFIXES: tuple[str, ...] = ("_bench", "-bench")

PROFILE_BLOCK = """
[profile.samply]
inherits = "release"
debug = true
"""

ENV_SAMPLY_PATH = "CARGO_SAMPLY_SAMPLY_PATH"
ENV_NO_PROFILE_INJECT = "CARGO_SAMPLY_NO_PROFILE_INJECT"
ENV_NO_SYSROOT_INJECTION = "CARGO_SAMPLY_NO_SYSROOT_INJECTION"


def _flag(environ: Mapping[str, str], name: str) -> bool:
    # Presence enables the opt-out, except for an explicit falsy value.
    value = environ.get(name)
    if value is None:
        return False
    return value.strip().lower() not in {"0", "false", "no", "off"}


@attrs.define(frozen=True, slots=True)
class Settings:
    """Environment-derived configuration, captured once at startup."""

    samply: str = "samply"
    cargo: str = "cargo"
    rustc: str = "rustc"
    no_profile_inject: bool = False
    no_sysroot_injection: bool = False

    @staticmethod
    def from_env(environ: Mapping[str, str]) -> "Settings":
        return Settings(
            samply=environ.get(ENV_SAMPLY_PATH) or "samply",
            cargo=environ.get("CARGO") or "cargo",
            rustc=environ.get("RUSTC") or "rustc",
            no_profile_inject=_flag(environ, ENV_NO_PROFILE_INJECT),
            no_sysroot_injection=_flag(environ, ENV_NO_SYSROOT_INJECTION),
        )
