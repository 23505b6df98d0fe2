"""
Exceptions raised by the profiling pipeline.

Every class carries the process exit code `main()` returns for it, grouped by
pipeline stage: discovery (2), build (3), artifact resolution (4) and
profiler launch (5).
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .model import Target

EXIT_FAILURE = 1
EXIT_DISCOVERY = 2
EXIT_BUILD = 3
EXIT_ARTIFACT = 4
EXIT_PROFILER = 5


class CargoSamplyError(Exception):
    """Base exception for all pipeline failures."""

    exit_code = EXIT_FAILURE


class MetadataQueryFailed(CargoSamplyError):
    """`cargo metadata` failed or returned a document we cannot use."""

    exit_code = EXIT_DISCOVERY

    def __init__(self, reason: str, *, stderr: str = "") -> None:
        self.reason = reason
        self.stderr = stderr
        msg = f"Failed to query cargo metadata: {reason}"
        if stderr.strip():
            msg += f"\n{stderr.rstrip()}"
        super().__init__(msg)


class PathIOError(CargoSamplyError):
    """Reading or writing a file failed; keeps the path for the message."""

    exit_code = EXIT_DISCOVERY

    def __init__(self, path: Path, cause: Exception) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"{path}: {cause}")


class NoTargetsFound(CargoSamplyError):
    exit_code = EXIT_DISCOVERY

    def __init__(self, what: str = "binary") -> None:
        self.what = what
        super().__init__(f"No {what} target found in the workspace")


class PackageNotFound(CargoSamplyError):
    exit_code = EXIT_DISCOVERY

    def __init__(self, name: str, available: Sequence[str] = ()) -> None:
        self.name = name
        self.available = tuple(available)
        msg = f"Package '{name}' not found in workspace"
        if self.available:
            msg += f" (available: {', '.join(self.available)})"
        super().__init__(msg)


class TargetNotFound(CargoSamplyError):
    exit_code = EXIT_DISCOVERY

    def __init__(self, name: str, kind: str, available: Sequence[str] = ()) -> None:
        self.name = name
        self.kind = kind
        self.available = tuple(available)
        msg = f"No {kind} target named '{name}'"
        if self.available:
            msg += f". Available {kind} targets: {', '.join(self.available)}"
        super().__init__(msg)


class AmbiguousTarget(CargoSamplyError):
    """More than one target is eligible and nothing narrows it to one."""

    exit_code = EXIT_DISCOVERY

    def __init__(self, candidates: Sequence[Target], *, suggestions: str = "") -> None:
        self.candidates = tuple(sorted(candidates))
        self.suggestions = suggestions
        names = ", ".join(self.candidate_names)
        msg = (
            "The target to run can't be determined. Use `--bin`/`--example` (and `--package`) "
            f"to pick one, or set `default-run` in the manifest. Candidates: {names}"
        )
        if suggestions:
            msg += suggestions
        super().__init__(msg)

    @property
    def candidate_names(self) -> tuple[str, ...]:
        # A name shared by several packages is listed once, qualified by each package.
        counts: dict[str, int] = {}
        for t in self.candidates:
            counts[t.name] = counts.get(t.name, 0) + 1
        out: list[str] = []
        for t in self.candidates:
            label = t.name if counts[t.name] == 1 else f"{t.name} ({t.package_name})"
            if label not in out:
                out.append(label)
        return tuple(out)


class BuildFailed(CargoSamplyError):
    """cargo reported failure; `diagnostics` is cargo's rendered output, untouched."""

    exit_code = EXIT_BUILD

    def __init__(self, diagnostics: Sequence[str] = (), *, returncode: int | None = None, reason: str = "") -> None:
        self.diagnostics = tuple(diagnostics)
        self.returncode = returncode
        msg = "Build failed"
        if returncode is not None:
            msg += f" (cargo exit {returncode})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ArtifactNotFound(CargoSamplyError):
    exit_code = EXIT_ARTIFACT

    def __init__(self, target: Target) -> None:
        self.target = target
        super().__init__(f"cargo reported no executable for {target.describe()}")


class AmbiguousArtifact(CargoSamplyError):
    exit_code = EXIT_ARTIFACT

    def __init__(self, target: Target, paths: Sequence[Path]) -> None:
        self.target = target
        self.paths = tuple(paths)
        listing = "\n".join(f"  {p}" for p in self.paths)
        super().__init__(f"cargo reported several executables for {target.describe()}:\n{listing}")


class SysrootDetectionFailed(CargoSamplyError):
    exit_code = EXIT_ARTIFACT

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(
            f"Failed to query the Rust toolchain: {reason}\n"
            "Hint: check `rustc --print sysroot` works (e.g. `rustup show`), "
            "or set CARGO_SAMPLY_NO_SYSROOT_INJECTION=1 to manage library paths yourself."
        )


class ProfilerNotInstalled(CargoSamplyError):
    exit_code = EXIT_PROFILER

    def __init__(self, profiler: str, details: str = "") -> None:
        self.profiler = profiler
        msg = f"samply is not installed or not in PATH (looked for: {profiler})"
        if details:
            msg += f"\n{details}"
        super().__init__(msg)


class LaunchFailed(CargoSamplyError):
    exit_code = EXIT_PROFILER

    def __init__(self, program: str, cause: Exception) -> None:
        self.program = program
        self.cause = cause
        super().__init__(f"Failed to launch {program}: {cause}")


class InvalidToolArgs(CargoSamplyError):
    exit_code = EXIT_FAILURE

    def __init__(self, args: Sequence[str], reason: str, *, what: str = "samply arguments") -> None:
        self.tool_args = tuple(args)
        super().__init__(f"Invalid {what} {list(self.tool_args)!r}: {reason}")
