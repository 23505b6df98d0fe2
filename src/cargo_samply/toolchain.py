from __future__ import annotations

import shlex
import subprocess
import sys
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

import attrs

from .errors import SysrootDetectionFailed
from .log import log
from .model import EnvEntry, EnvironmentOverlay

# cargo's built-in profiles write into these directories; custom profiles use their own name.
_PROFILE_DIRS: dict[str, str] = {"dev": "debug", "test": "debug", "release": "release", "bench": "release"}


@attrs.define(frozen=True, slots=True)
class Platform:
    env_var: str
    separator: str
    extra_sysroot_dirs: tuple[str, ...] = ()

    @staticmethod
    def for_system(system: str) -> "Platform":
        """Map a `sys.platform` value to its dynamic library search variable."""
        if system == "darwin":
            return Platform(env_var="DYLD_LIBRARY_PATH", separator=":")
        if system in {"win32", "cygwin"}:
            # DLLs are found through PATH; rustup also ships runtime DLLs in <sysroot>/bin.
            return Platform(env_var="PATH", separator=";", extra_sysroot_dirs=("bin",))
        return Platform(env_var="LD_LIBRARY_PATH", separator=":")

    @staticmethod
    def current() -> "Platform":
        return Platform.for_system(sys.platform)


def overlay_for(platform: Platform) -> str:
    return platform.env_var


@attrs.define(frozen=True, slots=True)
class Toolchain:
    sysroot: Path
    host: str


def _rustc_output(cmd: list[str]) -> str:
    log.debug("running %s", shlex.join(cmd))
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise SysrootDetectionFailed(f"could not run {cmd[0]!r}: {e}") from e
    if proc.returncode != 0:
        raise SysrootDetectionFailed(f"`{shlex.join(cmd)}` exited with {proc.returncode}: {proc.stderr.strip()}")
    return proc.stdout


def parse_host_triple(version_output: str) -> str:
    """Extract the `host:` line from `rustc -vV` output."""
    for line in version_output.splitlines():
        if line.startswith("host:"):
            host = line[len("host:") :].strip()
            if host:
                return host
    raise SysrootDetectionFailed("could not find a 'host:' line in `rustc -vV` output")


def sysroot(rustc: str = "rustc") -> Path:
    out = _rustc_output([rustc, "--print", "sysroot"]).strip()
    if not out:
        raise SysrootDetectionFailed("`rustc --print sysroot` printed nothing")
    return Path(out)


def host_triple(rustc: str = "rustc") -> str:
    return parse_host_triple(_rustc_output([rustc, "-vV"]))


def detect_toolchain(rustc: str = "rustc") -> Toolchain:
    """Query rustc once for its sysroot and host triple."""
    tc = Toolchain(sysroot=sysroot(rustc), host=host_triple(rustc))
    log.debug("rust sysroot: %s (host %s)", tc.sysroot, tc.host)
    return tc


def profile_dir_name(profile: str) -> str:
    return _PROFILE_DIRS.get(profile, profile)


def infer_target_triple(executable: Path, *, profile: str, target_directory: Path, host: str) -> str:
    """Return the triple the artifact was built for.

    Cross builds land in `<target-dir>/<triple>/<profile-dir>/...`; host builds
    in `<target-dir>/<profile-dir>/...`.
    """
    try:
        rel = executable.relative_to(target_directory)
    except ValueError:
        return host
    parts = rel.parts
    if len(parts) >= 3 and parts[1] == profile_dir_name(profile):
        return parts[0]
    return host


def library_search_paths(
    sysroot: Path, target_triple: str, *, executable: Path | None = None, platform: Platform | None = None
) -> tuple[Path, ...]:
    """Directories holding the shared libraries a Rust artifact may link against.

    Order: the artifact's `deps` directory, the triple's rustlib directory, the
    sysroot `lib` directory, then any platform-specific sysroot directories.
    """
    platform = platform or Platform.current()
    out: list[Path] = []
    if executable is not None:
        parent = executable.parent
        out.append(parent if parent.name == "deps" else parent / "deps")
    out.append(sysroot / "lib" / "rustlib" / target_triple / "lib")
    out.append(sysroot / "lib")
    out.extend(sysroot / d for d in platform.extra_sysroot_dirs)
    return tuple(out)


def library_overlay(paths: Sequence[Path], *, platform: Platform | None = None) -> EnvironmentOverlay:
    platform = platform or Platform.current()
    return (EnvEntry(name=overlay_for(platform), paths=tuple(str(p) for p in paths), separator=platform.separator),)


def _merged_value(entry: EnvEntry, prior: str | None) -> str:
    parts: list[str] = []
    seen: set[str] = set()
    segments: Iterable[str] = entry.paths
    if entry.inherit and prior:
        segments = [*entry.paths, *prior.split(entry.separator)]
    for seg in segments:
        seg = seg.strip()
        if seg and seg not in seen:
            seen.add(seg)
            parts.append(seg)
    return entry.separator.join(parts)


def resolve_overlay(overlay: EnvironmentOverlay, environ: Mapping[str, str]) -> dict[str, str]:
    """Compute final variable values from the overlay and an environment snapshot.

    Prior values are kept after the new segments; duplicate segments are dropped.
    """
    out: dict[str, str] = {}
    for entry in overlay:
        prior = out.get(entry.name, environ.get(entry.name))
        out[entry.name] = _merged_value(entry, prior)
    return out
