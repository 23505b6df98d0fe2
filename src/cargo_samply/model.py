from __future__ import annotations

from pathlib import Path
from typing import Literal

import attrs

TargetKind = Literal["bin", "example", "bench", "test"]
CheckStatus = Literal["pass", "fail"]

TARGET_KINDS: tuple[TargetKind, ...] = ("bin", "example", "bench", "test")


@attrs.define(frozen=True, slots=True, order=True)
class Target:
    kind: TargetKind
    name: str
    package_id: str
    package_name: str

    @property
    def cargo_flag(self) -> str:
        return f"--{self.kind}"

    def describe(self) -> str:
        return f"{self.kind} '{self.name}' (package {self.package_name})"


@attrs.define(frozen=True, slots=True)
class Selection:
    kind: TargetKind | None = None
    name: str | None = None
    package: str | None = None


@attrs.define(frozen=True, slots=True)
class Package:
    id: str
    name: str
    manifest_path: Path
    default_run: str | None
    targets: tuple[Target, ...] = ()

    @property
    def root(self) -> Path:
        return self.manifest_path.parent


@attrs.define(frozen=True, slots=True)
class Catalog:
    packages: tuple[Package, ...]
    workspace_root: Path
    target_directory: Path

    @property
    def targets(self) -> frozenset[Target]:
        return frozenset(t for p in self.packages for t in p.targets)

    @property
    def manifest_path(self) -> Path:
        return self.workspace_root / "Cargo.toml"

    def package_named(self, name: str) -> Package | None:
        for p in self.packages:
            if p.name == name:
                return p
        return None


@attrs.define(frozen=True, slots=True)
class ArtifactProduced:
    package_id: str
    target_kinds: tuple[str, ...]
    target_name: str
    executable: Path | None


@attrs.define(frozen=True, slots=True)
class CompilerMessage:
    rendered: str


@attrs.define(frozen=True, slots=True)
class BuildFinished:
    success: bool


BuildEvent = ArtifactProduced | CompilerMessage | BuildFinished


@attrs.define(frozen=True, slots=True)
class Artifact:
    executable_path: Path
    target: Target


@attrs.define(frozen=True, slots=True)
class EnvEntry:
    """One environment variable to prepend `paths` to.

    When `inherit` is set, the snapshot's prior value is kept after the new
    segments instead of being replaced.
    """

    name: str
    paths: tuple[str, ...]
    separator: str
    inherit: bool = True


EnvironmentOverlay = tuple[EnvEntry, ...]


@attrs.define(frozen=True, slots=True)
class BuildInvocation:
    argv: tuple[str, ...]
    cwd: Path
    target: Target
    profile: str


@attrs.define(frozen=True, slots=True)
class RunInvocation:
    argv: tuple[str, ...]
    env: EnvironmentOverlay = ()


@attrs.define(frozen=True, slots=True)
class Plan:
    build: BuildInvocation
    run: RunInvocation


@attrs.define(frozen=True, slots=True)
class PrerequisiteCheck:
    check_name: str
    status: CheckStatus
    details: str | None = None
