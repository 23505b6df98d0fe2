"""
Build planning and artifact resolution.

`plan_build` is pure. `execute` runs cargo with JSON messages on stdout and
folds the message stream, line by line as it arrives, through
`ArtifactCollector`, which keeps only the `compiler-artifact` messages whose
target matches the selected `(kind, name, package_id)`. The executable path is
taken from those messages verbatim; it is never predicted from the target
directory layout.
"""

from __future__ import annotations

import json
import shlex
import subprocess
import sys
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import IO, Any

from .errors import AmbiguousArtifact, ArtifactNotFound, BuildFailed
from .log import log
from .model import Artifact, ArtifactProduced, BuildEvent, BuildFinished, BuildInvocation, CompilerMessage, Target

MESSAGE_FORMAT = "json-diagnostic-rendered-ansi"

# Files cargo may list next to an executable that are never the program itself.
COMPANION_SUFFIXES: frozenset[str] = frozenset({".pdb", ".dsym", ".dwp", ".debug", ".d"})


def plan_build(
    target: Target,
    *,
    profile: str,
    features: Sequence[str] = (),
    no_default_features: bool = False,
    quiet: bool = False,
    extra_flags: Sequence[str] = (),
    manifest_path: Path | None = None,
    cargo: str = "cargo",
    cwd: Path | None = None,
) -> BuildInvocation:
    argv: list[str] = [
        cargo,
        "build",
        f"--message-format={MESSAGE_FORMAT}",
        "--profile",
        profile,
        "--package",
        target.package_name,
        target.cargo_flag,
        target.name,
    ]
    feats = [f.strip() for spec in features for f in spec.split(",") if f.strip()]
    if feats:
        argv += ["--features", ",".join(feats)]
    if no_default_features:
        argv.append("--no-default-features")
    if quiet:
        argv.append("--quiet")
    if manifest_path is not None:
        argv += ["--manifest-path", str(manifest_path)]
    argv += list(extra_flags)
    return BuildInvocation(argv=tuple(argv), cwd=cwd or Path.cwd(), target=target, profile=profile)


def parse_event(line: str) -> BuildEvent | None:
    """Decode one stdout line; unknown or non-JSON lines yield None."""
    line = line.strip()
    if not line.startswith("{"):
        return None
    try:
        msg: Any = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(msg, dict):
        return None

    reason = msg.get("reason")
    if reason == "compiler-artifact":
        tgt = msg.get("target") or {}
        exe = msg.get("executable")
        return ArtifactProduced(
            package_id=str(msg.get("package_id", "")),
            target_kinds=tuple(tgt.get("kind") or ()),
            target_name=str(tgt.get("name", "")),
            executable=Path(exe) if exe else None,
        )
    if reason == "compiler-message":
        rendered = (msg.get("message") or {}).get("rendered")
        return CompilerMessage(rendered=rendered) if rendered else None
    if reason == "build-finished":
        return BuildFinished(success=bool(msg.get("success")))
    return None


def iter_events(lines: Iterable[str]) -> Iterator[BuildEvent]:
    for line in lines:
        event = parse_event(line)
        if event is not None:
            yield event


def _is_companion(path: Path) -> bool:
    return path.suffix.lower() in COMPANION_SUFFIXES


def select_executable(paths: Sequence[Path], target: Target) -> Path:
    """Pick the program among the reported paths for one target."""
    unique = list(dict.fromkeys(paths))
    if not unique:
        raise ArtifactNotFound(target)
    if len(unique) == 1:
        return unique[0]
    primary = [p for p in unique if not _is_companion(p)]
    if len(primary) == 1:
        return primary[0]
    raise AmbiguousArtifact(target, unique)


class ArtifactCollector:
    """Fold over build events, keyed by the selected target's identity."""

    def __init__(self, target: Target, *, echo: IO[str] | None = None) -> None:
        self.target = target
        self.echo = echo
        self.matches: list[Path] = []
        self.diagnostics: list[str] = []
        self.finished: bool | None = None

    def matches_target(self, event: ArtifactProduced) -> bool:
        return (
            event.package_id == self.target.package_id
            and event.target_name == self.target.name
            and self.target.kind in event.target_kinds
        )

    def feed(self, event: BuildEvent) -> None:
        if isinstance(event, CompilerMessage):
            self.diagnostics.append(event.rendered)
            if self.echo is not None:
                self.echo.write(event.rendered)
                self.echo.flush()
        elif isinstance(event, BuildFinished):
            self.finished = event.success
            if not event.success:
                raise BuildFailed(self.diagnostics)
        elif isinstance(event, ArtifactProduced):
            if event.executable is not None and self.matches_target(event):
                log.debug("artifact for %s: %s", self.target.describe(), event.executable)
                self.matches.append(event.executable)

    def artifact(self) -> Artifact:
        return Artifact(executable_path=select_executable(self.matches, self.target), target=self.target)


def select_artifact(events: Iterable[BuildEvent], target: Target) -> Artifact:
    collector = ArtifactCollector(target)
    for event in events:
        collector.feed(event)
    return collector.artifact()


def execute(invocation: BuildInvocation, *, echo: IO[str] | None = None) -> Artifact:
    """Run the build and return the artifact cargo reported for the selected target."""
    echo = sys.stderr if echo is None else echo
    log.debug("running %s (cwd=%s)", shlex.join(invocation.argv), invocation.cwd)
    collector = ArtifactCollector(invocation.target, echo=echo)
    try:
        proc = subprocess.Popen(
            list(invocation.argv),
            cwd=invocation.cwd,
            stdout=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        raise BuildFailed(reason=f"could not run {invocation.argv[0]!r}: {e}") from e
    with proc:
        assert proc.stdout is not None
        try:
            for event in iter_events(proc.stdout):
                collector.feed(event)
        finally:
            proc.stdout.close()
            returncode = proc.wait()

    if returncode != 0:
        raise BuildFailed(collector.diagnostics, returncode=returncode)
    return collector.artifact()
