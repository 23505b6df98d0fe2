"""
Target discovery and selection.

The catalog is built from one `cargo metadata --no-deps` query. Target
existence, kinds, owning packages and `default-run` all come from that
document; nothing is inferred from file names or directory layout.
"""

from __future__ import annotations

import json
import shlex
import subprocess
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator, ValidationError

from .config import BENCH_SUFFIXES
from .errors import AmbiguousTarget, MetadataQueryFailed, NoTargetsFound, PackageNotFound, TargetNotFound
from .log import log
from .model import TARGET_KINDS, Catalog, Package, Selection, Target, TargetKind

KIND_TITLES: dict[str, str] = {
    "bin": "Binaries",
    "example": "Examples",
    "bench": "Benchmarks",
    "test": "Tests",
}

_KIND_NOUNS: dict[str, str] = {"bin": "binary", "example": "example", "bench": "benchmark", "test": "test"}


def _schema_path() -> Path:
    return Path(__file__).resolve().parent / "schemas" / "cargo_metadata.schema.json"


def validate_metadata(doc: Any) -> None:
    """Raise `MetadataQueryFailed` unless `doc` has the fields the catalog reads."""
    schema = json.loads(_schema_path().read_text())
    try:
        Draft202012Validator(schema).validate(doc)
    except ValidationError as e:
        raise MetadataQueryFailed(f"unexpected document shape: {e.message}") from e


def query_metadata(*, cwd: Path, cargo: str = "cargo") -> dict[str, Any]:
    """Run `cargo metadata` in `cwd` and return the decoded JSON document."""
    cmd = [cargo, "metadata", "--format-version", "1", "--no-deps"]
    log.debug("running %s (cwd=%s)", shlex.join(cmd), cwd)
    try:
        proc = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise MetadataQueryFailed(f"could not run {cargo!r}: {e}") from e
    if proc.returncode != 0:
        raise MetadataQueryFailed(f"cargo exited with status {proc.returncode}", stderr=proc.stderr)
    try:
        doc = json.loads(proc.stdout)
    except json.JSONDecodeError as e:
        raise MetadataQueryFailed(f"output is not valid JSON ({e})", stderr=proc.stderr) from e
    return doc


def _target_kind(kinds: Iterable[str]) -> TargetKind | None:
    for k in kinds:
        if k in TARGET_KINDS:
            return k  # type: ignore[return-value]
    return None


def catalog_from_metadata(doc: dict[str, Any]) -> Catalog:
    validate_metadata(doc)
    members = set(doc["workspace_members"])
    packages: list[Package] = []
    for pkg in doc["packages"]:
        if pkg["id"] not in members:
            continue
        targets: list[Target] = []
        for t in pkg["targets"]:
            kind = _target_kind(t["kind"])
            if kind is None:
                continue
            targets.append(Target(kind=kind, name=t["name"], package_id=pkg["id"], package_name=pkg["name"]))
        packages.append(
            Package(
                id=pkg["id"],
                name=pkg["name"],
                manifest_path=Path(pkg["manifest_path"]),
                default_run=pkg.get("default_run"),
                targets=tuple(sorted(targets)),
            )
        )
    packages.sort(key=lambda p: p.name)
    return Catalog(
        packages=tuple(packages),
        workspace_root=Path(doc["workspace_root"]),
        target_directory=Path(doc["target_directory"]),
    )


def discover(*, cwd: Path, cargo: str = "cargo") -> Catalog:
    catalog = catalog_from_metadata(query_metadata(cwd=cwd, cargo=cargo))
    log.debug("discovered %d targets in %d packages", len(catalog.targets), len(catalog.packages))
    return catalog


def current_package(catalog: Catalog, cwd: Path) -> Package | None:
    """Return the innermost workspace member whose directory contains `cwd`."""
    here = cwd.resolve()
    best: Package | None = None
    best_depth = -1
    for pkg in catalog.packages:
        root = pkg.root.resolve()
        if here != root and root not in here.parents:
            continue
        depth = len(root.parts)
        if depth > best_depth:
            best, best_depth = pkg, depth
    return best


def _suggestions(candidates: Sequence[Target], extra: Sequence[Target] = ()) -> str:
    """Copy-pasteable commands for each candidate, grouped by kind."""
    lines: list[str] = []
    shared = {t.name for t in candidates if sum(1 for o in candidates if o.name == t.name) > 1}
    for kind in TARGET_KINDS:
        group = sorted({t for t in (*candidates, *extra) if t.kind == kind})
        if not group:
            continue
        lines.append("")
        lines.append(f"Available {KIND_TITLES[kind].lower()}:")
        for t in group:
            cmd = f"cargo samply {t.cargo_flag} {shlex.quote(t.name)}"
            if t.name in shared:
                cmd += f" --package {shlex.quote(t.package_name)}"
            lines.append(f"  {t.name}: {cmd}")
    return "\n" + "\n".join(lines) if lines else ""


def _resolve_named(selection: Selection, catalog: Catalog, cwd_package: Package | None) -> Target:
    assert selection.kind is not None and selection.name is not None
    kind, name = selection.kind, selection.name
    pool = sorted(catalog.targets)
    if selection.package is not None:
        pool = [t for t in pool if t.package_name == selection.package]

    matches = [t for t in pool if t.kind == kind and t.name == name]
    if not matches and kind == "bench":
        # `--bench foo` also finds `foo_bench` / `foo-bench`.
        suffixed = {name + s for s in BENCH_SUFFIXES}
        matches = [t for t in pool if t.kind == "bench" and t.name in suffixed]
    if not matches:
        raise TargetNotFound(name, kind, sorted({t.name for t in pool if t.kind == kind}))

    if len(matches) > 1 and selection.package is None and cwd_package is not None:
        local = [t for t in matches if t.package_id == cwd_package.id]
        if local:
            matches = local
    if len(matches) > 1:
        raise AmbiguousTarget(matches, suggestions=_suggestions(matches))
    return matches[0]


def _resolve_default(packages: Sequence[Package], kind: TargetKind) -> Target:
    if kind == "bin":
        defaults = [
            t for p in packages if p.default_run for t in p.targets if t.kind == "bin" and t.name == p.default_run
        ]
        if len(defaults) == 1:
            return defaults[0]
        if len(defaults) > 1:
            raise AmbiguousTarget(defaults, suggestions=_suggestions(defaults))

    candidates = [t for p in packages for t in p.targets if t.kind == kind]
    if len(candidates) == 1:
        return candidates[0]
    if not candidates:
        raise NoTargetsFound(_KIND_NOUNS[kind])
    examples = [t for p in packages for t in p.targets if t.kind == "example"] if kind == "bin" else []
    raise AmbiguousTarget(candidates, suggestions=_suggestions(candidates, examples))


def resolve(selection: Selection, catalog: Catalog, cwd_package: Package | None = None) -> Target:
    """Resolve a partial selection to exactly one target or raise why it can't be.

    An explicit `selection.package` always wins over `cwd_package`. Without
    one, the package containing the working directory is searched first and
    the whole workspace only when it has nothing eligible.
    """
    if selection.package is not None and catalog.package_named(selection.package) is None:
        raise PackageNotFound(selection.package, [p.name for p in catalog.packages])

    if selection.kind is not None and selection.name is not None:
        return _resolve_named(selection, catalog, cwd_package)

    kind: TargetKind = selection.kind or "bin"
    if selection.package is not None:
        pkg = catalog.package_named(selection.package)
        assert pkg is not None
        return _resolve_default([pkg], kind)

    if cwd_package is not None and any(t.kind == kind for t in cwd_package.targets):
        return _resolve_default([cwd_package], kind)
    return _resolve_default(catalog.packages, kind)


def format_targets(catalog: Catalog, package: Package | None = None) -> str:
    """Render the `--list-targets` listing, limited to `package` when given."""
    lines: list[str] = []
    targets = catalog.targets if package is None else frozenset(package.targets)
    multi = package is None and len(catalog.packages) > 1
    for kind in TARGET_KINDS:
        group = sorted(t for t in targets if t.kind == kind)
        if not group:
            continue
        if lines:
            lines.append("")
        lines.append(f"{KIND_TITLES[kind]}:")
        for t in group:
            lines.append(f"  {t.name} (package {t.package_name})" if multi else f"  {t.name}")
    if not lines:
        return "No runnable targets found."
    return "\n".join(lines)
