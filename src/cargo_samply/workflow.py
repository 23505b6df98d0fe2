from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import IO

import attrs

from . import build, catalog, command, manifest, prereqs, run, toolchain
from .config import DEFAULT_BENCH_FLAG, DEFAULT_PROFILE, Settings
from .errors import LaunchFailed, MetadataQueryFailed, PackageNotFound, ProfilerNotInstalled
from .log import log
from .model import Artifact, BuildInvocation, Catalog, EnvironmentOverlay, Package, Plan, Selection


@attrs.define(frozen=True, slots=True)
class Options:
    selection: Selection = attrs.field(factory=Selection)
    profile: str = DEFAULT_PROFILE
    features: tuple[str, ...] = ()
    no_default_features: bool = False
    target_triple: str | None = None
    samply_args: tuple[str, ...] = ()
    trailing_args: tuple[str, ...] = ()
    bench_flag: str | None = DEFAULT_BENCH_FLAG
    no_profile_inject: bool = False
    no_samply: bool = False
    dry_run: bool = False
    list_targets: bool = False
    quiet: bool = False


def _check_prerequisites(opts: Options, settings: Settings, environ: Mapping[str, str]) -> None:
    """Fail before any build if a required tool is missing from the snapshot's PATH."""
    need_profiler = not (opts.no_samply or opts.dry_run)
    checks = prereqs.check_all(
        cargo=settings.cargo,
        samply=settings.samply,
        need_profiler=need_profiler,
        search_path=environ.get("PATH", os.defpath),
    )
    by_name = {c.check_name: c for c in checks}
    failures = prereqs.format_prereq_failures(checks)

    samply_check = by_name.get("samply_available")
    if samply_check is not None and samply_check.status == "fail":
        raise ProfilerNotInstalled(settings.samply, failures)
    if by_name["cargo_available"].status == "fail":
        raise MetadataQueryFailed(f"{settings.cargo!r} not found", stderr=failures)


def plan_build(opts: Options, settings: Settings, cat: Catalog, *, cwd: Path) -> BuildInvocation:
    target = catalog.resolve(opts.selection, cat, catalog.current_package(cat, cwd))
    log.debug("selected %s", target.describe())
    extra = ["--target", opts.target_triple] if opts.target_triple else []
    return build.plan_build(
        target,
        profile=opts.profile,
        features=opts.features,
        no_default_features=opts.no_default_features,
        quiet=opts.quiet,
        extra_flags=extra,
        cargo=settings.cargo,
        cwd=cwd,
    )


def listing_package(selection: Selection, cat: Catalog, *, cwd: Path) -> Package | None:
    """Package whose targets `--list-targets` shows; None lists the whole workspace."""
    if selection.package is None:
        return catalog.current_package(cat, cwd)
    pkg = cat.package_named(selection.package)
    if pkg is None:
        raise PackageNotFound(selection.package, [p.name for p in cat.packages])
    return pkg


def library_overlay(
    artifact: Artifact, tc: toolchain.Toolchain | None, *, profile: str, target_directory: Path
) -> EnvironmentOverlay:
    if tc is None:
        return ()
    triple = toolchain.infer_target_triple(
        artifact.executable_path, profile=profile, target_directory=target_directory, host=tc.host
    )
    paths = toolchain.library_search_paths(tc.sysroot, triple, executable=artifact.executable_path)
    return toolchain.library_overlay(paths)


def execute(
    opts: Options,
    *,
    environ: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    out: IO[str] | None = None,
) -> int:
    """Run the pipeline: discover, build, then profile (or print with `dry_run`).

    Returns the profiler's exit status. Failures raise `CargoSamplyError`.
    """
    env = dict(os.environ if environ is None else environ)
    cwd = Path.cwd() if cwd is None else cwd
    out = sys.stdout if out is None else out
    settings = Settings.from_env(env)

    if opts.list_targets:
        cat = catalog.discover(cwd=cwd, cargo=settings.cargo)
        print(catalog.format_targets(cat, listing_package(opts.selection, cat, cwd=cwd)), file=out)
        return 0

    _check_prerequisites(opts, settings, env)
    if not opts.no_samply:
        run.validate_tool_args(opts.samply_args)

    if settings.no_sysroot_injection:
        log.debug("library path injection disabled")
        tc = None
    else:
        tc = toolchain.detect_toolchain(settings.rustc)

    cat = catalog.discover(cwd=cwd, cargo=settings.cargo)
    build_inv = plan_build(opts, settings, cat, cwd=cwd)

    if opts.profile == DEFAULT_PROFILE and not (opts.no_profile_inject or settings.no_profile_inject):
        manifest.ensure_profile(cat.manifest_path)

    if opts.dry_run:
        print(command.render_shell(build_inv), file=out)
        out.flush()

    artifact = build.execute(build_inv)
    log.debug("built %s", artifact.executable_path)

    overlay = library_overlay(artifact, tc, profile=build_inv.profile, target_directory=cat.target_directory)
    run_inv = run.plan_run(
        artifact,
        overlay,
        profiler=settings.samply,
        tool_args=opts.samply_args,
        trailing_args=opts.trailing_args,
        bench_flag=opts.bench_flag,
        no_profiler=opts.no_samply,
    )
    plan = Plan(build=build_inv, run=run_inv)

    if opts.dry_run:
        print(command.render_shell(plan.run, env), file=out)
        return 0

    try:
        return command.spawn(plan.run, env, cwd=cwd)
    except OSError as e:
        if opts.no_samply:
            raise LaunchFailed(str(artifact.executable_path), e) from e
        raise ProfilerNotInstalled(settings.samply, str(e)) from e
