from __future__ import annotations

import argparse
import sys
from typing import cast

from . import log as logging_setup
from . import run, workflow
from .config import BENCH_FLAG_NONE, DEFAULT_BENCH_FLAG, DEFAULT_PROFILE
from .errors import CargoSamplyError
from .log import log
from .model import Selection, TargetKind


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser; usable both as `cargo samply` and `cargo-samply`."""
    parser = argparse.ArgumentParser(
        prog="cargo samply",
        description="Build a Rust target with debug symbols and profile it with samply.",
    )
    which = parser.add_mutually_exclusive_group()
    which.add_argument("-b", "--bin", metavar="NAME", default=None, help="Binary to run.")
    which.add_argument("-e", "--example", metavar="NAME", default=None, help="Example to run.")
    which.add_argument("--bench", metavar="NAME", default=None, help="Benchmark target to run (`_bench`/`-bench` suffix optional).")
    which.add_argument("--test", metavar="NAME", default=None, help="Integration test target to run.")
    parser.add_argument("-p", "--package", default=None, help="Package that owns the target.")
    parser.add_argument("--profile", default=DEFAULT_PROFILE, help=f"Build profile (default: {DEFAULT_PROFILE}).")
    parser.add_argument(
        "-F",
        "--features",
        action="append",
        default=[],
        help="Features to enable (comma-separated, repeatable).",
    )
    parser.add_argument("--no-default-features", action="store_true", help="Disable default features.")
    parser.add_argument("--target", dest="target_triple", default=None, help="Build for the given target triple.")
    parser.add_argument(
        "--samply-args",
        default="",
        help='Extra samply arguments, placed before `--`. Use the `=` form when the value starts '
        'with a dash (e.g. --samply-args="--rate 2000 --save-only").',
    )
    parser.add_argument(
        "--bench-flag",
        default=DEFAULT_BENCH_FLAG,
        help=f"Flag passed to bench targets before trailing arguments (default: {DEFAULT_BENCH_FLAG}; "
        f"'{BENCH_FLAG_NONE}' passes nothing). Use the `=` form for dash-prefixed values (--bench-flag=--bench).",
    )
    parser.add_argument(
        "--no-profile-inject",
        action="store_true",
        help="Do not add the [profile.samply] section to Cargo.toml.",
    )
    parser.add_argument("-n", "--no-samply", action="store_true", help="Run the built executable without samply.")
    parser.add_argument("--dry-run", action="store_true", help="Build, then print the samply command instead of running it.")
    parser.add_argument("--list-targets", action="store_true", help="List runnable targets and exit.")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Print extra output to help debug problems.")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Suppress all output except errors.")
    parser.add_argument(
        "trailing_args",
        nargs=argparse.REMAINDER,
        metavar="-- ARGS",
        help="Arguments passed to the profiled program. Use `--` before them.",
    )
    return parser


def _selection(ns: argparse.Namespace) -> Selection:
    for kind in ("bin", "example", "bench", "test"):
        name = getattr(ns, kind)
        if name is not None:
            return Selection(kind=cast(TargetKind, kind), name=name, package=ns.package)
    return Selection(package=ns.package)


def options_from_args(ns: argparse.Namespace) -> workflow.Options:
    trailing = list(ns.trailing_args)
    if trailing and trailing[0] == "--":
        trailing = trailing[1:]
    return workflow.Options(
        selection=_selection(ns),
        profile=ns.profile,
        features=tuple(ns.features),
        no_default_features=ns.no_default_features,
        target_triple=ns.target_triple,
        samply_args=tuple(run.split_args(ns.samply_args)),
        trailing_args=tuple(trailing),
        bench_flag=ns.bench_flag,
        no_profile_inject=ns.no_profile_inject,
        no_samply=ns.no_samply,
        dry_run=ns.dry_run,
        list_targets=ns.list_targets,
        quiet=ns.quiet,
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint. Returns process exit code."""
    args = list(sys.argv[1:] if argv is None else argv)
    # cargo runs external subcommands as `cargo-samply samply ...`.
    if args and args[0] == "samply":
        args = args[1:]

    ns = build_parser().parse_args(args)
    logging_setup.configure(verbose=ns.verbose, quiet=ns.quiet)
    try:
        return workflow.execute(options_from_args(ns))
    except CargoSamplyError as e:
        log.error("%s", e)
        return e.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
