from __future__ import annotations

import shlex
from collections.abc import Sequence

from .config import BENCH_FLAG_NONE, DEFAULT_BENCH_FLAG, PROFILER_VERB
from .errors import InvalidToolArgs
from .model import Artifact, EnvironmentOverlay, RunInvocation, TargetKind


def split_args(text: str, *, what: str = "samply arguments") -> list[str]:
    """Split a shell-quoted option value into words."""
    try:
        return shlex.split(text)
    except ValueError as e:
        raise InvalidToolArgs([text], str(e), what=what) from e


def bench_flag_args(kind: TargetKind, bench_flag: str | None = DEFAULT_BENCH_FLAG) -> list[str]:
    """Arguments injected ahead of the trailing args for bench targets."""
    if kind != "bench" or bench_flag is None:
        return []
    if bench_flag.strip().lower() == BENCH_FLAG_NONE:
        return []
    return split_args(bench_flag, what="bench flag")


def validate_tool_args(tool_args: Sequence[str]) -> None:
    if "--" in tool_args:
        raise InvalidToolArgs(tool_args, "`--` is reserved to separate samply's arguments from the program's")


def plan_run(
    artifact: Artifact,
    overlay: EnvironmentOverlay = (),
    *,
    profiler: str = "samply",
    tool_args: Sequence[str] = (),
    trailing_args: Sequence[str] = (),
    bench_flag: str | None = DEFAULT_BENCH_FLAG,
    no_profiler: bool = False,
) -> RunInvocation:
    """Build the launch command for an artifact.

    The profiler form is `samply record [tool args] -- <exe> [bench flag] [args]`;
    the `--` is emitted even when either side is empty. With `no_profiler` the
    executable is launched directly.
    """
    program = [str(artifact.executable_path), *bench_flag_args(artifact.target.kind, bench_flag), *trailing_args]
    if no_profiler:
        return RunInvocation(argv=tuple(program), env=overlay)

    validate_tool_args(tool_args)
    argv = [profiler, PROFILER_VERB, *tool_args, "--", *program]
    return RunInvocation(argv=tuple(argv), env=overlay)
