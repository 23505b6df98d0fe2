"""
Turn planned invocations into processes or copy-pasteable shell text.

Both forms are derived from the same `RunInvocation` and the same environment
snapshot, so a dry-run prints exactly what would be spawned.
"""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Mapping
from pathlib import Path

from .log import log
from .model import BuildInvocation, RunInvocation
from .toolchain import resolve_overlay


def render(invocation: RunInvocation | BuildInvocation) -> list[str]:
    return list(invocation.argv)


def render_env(invocation: RunInvocation, environ: Mapping[str, str]) -> dict[str, str]:
    return resolve_overlay(invocation.env, environ)


def render_shell(invocation: RunInvocation | BuildInvocation, environ: Mapping[str, str] | None = None) -> str:
    """POSIX shell form: `NAME=value ... argv`, every value and token quoted."""
    words: list[str] = []
    if isinstance(invocation, RunInvocation) and invocation.env:
        for name, value in render_env(invocation, environ if environ is not None else os.environ).items():
            words.append(f"{name}={shlex.quote(value)}")
    words.extend(shlex.quote(tok) for tok in render(invocation))
    return " ".join(words)


def spawn(invocation: RunInvocation, environ: Mapping[str, str], *, cwd: Path | None = None) -> int:
    """Run with inherited stdio and return the child's exit status.

    Ctrl-C reaches the child through the terminal's process group; we keep
    waiting so the profiler can finish writing its output. A child killed by
    signal N reports 128 + N, as a shell would.
    """
    overlay = render_env(invocation, environ)
    for name, value in overlay.items():
        log.debug("setting %s=%s", name, value)
    log.debug("running %s", shlex.join(render(invocation)))
    proc = subprocess.Popen(render(invocation), env={**environ, **overlay}, cwd=cwd)
    with proc:
        while True:
            try:
                rc = proc.wait()
            except KeyboardInterrupt:
                continue
            return 128 - rc if rc < 0 else rc
