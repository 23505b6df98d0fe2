from __future__ import annotations

from pathlib import Path

import pytest

from cargo_samply import toolchain
from cargo_samply.errors import SysrootDetectionFailed
from cargo_samply.model import EnvEntry

LINUX = toolchain.Platform.for_system("linux")
RUSTC_VV = """rustc 1.80.0 (051478957 2024-07-21)
binary: rustc
commit-hash: 051478957371ee0084a7c0913941d2a8c4757bb9
host: x86_64-unknown-linux-gnu
release: 1.80.0
LLVM version: 18.1.7
"""


def test_parse_host_triple() -> None:
    assert toolchain.parse_host_triple(RUSTC_VV) == "x86_64-unknown-linux-gnu"


def test_parse_host_triple_missing_line() -> None:
    with pytest.raises(SysrootDetectionFailed):
        toolchain.parse_host_triple("rustc 1.80.0\n")


def test_platform_variables() -> None:
    assert toolchain.overlay_for(toolchain.Platform.for_system("linux")) == "LD_LIBRARY_PATH"
    assert toolchain.overlay_for(toolchain.Platform.for_system("darwin")) == "DYLD_LIBRARY_PATH"
    win = toolchain.Platform.for_system("win32")
    assert (win.env_var, win.separator) == ("PATH", ";")


def test_infer_target_triple() -> None:
    tdir = Path("/ws/target")
    host = "x86_64-unknown-linux-gnu"
    assert toolchain.infer_target_triple(tdir / "samply" / "app", profile="samply", target_directory=tdir, host=host) == host
    cross = tdir / "aarch64-apple-darwin" / "samply" / "app"
    assert toolchain.infer_target_triple(cross, profile="samply", target_directory=tdir, host=host) == "aarch64-apple-darwin"
    dev = tdir / "wasm32-wasip1" / "debug" / "examples" / "demo"
    assert toolchain.infer_target_triple(dev, profile="dev", target_directory=tdir, host=host) == "wasm32-wasip1"
    assert toolchain.infer_target_triple(Path("/other/app"), profile="samply", target_directory=tdir, host=host) == host


def test_library_search_paths_linux() -> None:
    sysroot = Path("/rust")
    paths = toolchain.library_search_paths(
        sysroot, "x86_64-unknown-linux-gnu", executable=Path("/ws/target/samply/app"), platform=LINUX
    )
    assert paths == (
        Path("/ws/target/samply/deps"),
        Path("/rust/lib/rustlib/x86_64-unknown-linux-gnu/lib"),
        Path("/rust/lib"),
    )


def test_library_search_paths_bench_in_deps() -> None:
    paths = toolchain.library_search_paths(
        Path("/rust"), "t", executable=Path("/ws/target/samply/deps/bench-abc123"), platform=LINUX
    )
    assert paths[0] == Path("/ws/target/samply/deps")


def test_library_search_paths_windows_adds_bin() -> None:
    win = toolchain.Platform.for_system("win32")
    paths = toolchain.library_search_paths(Path("/rust"), "x86_64-pc-windows-msvc", platform=win)
    assert paths[-1] == Path("/rust/bin")


def test_resolve_overlay_appends_prior_value() -> None:
    overlay = (EnvEntry(name="LD_LIBRARY_PATH", paths=("/a", "/b"), separator=":"),)
    env = {"LD_LIBRARY_PATH": "/b:/usr/lib:"}
    assert toolchain.resolve_overlay(overlay, env) == {"LD_LIBRARY_PATH": "/a:/b:/usr/lib"}


def test_resolve_overlay_without_prior_value() -> None:
    overlay = toolchain.library_overlay([Path("/a")], platform=LINUX)
    assert toolchain.resolve_overlay(overlay, {}) == {"LD_LIBRARY_PATH": "/a"}


def test_resolve_overlay_no_inherit_replaces() -> None:
    overlay = (EnvEntry(name="X", paths=("/a",), separator=":", inherit=False),)
    assert toolchain.resolve_overlay(overlay, {"X": "/old"}) == {"X": "/a"}


def test_detect_toolchain_uses_rustc(write_script) -> None:
    rustc = write_script(
        "rustc",
        "import sys\n"
        "if sys.argv[1:] == ['--print', 'sysroot']:\n"
        "    print('/opt/rust')\n"
        f"else:\n    sys.stdout.write({RUSTC_VV!r})\n",
    )
    tc = toolchain.detect_toolchain(str(rustc))
    assert tc == toolchain.Toolchain(sysroot=Path("/opt/rust"), host="x86_64-unknown-linux-gnu")


def test_detect_toolchain_failure_has_hint(write_script) -> None:
    rustc = write_script("rustc", "import sys\nsys.stderr.write('no default toolchain\\n')\nsys.exit(1)\n")
    with pytest.raises(SysrootDetectionFailed) as exc:
        toolchain.detect_toolchain(str(rustc))
    assert "no default toolchain" in str(exc.value)
    assert "CARGO_SAMPLY_NO_SYSROOT_INJECTION" in str(exc.value)


def test_detect_toolchain_missing_rustc(tmp_path: Path) -> None:
    with pytest.raises(SysrootDetectionFailed):
        toolchain.detect_toolchain(str(tmp_path / "missing-rustc"))
