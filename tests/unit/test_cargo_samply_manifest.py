from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from cargo_samply import manifest
from cargo_samply.errors import PathIOError

BASE = '[package]\nname = "demo"\nversion = "0.1.0"\n'


def test_ensure_profile_appends_block(tmp_path: Path) -> None:
    p = tmp_path / "Cargo.toml"
    p.write_text(BASE)
    assert manifest.ensure_profile(p) is True
    data = tomllib.loads(p.read_text())
    assert data["profile"]["samply"] == {"inherits": "release", "debug": True}


def test_ensure_profile_is_idempotent(tmp_path: Path) -> None:
    p = tmp_path / "Cargo.toml"
    p.write_text(BASE)
    manifest.ensure_profile(p)
    first = p.read_bytes()
    assert manifest.ensure_profile(p) is False
    assert p.read_bytes() == first


def test_existing_profile_is_left_alone(tmp_path: Path) -> None:
    p = tmp_path / "Cargo.toml"
    original = BASE + '\n[profile.samply]\ninherits = "release"\ndebug = 1\n'
    p.write_text(original)
    assert manifest.ensure_profile(p) is False
    assert p.read_text() == original


def test_missing_trailing_newline_still_parses(tmp_path: Path) -> None:
    p = tmp_path / "Cargo.toml"
    p.write_text(BASE.rstrip("\n"))
    manifest.ensure_profile(p)
    assert manifest.has_profile(p)
    assert tomllib.loads(p.read_text())["package"]["name"] == "demo"


def test_invalid_manifest_reports_path(tmp_path: Path) -> None:
    p = tmp_path / "Cargo.toml"
    p.write_text("[package\n")
    with pytest.raises(PathIOError) as exc:
        manifest.ensure_profile(p)
    assert exc.value.path == p


def test_missing_manifest_reports_path(tmp_path: Path) -> None:
    with pytest.raises(PathIOError):
        manifest.has_profile(tmp_path / "Cargo.toml")
