from __future__ import annotations

import tomllib
from pathlib import Path

from .config import DEFAULT_PROFILE, PROFILE_BLOCK
from .errors import PathIOError
from .log import log


def has_profile(manifest_path: Path, name: str = DEFAULT_PROFILE) -> bool:
    try:
        with manifest_path.open("rb") as f:
            manifest = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise PathIOError(manifest_path, e) from e
    profiles = manifest.get("profile")
    return isinstance(profiles, dict) and name in profiles


def ensure_profile(manifest_path: Path) -> bool:
    """Append the `[profile.samply]` block unless the manifest already has it.

    Returns True when the manifest was modified. Re-running is a no-op.
    """
    if has_profile(manifest_path, DEFAULT_PROFILE):
        log.debug("'%s' profile already present in %s", DEFAULT_PROFILE, manifest_path)
        return False
    try:
        current = manifest_path.read_bytes()
        block = PROFILE_BLOCK if current.endswith(b"\n") or not current else "\n" + PROFILE_BLOCK
        with manifest_path.open("a", encoding="utf-8", newline="\n") as f:
            f.write(block)
    except OSError as e:
        raise PathIOError(manifest_path, e) from e
    log.info("'%s' profile was added to '%s'", DEFAULT_PROFILE, manifest_path)
    return True
