"""Profile Rust targets with samply.

This package selects a cargo target, builds it with a profiling-oriented
profile, locates the produced executable from cargo's JSON message stream
(never from path conventions), assembles the runtime library search path and
launches `samply record` on it.
"""

from __future__ import annotations
