"""Artifact naming and the metadata sidecar."""

from .session_paths import SessionPaths, resolve_session_paths, sanitize_label, session_prefix
from .sidecar import SCHEMA_VERSION, build_sidecar, read_sidecar, write_sidecar

__all__ = [
    "SessionPaths",
    "resolve_session_paths",
    "sanitize_label",
    "session_prefix",
    "SCHEMA_VERSION",
    "build_sidecar",
    "read_sidecar",
    "write_sidecar",
]
