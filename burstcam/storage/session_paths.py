"""Artifact naming for one burst."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

PREFIX_TIME_FORMAT = "%Y-%m-%d_%H.%M.%S"


@dataclass(slots=True)
class SessionPaths:
    """Resolved paths for a single burst; all share one prefix."""

    output_dir: Path
    prefix: str
    sidecar_path: Path
    video_path: Path
    tiff_path: Path
    timing_path: Path

    def artifact_path(self, kind: str) -> Path:
        if kind == "mp4":
            return self.video_path
        if kind == "tif":
            return self.tiff_path
        raise ValueError(f"Unknown artifact kind: {kind!r}")


def sanitize_label(name: str, max_length: int = 50) -> str:
    """Make ``name`` safe for a filename; empty input stays empty."""
    sanitized = re.sub(r'[\s\-/\\:]+', '_', name or "")
    sanitized = re.sub(r'[^\w.]', '', sanitized)
    sanitized = re.sub(r'_+', '_', sanitized)
    sanitized = sanitized.strip('_.')
    return sanitized[:max_length]


def session_prefix(label: str = "", *, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime(PREFIX_TIME_FORMAT)
    clean = sanitize_label(label)
    return f"{stamp}_{clean}" if clean else stamp


def resolve_session_paths(
    output_dir: Path,
    *,
    label: str = "",
    now: Optional[datetime] = None,
    create: bool = True,
) -> SessionPaths:
    """Build the artifact layout for a burst and ensure the directory exists."""

    output_dir = Path(output_dir)
    if create:
        output_dir.mkdir(parents=True, exist_ok=True)
    prefix = session_prefix(label, now=now)
    return SessionPaths(
        output_dir=output_dir,
        prefix=prefix,
        sidecar_path=output_dir / f"{prefix}_videoMetadata.json",
        video_path=output_dir / f"{prefix}_video.mp4",
        tiff_path=output_dir / f"{prefix}_video.tif",
        timing_path=output_dir / f"{prefix}_timing.csv",
    )


__all__ = ["PREFIX_TIME_FORMAT", "SessionPaths", "resolve_session_paths", "sanitize_label", "session_prefix"]
