"""Per-burst metadata sidecar (``<prefix>_videoMetadata.json``).

Per-frame arrays are index-aligned with the exported frames. Missing or
NaN readings are written as ``null``.
"""

from __future__ import annotations

import json
import math
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from burstcam.capture.frame import MetadataChunk
from burstcam.capture.state import SessionFacts
from burstcam.core.logging_utils import get_module_logger

SCHEMA_VERSION = 1
PER_FRAME_FIELDS = ("frame_id", "timestamp", "exposure_time", "gain", "black_level", "pixel_format")

logger = get_module_logger("Sidecar")


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def build_sidecar(
    chunks: Sequence[MetadataChunk],
    timestamps: Sequence[float],
    facts: SessionFacts,
    *,
    created: Optional[datetime] = None,
) -> Dict[str, Any]:
    if len(chunks) != len(timestamps):
        raise ValueError(f"{len(chunks)} chunks but {len(timestamps)} timestamps")
    return {
        "schema_version": SCHEMA_VERSION,
        "created": (created or datetime.now()).isoformat(timespec="seconds"),
        "color_space": facts.color_space,
        "num_frames": len(chunks),
        "frame_rate": _finite_or_none(facts.frame_rate),
        "isp_enable": bool(facts.isp_enable),
        "roi_position": facts.roi.as_position(),
        "frame_id": [c.frame_id for c in chunks],
        "timestamp": [_finite_or_none(t) for t in timestamps],
        "exposure_time": [_finite_or_none(c.exposure_time) for c in chunks],
        "gain": [_finite_or_none(c.gain) for c in chunks],
        "black_level": [_finite_or_none(c.black_level) for c in chunks],
        "pixel_format": [c.pixel_format for c in chunks],
    }


def write_sidecar(
    path: Path,
    chunks: Sequence[MetadataChunk],
    timestamps: Sequence[float],
    facts: SessionFacts,
    *,
    created: Optional[datetime] = None,
) -> Path:
    """Write the sidecar atomically (temp file + rename)."""

    path = Path(path)
    record = build_sidecar(chunks, timestamps, facts, created=created)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(record, f, indent=2, allow_nan=False)
        f.write("\n")
    os.replace(tmp_path, path)
    logger.info("Wrote metadata for %d frames to %s", record["num_frames"], path)
    return path


def _float_array(values: List[Any]) -> np.ndarray:
    return np.array([np.nan if v is None else float(v) for v in values], dtype=np.float64)


def read_sidecar(path: Path) -> Dict[str, Any]:
    """Load a sidecar; numeric per-frame arrays come back as numpy arrays.

    ``frame_id`` is int64 when every id is present, float64 with NaN holes
    otherwise.
    """

    with Path(path).open("r", encoding="utf-8") as f:
        record = json.load(f)

    frame_ids = record.get("frame_id", [])
    if any(v is None for v in frame_ids):
        record["frame_id"] = _float_array(frame_ids)
    else:
        record["frame_id"] = np.array(frame_ids, dtype=np.int64)
    for key in ("timestamp", "exposure_time", "gain", "black_level"):
        record[key] = _float_array(record.get(key, []))
    record["pixel_format"] = list(record.get("pixel_format", []))
    return record


__all__ = ["PER_FRAME_FIELDS", "SCHEMA_VERSION", "build_sidecar", "read_sidecar", "write_sidecar"]
