"""Decode raw per-frame chunk records into :class:`MetadataChunk`.

Drivers hand back one record per frame, either flat or GenICam style with
the values nested under ``"ChunkData"``::

    {"ChunkData": {"FrameID": 17, "ExposureTime": 1000.0, "Gain": 28.0,
                   "BlackLevel": 0.0, "PixelFormat": "BayerRG8"}}

Each field is decoded on its own so that one bad value does not hide the
others; the partially decoded chunk travels with the error.
"""

from __future__ import annotations

import math
from typing import Any, List, Mapping, Optional, Sequence

from burstcam.capture.frame import MetadataChunk
from burstcam.core.logging_utils import LoggerLike, ensure_structured_logger
from burstcam.errors import MalformedMetadata

REQUIRED_FIELDS = ("FrameID", "ExposureTime", "Gain", "BlackLevel", "PixelFormat")

_MISSING = object()


def _lookup(record: Mapping[str, Any], key: str) -> Any:
    nested = record.get("ChunkData")
    if isinstance(nested, Mapping) and key in nested:
        return nested[key]
    return record.get(key, _MISSING)


def _as_int(value: Any) -> Optional[int]:
    if value is _MISSING or value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or not number.is_integer():
        return None
    return int(number)


def _as_float(value: Any) -> float:
    if value is _MISSING or value is None or isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _as_tag(value: Any) -> Optional[str]:
    if value is _MISSING or value is None:
        return None
    # Enum-valued chunks come back as objects with a name/value.
    for attr in ("value", "name"):
        inner = getattr(value, attr, None)
        if isinstance(inner, str):
            value = inner
            break
    text = str(value).strip()
    return text or None


def decode_chunk(record: Mapping[str, Any], index: int) -> MetadataChunk:
    """Decode one chunk record; raises MalformedMetadata if any field is unusable."""

    if not isinstance(record, Mapping):
        raise MalformedMetadata(index, REQUIRED_FIELDS, partial=_empty_chunk())

    frame_id = _as_int(_lookup(record, "FrameID"))
    exposure = _as_float(_lookup(record, "ExposureTime"))
    gain = _as_float(_lookup(record, "Gain"))
    black_level = _as_float(_lookup(record, "BlackLevel"))
    pixel_format = _as_tag(_lookup(record, "PixelFormat"))

    chunk = MetadataChunk(
        frame_id=frame_id,
        exposure_time=exposure,
        gain=gain,
        black_level=black_level,
        pixel_format=pixel_format,
    )

    missing = [
        name
        for name, bad in (
            ("FrameID", frame_id is None),
            ("ExposureTime", math.isnan(exposure)),
            ("Gain", math.isnan(gain)),
            ("BlackLevel", math.isnan(black_level)),
            ("PixelFormat", pixel_format is None),
        )
        if bad
    ]
    if missing:
        raise MalformedMetadata(index, missing, partial=chunk)
    return chunk


def decode_chunks(
    records: Sequence[Mapping[str, Any]],
    *,
    strict: bool = False,
    logger: LoggerLike = None,
) -> List[MetadataChunk]:
    """Decode a drained metadata array in order.

    With ``strict`` the first malformed record propagates. Otherwise the
    partial chunk is kept for that frame and decoding continues.
    """

    log = ensure_structured_logger(logger, fallback_name=__name__)
    chunks: List[MetadataChunk] = []
    malformed = 0
    for index, record in enumerate(records):
        try:
            chunks.append(decode_chunk(record, index))
        except MalformedMetadata as exc:
            if strict:
                raise
            malformed += 1
            log.warning("%s; keeping partial values", exc)
            chunks.append(exc.partial if exc.partial is not None else _empty_chunk())
    if malformed:
        log.warning("%d of %d chunk records were malformed", malformed, len(records))
    return chunks


def _empty_chunk() -> MetadataChunk:
    return MetadataChunk(
        frame_id=None,
        exposure_time=math.nan,
        gain=math.nan,
        black_level=math.nan,
        pixel_format=None,
    )


__all__ = ["REQUIRED_FIELDS", "decode_chunk", "decode_chunks"]
