"""Frame and chunk-metadata data structures."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np


class PixelFormat(Enum):
    """Sensor output formats the acquisition path understands."""

    MONO8 = "Mono8"
    MONO16 = "Mono16"
    BAYER_RG8 = "BayerRG8"
    BAYER_RG16 = "BayerRG16"
    RGB8 = "RGB8"
    BGR8 = "BGR8"

    @property
    def bit_depth(self) -> int:
        return 16 if self.value.endswith("16") else 8

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(np.uint16 if self.bit_depth == 16 else np.uint8)

    @classmethod
    def parse(cls, value: "str | PixelFormat") -> "PixelFormat":
        """Accept enum members, GenICam names ("BayerRG8") or member names."""
        if isinstance(value, PixelFormat):
            return value
        text = str(value).strip()
        for member in cls:
            if text == member.value or text.upper() == member.name:
                return member
        for member in cls:
            if text.lower() == member.value.lower():
                return member
        raise ValueError(f"Unknown pixel format: {value!r}")


@dataclass(frozen=True, slots=True)
class MetadataChunk:
    """Per-frame chunk data embedded by the camera.

    Fields the decoder could not read stay ``None`` (ids, tags) or NaN
    (numeric readings) so a partial chunk keeps its place in the batch.
    """

    frame_id: Optional[int]
    exposure_time: float  # µs
    gain: float  # dB
    black_level: float
    pixel_format: Optional[str]

    @property
    def complete(self) -> bool:
        return (
            self.frame_id is not None
            and self.pixel_format is not None
            and not any(math.isnan(v) for v in (self.exposure_time, self.gain, self.black_level))
        )


@dataclass(frozen=True, slots=True)
class Frame:
    """One buffered image sample with its arrival time and chunk."""

    index: int  # Ordinal position in the burst
    data: np.ndarray  # H x W x C
    timestamp: float  # Monotonic seconds, driver clock
    chunk: MetadataChunk

    @property
    def size(self) -> tuple[int, int]:
        """(width, height)"""
        return int(self.data.shape[1]), int(self.data.shape[0])

    @property
    def bit_depth(self) -> int:
        return self.data.dtype.itemsize * 8


__all__ = ["Frame", "MetadataChunk", "PixelFormat"]
