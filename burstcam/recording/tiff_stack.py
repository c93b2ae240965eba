"""Lossless multi-page TIFF export.

One page per frame, Adobe deflate compressed, RGB chunky pixels. Every
page carries its own width/height/bit-depth tags so readers that walk
the IFD chain see a uniform stack.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import tifffile

from burstcam.capture.buffer import FrameBatch
from burstcam.capture.state import SessionFacts
from burstcam.core.logging_utils import LoggerLike
from burstcam.defaults import DEFAULT_TIFF_COMPRESSION_LEVEL
from burstcam.errors import ExportError
from burstcam.recording.exporter import Exporter


BIGTIFF_THRESHOLD = 2**32 - 2**25  # classic TIFF offsets are 32 bit


class TiffStackExporter(Exporter):

    kind = "tif"
    supported_bit_depths = (8, 16)

    def __init__(
        self,
        *,
        compression_level: int = DEFAULT_TIFF_COMPRESSION_LEVEL,
        logger: LoggerLike = None,
    ) -> None:
        super().__init__(logger=logger)
        self.compression_level = min(9, max(0, int(compression_level)))

    def _check_shape(self, shape, facts: SessionFacts) -> None:
        super()._check_shape(shape, facts)
        height, width = shape[:2]
        if (width, height) != facts.roi.size:
            raise ExportError(
                f"Frame size {width}x{height} does not match effective ROI "
                f"{facts.roi.width}x{facts.roi.height}"
            )

    def _write(self, batch: FrameBatch, facts: SessionFacts, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        bigtiff = sum(frame.data.nbytes for frame in batch) > BIGTIFF_THRESHOLD
        with tifffile.TiffWriter(path, bigtiff=bigtiff) as tif:
            for frame in batch:
                tif.write(
                    np.ascontiguousarray(frame.data),
                    photometric="rgb",
                    planarconfig="contig",
                    compression="zlib",
                    compressionargs={"level": self.compression_level},
                    metadata=None,
                    contiguous=False,
                )
        self._logger.info("Wrote %d TIFF pages (%d-bit)", len(batch), batch.dtype.itemsize * 8)


__all__ = ["TiffStackExporter"]
