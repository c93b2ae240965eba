"""Lossy MP4 export via PyAV (libx264) or OpenCV."""

from __future__ import annotations

from fractions import Fraction
from pathlib import Path

import av
import cv2
import numpy as np

from burstcam.capture.buffer import FrameBatch
from burstcam.capture.state import SessionFacts
from burstcam.core.logging_utils import LoggerLike
from burstcam.defaults import DEFAULT_OUTPUT_FPS, DEFAULT_VIDEO_CODEC, DEFAULT_VIDEO_CRF, DEFAULT_VIDEO_QUALITY
from burstcam.errors import ExportError
from burstcam.recording.exporter import Exporter


class VideoExporter(Exporter):
    """8-bit only. Frames are written in buffer order at ``frame_rate``.

    ``frame_rate`` is the playback rate of the file, not the acquisition
    rate; a burst captured at 500 fps plays back at 20 fps by default.
    """

    kind = "mp4"
    supported_bit_depths = (8,)

    def __init__(
        self,
        *,
        frame_rate: float = DEFAULT_OUTPUT_FPS,
        backend: str = "pyav",
        codec: str = DEFAULT_VIDEO_CODEC,
        crf: int = DEFAULT_VIDEO_CRF,
        quality: int = DEFAULT_VIDEO_QUALITY,
        logger: LoggerLike = None,
    ) -> None:
        super().__init__(logger=logger)
        if backend not in ("pyav", "opencv"):
            raise ExportError(f"Unknown video backend: {backend!r}")
        self.frame_rate = float(frame_rate)
        self.backend = backend
        self.codec = codec
        self.crf = int(crf)
        self.quality = int(quality)

    def _write(self, batch: FrameBatch, facts: SessionFacts, path: Path) -> None:
        if self.frame_rate <= 0:
            raise ExportError(f"Playback frame rate must be positive, got {self.frame_rate}")
        path.parent.mkdir(parents=True, exist_ok=True)
        is_bgr = facts.color_space.upper() == "BGR"
        if self.backend == "pyav":
            self._write_pyav(batch, path, is_bgr)
        else:
            self._write_opencv(batch, path, is_bgr)
        self._logger.info("Encoded %d frames at %.2f fps (%s)", len(batch), self.frame_rate, self.backend)

    # ------------------------------------------------------------------ PyAV path

    def _write_pyav(self, batch: FrameBatch, path: Path, is_bgr: bool) -> None:
        height, width = batch.frame_shape[:2]
        rate = Fraction(self.frame_rate).limit_denominator(1000)
        container = av.open(str(path), "w")
        try:
            stream = container.add_stream(self.codec, rate=rate)
            stream.width = width
            stream.height = height
            stream.pix_fmt = "yuv420p"
            time_base = Fraction(1) / rate
            stream.time_base = time_base
            stream.codec_context.time_base = time_base
            stream.options = {"crf": str(self.crf)}
            pixel_format = "bgr24" if is_bgr else "rgb24"
            for frame in batch:
                av_frame = av.VideoFrame.from_ndarray(np.ascontiguousarray(frame.data), format=pixel_format)
                av_frame.pts = frame.index
                # The muxer rewrites stream.time_base after the first packet.
                av_frame.time_base = time_base
                for packet in stream.encode(av_frame):
                    container.mux(packet)
            for packet in stream.encode(None):
                container.mux(packet)
        finally:
            container.close()

    # ------------------------------------------------------------------ OpenCV path

    def _write_opencv(self, batch: FrameBatch, path: Path, is_bgr: bool) -> None:
        height, width = batch.frame_shape[:2]
        fourcc = cv2.VideoWriter_fourcc(*"mp4v")
        writer = cv2.VideoWriter(str(path), fourcc, self.frame_rate, (width, height))
        if not writer.isOpened():
            raise ExportError(f"OpenCV could not open {path} for writing")
        try:
            writer.set(cv2.VIDEOWRITER_PROP_QUALITY, float(self.quality))
            for frame in batch:
                image = frame.data if is_bgr else cv2.cvtColor(frame.data, cv2.COLOR_RGB2BGR)
                writer.write(np.ascontiguousarray(image))
        finally:
            writer.release()


__all__ = ["VideoExporter"]
