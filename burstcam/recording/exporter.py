"""Exporter base class and selection."""

from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from burstcam.capture.buffer import FrameBatch, FrameBuffer
from burstcam.capture.state import SessionFacts
from burstcam.config import ExportSettings
from burstcam.core.logging_utils import LoggerLike, ensure_structured_logger
from burstcam.defaults import DEFAULT_OUTPUT_FPS
from burstcam.errors import AlreadyConsumed, ExportError, UnsupportedBitDepth
from burstcam.storage.session_paths import SessionPaths


@dataclass(frozen=True, slots=True)
class ExportResult:
    kind: str  # "mp4" | "tif"
    path: Path
    frame_count: int
    sidecar_path: Optional[Path] = None


class Exporter(ABC):
    """Turns one drained burst into a single artifact on disk.

    ``validate`` runs against the still-owned buffer so a rejected export
    leaves the session able to try another format. ``export`` receives the
    consumed batch and does the encoding in a worker thread.
    """

    kind: str = ""
    supported_bit_depths: Tuple[int, ...] = (8, 16)

    def __init__(self, *, logger: LoggerLike = None) -> None:
        self._logger = ensure_structured_logger(
            logger, component=type(self).__name__, fallback_name=__name__
        )

    def validate(self, buffer: FrameBuffer, facts: SessionFacts) -> None:
        if buffer.consumed:
            raise AlreadyConsumed("Frame buffer was already consumed")
        if not buffer.is_complete():
            raise ExportError(f"Burst is incomplete: {len(buffer)}/{buffer.target_count} frames")
        self._check_dtype(buffer.dtype)
        self._check_shape(buffer.frame_shape, facts)

    async def export(self, batch: FrameBatch, facts: SessionFacts, paths: SessionPaths) -> ExportResult:
        if not batch.complete:
            raise ExportError(f"Burst is incomplete: {len(batch)}/{batch.target_count} frames")
        self._check_dtype(batch.dtype)
        self._check_shape(batch.frame_shape, facts)

        path = paths.artifact_path(self.kind)
        self._logger.info("Writing %d frames to %s", len(batch), path)
        try:
            await asyncio.to_thread(self._write, batch, facts, path)
        except Exception as exc:
            self._remove_partial(path)
            if isinstance(exc, ExportError):
                raise
            raise ExportError(f"{self.kind} export to {path} failed: {exc}") from exc
        return ExportResult(
            kind=self.kind,
            path=path,
            frame_count=len(batch),
            sidecar_path=paths.sidecar_path if paths.sidecar_path.exists() else None,
        )

    @abstractmethod
    def _write(self, batch: FrameBatch, facts: SessionFacts, path: Path) -> None:
        """Blocking encoder body; runs off the event loop."""

    def _check_dtype(self, dtype) -> None:
        if dtype is None:
            raise ExportError("Burst holds no frames")
        bits = dtype.itemsize * 8
        if dtype.kind != "u" or bits not in self.supported_bit_depths:
            raise UnsupportedBitDepth(
                f"{self.kind} export supports {'/'.join(str(b) for b in self.supported_bit_depths)}-bit "
                f"unsigned frames, got {dtype}"
            )

    def _check_shape(self, shape, facts: SessionFacts) -> None:
        if shape is None or len(shape) != 3 or shape[2] != 3:
            raise ExportError(f"Expected H x W x 3 frames, got shape {shape}")

    def _remove_partial(self, path: Path) -> None:
        with contextlib.suppress(FileNotFoundError):
            path.unlink()
            self._logger.warning("Removed partial file %s", path)


def select_exporter(
    kind: str,
    settings: Optional[ExportSettings] = None,
    *,
    frame_rate: float = DEFAULT_OUTPUT_FPS,
    logger: LoggerLike = None,
) -> Exporter:
    """Map ``"mp4"`` / ``"tif"`` to a configured exporter."""

    from burstcam.recording.tiff_stack import TiffStackExporter
    from burstcam.recording.video import VideoExporter

    settings = settings or ExportSettings()
    normalized = (kind or "").strip().lower().lstrip(".")
    if normalized in ("mp4", "video"):
        return VideoExporter(
            frame_rate=frame_rate,
            backend=settings.video_backend,
            codec=settings.video_codec,
            crf=settings.video_crf,
            quality=settings.video_quality,
            logger=logger,
        )
    if normalized in ("tif", "tiff"):
        return TiffStackExporter(compression_level=settings.tiff_compression_level, logger=logger)
    raise ExportError(f"Unknown export format: {kind!r}")


__all__ = ["ExportResult", "Exporter", "select_exporter"]
