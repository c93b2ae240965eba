"""Frame timing diagnostics for a finished burst."""

from __future__ import annotations

import csv
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from burstcam.core.logging_utils import get_module_logger

LATE_FACTOR = 1.5

logger = get_module_logger("Timing")


@dataclass(frozen=True, slots=True)
class TimingDiagnostics:
    """Achieved versus requested timing, one entry per frame interval."""

    frame_count: int
    frame_rate: float
    intervals_ms: np.ndarray
    exposure_ms: np.ndarray
    ideal_ms: np.ndarray
    median_interval_ms: float
    mean_interval_ms: float
    jitter_ms: float
    ideal_interval_ms: float
    late_frames: int

    def title(self) -> str:
        exposure = float(self.exposure_ms[0]) if len(self.exposure_ms) else math.nan
        rate = f"{self.frame_rate:g} fps" if math.isfinite(self.frame_rate) else "unknown"
        return f"Frame rate: {rate}, exposure time: {exposure:g} ms"

    def summary(self) -> str:
        return (
            f"{self.frame_count} frames, median interval {self.median_interval_ms:.3f} ms "
            f"(ideal {self.ideal_interval_ms:.3f} ms), jitter {self.jitter_ms:.3f} ms, "
            f"{self.late_frames} late"
        )


def compute_timing(
    timestamps: Sequence[float],
    exposure_us: Union[float, Sequence[float]],
    frame_rate: Optional[float],
    frame_count: int,
) -> TimingDiagnostics:
    """Build interval series from per-frame timestamps.

    Args:
        timestamps: Monotonic frame times in seconds, one per frame.
        exposure_us: Exposure in microseconds, scalar or one value per frame.
        frame_rate: Acquisition rate the device reported, frames per second.
            ``None`` or NaN when the device reported none; the ideal series
            is then NaN and no frame is counted late.
        frame_count: Number of frames in the burst; must match ``timestamps``.

    Returns:
        TimingDiagnostics with ``frame_count - 1`` entries per series.
    """

    stamps = np.asarray(timestamps, dtype=np.float64)
    if stamps.ndim != 1 or len(stamps) != frame_count:
        raise ValueError(f"Expected {frame_count} timestamps, got {stamps.shape}")
    known_rate = frame_rate is not None and not math.isnan(frame_rate)
    if known_rate and (frame_rate <= 0 or not math.isfinite(frame_rate)):
        raise ValueError(f"Frame rate must be positive, got {frame_rate}")

    intervals = np.diff(stamps) * 1e3
    n = len(intervals)

    exposure = np.asarray(exposure_us, dtype=np.float64)
    if exposure.ndim == 0:
        exposure_ms = np.full(n, float(exposure) * 1e-3)
    else:
        exposure_ms = exposure[:n] * 1e-3
        if len(exposure_ms) < n:
            raise ValueError(f"Expected at least {n} exposure values, got {len(exposure)}")

    ideal = 1e3 / frame_rate if known_rate else math.nan
    ideal_ms = np.full(n, ideal)

    if n:
        median = float(np.median(intervals))
        mean = float(np.mean(intervals))
        jitter = float(np.std(intervals))
        late = int(np.count_nonzero(intervals > LATE_FACTOR * ideal)) if known_rate else 0
    else:
        median = mean = jitter = math.nan
        late = 0

    return TimingDiagnostics(
        frame_count=int(frame_count),
        frame_rate=float(frame_rate) if known_rate else math.nan,
        intervals_ms=intervals,
        exposure_ms=exposure_ms,
        ideal_ms=ideal_ms,
        median_interval_ms=median,
        mean_interval_ms=mean,
        jitter_ms=jitter,
        ideal_interval_ms=ideal,
        late_frames=late,
    )


def write_timing_csv(path: Path, diagnostics: TimingDiagnostics) -> Path:
    """Write the three series, one row per interval."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["interval_index", "interval_ms", "exposure_ms", "ideal_ms"])
        for index, (interval, exposure, ideal) in enumerate(
            zip(diagnostics.intervals_ms, diagnostics.exposure_ms, diagnostics.ideal_ms), start=1
        ):
            writer.writerow([index, f"{interval:.6f}", f"{exposure:.6f}", f"{ideal:.6f}"])
    logger.info("Timing written to %s: %s", path, diagnostics.summary())
    return path


__all__ = ["LATE_FACTOR", "TimingDiagnostics", "compute_timing", "write_timing_csv"]
