"""
Simulated camera driver.

- Purpose: deterministic camera source for development and tests.
- Frames: RGB gradient images sized to the effective ROI, 8 or 16 bit
  depending on the pixel format, monotonic timestamps at a configurable
  acquisition rate with optional jitter.
- Fault injection: transport error or disconnect after N frames, a stall
  that never reaches the target, malformed chunk records, short drains.
- Binning: when the requested ROI does not fit the binned sensor the
  device falls back to the full binned sensor, like the real camera.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Collection, Dict, List, Optional

import numpy as np

from burstcam.capture.frame import PixelFormat
from burstcam.config import AcquisitionConfig, DeviceLimits, Roi
from burstcam.core.logging_utils import LoggerLike, ensure_structured_logger
from burstcam.drivers.base import CameraDriver, DrainResult, FrameStream, StreamFrame
from burstcam.errors import DeviceDisconnected, DeviceError


class SimulatedStream(FrameStream):
    """Preview stream that paces itself at ``frame_rate``."""

    def __init__(self, driver: "SimulatedDriver", frame_rate: float, max_frames: Optional[int] = None) -> None:
        self._driver = driver
        self._interval = 1.0 / frame_rate if frame_rate > 0 else 0.0
        self._frame_rate = frame_rate
        self._max_frames = max_frames
        self._count = 0
        self._closed = threading.Event()

    @property
    def frame_rate(self) -> float:
        return self._frame_rate

    def read(self) -> Optional[StreamFrame]:
        if self._closed.is_set():
            return None
        if self._max_frames is not None and self._count >= self._max_frames:
            return None
        if self._interval and self._closed.wait(self._interval):
            return None
        data = self._driver.render_frame(self._count)
        self._count += 1
        return StreamFrame(data=data, timestamp=time.monotonic())

    def close(self) -> None:
        self._closed.set()


class SimulatedDriver(CameraDriver):

    name = "simulated"

    def __init__(
        self,
        *,
        limits: Optional[DeviceLimits] = None,
        frame_rate: float = 500.0,
        jitter_s: float = 0.0,
        frames_per_poll: Optional[int] = None,
        preview_rate: float = 30.0,
        preview_max_frames: Optional[int] = None,
        fault_after: Optional[int] = None,
        disconnect_after: Optional[int] = None,
        stall_at: Optional[int] = None,
        malformed_frames: Collection[int] = (),
        drain_shortfall: int = 0,
        color_space: str = "RGB",
        seed: int = 0,
        clock: Callable[[], float] = time.monotonic,
        logger: LoggerLike = None,
    ) -> None:
        self._limits = limits or DeviceLimits()
        self.frame_rate = float(frame_rate)
        self.jitter_s = float(jitter_s)
        self.frames_per_poll = frames_per_poll
        self.preview_rate = float(preview_rate)
        self.preview_max_frames = preview_max_frames
        self.fault_after = fault_after
        self.disconnect_after = disconnect_after
        self.stall_at = stall_at
        self.malformed_frames = frozenset(malformed_frames)
        self.drain_shortfall = int(drain_shortfall)
        self.color_space = color_space
        self._rng = np.random.default_rng(seed)
        self._clock = clock
        self._logger = ensure_structured_logger(logger, component="SimulatedDriver", fallback_name=__name__)

        self.commands: List[str] = []
        self.stop_calls = 0
        self.close_calls = 0
        self.config: Optional[AcquisitionConfig] = None
        self.effective_roi: Optional[Roi] = None

        self._stream: Optional[SimulatedStream] = None
        self._target = 0
        self._available = 0
        self._capture_started_at: Optional[float] = None
        self._timestamps: Optional[np.ndarray] = None
        self._closed = False

    # ------------------------------------------------------------------
    # CameraDriver

    def limits(self) -> DeviceLimits:
        return self._limits

    def configure(self, config: AcquisitionConfig) -> None:
        self._check_open("configure")
        self.commands.append("configure")
        self.config = config
        self.effective_roi = self._resolve_roi(config)
        self._logger.debug(
            "Configured roi=%s binning=%d exposure=%.1fus gain=%.2fdB format=%s",
            self.effective_roi.as_position(),
            config.binning,
            config.exposure_us,
            config.gain_db,
            config.pixel_format.value,
        )

    def start_preview(self) -> FrameStream:
        self._check_open("start_preview")
        self._require_config()
        self.commands.append("start_preview")
        if self._stream is not None:
            self._stream.close()
        self._stream = SimulatedStream(self, self.preview_rate, self.preview_max_frames)
        return self._stream

    def start_capture(self, count: int) -> None:
        self._check_open("start_capture")
        self._require_config()
        self.commands.append("start_capture")
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        self._target = int(count)
        self._available = 0
        self._capture_started_at = self._clock()
        self._timestamps = self._make_timestamps(self._target, self._capture_started_at)
        self._logger.info("Simulated capture of %d frames at %.1f fps", self._target, self.frame_rate)

    def frames_available(self) -> int:
        self._check_open("frames_available")
        if self._capture_started_at is None:
            return 0
        if self.frames_per_poll is not None:
            candidate = self._available + int(self.frames_per_poll)
        else:
            elapsed = self._clock() - self._capture_started_at
            candidate = int(elapsed * self.frame_rate)
        candidate = min(candidate, self._target)
        if self.stall_at is not None:
            candidate = min(candidate, int(self.stall_at))
        if self.disconnect_after is not None and candidate >= self.disconnect_after:
            self._logger.warning("Simulating disconnect after %d frames", self.disconnect_after)
            raise DeviceDisconnected(f"Camera disconnected after {self.disconnect_after} frames")
        if self.fault_after is not None and candidate >= self.fault_after:
            self._logger.warning("Simulating transport fault after %d frames", self.fault_after)
            raise DeviceError(f"Transport fault after {self.fault_after} frames")
        self._available = candidate
        return self._available

    def drain(self) -> DrainResult:
        self._check_open("drain")
        self.commands.append("drain")
        count = max(0, self._available - self.drain_shortfall)
        timestamps = self._timestamps if self._timestamps is not None else np.zeros(0)
        frames = [self.render_frame(i) for i in range(count)]
        records = [self._chunk_record(i) for i in range(count)]
        result = DrainResult(frames=frames, timestamps=[float(t) for t in timestamps[:count]], metadata=records)
        self._available = 0
        self._capture_started_at = None
        return result

    def session_facts(self) -> Dict[str, Any]:
        config = self._require_config()
        roi = self.effective_roi or config.roi
        return {
            "color_space": self.color_space,
            "frame_rate": self._measured_rate(),
            "isp_enable": config.isp_enable,
            "roi": roi.as_position(),
            "binning": config.binning,
        }

    def stop(self) -> None:
        self.stop_calls += 1
        self.commands.append("stop")
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        self._capture_started_at = None

    def close(self) -> None:
        self.close_calls += 1
        self.commands.append("close")
        self._closed = True
        self._logger.debug("Simulated camera closed")

    # ------------------------------------------------------------------
    # Frame synthesis

    def render_frame(self, index: int) -> np.ndarray:
        """Deterministic H x W x 3 gradient; frame ``index`` shifts the pattern."""

        config = self._require_config()
        roi = self.effective_roi or config.roi
        dtype = config.pixel_format.dtype
        top = np.iinfo(dtype).max
        rows = np.arange(roi.height, dtype=np.int64)[:, None]
        cols = np.arange(roi.width, dtype=np.int64)[None, :]
        scale = 257 if config.pixel_format.bit_depth == 16 else 1
        base = (rows + cols + index) % 256
        channels = [base, (base + 85) % 256, (base + 170) % 256]
        image = np.stack(channels, axis=-1) * scale
        return np.clip(image, 0, top).astype(dtype)

    def _chunk_record(self, index: int) -> Dict[str, Any]:
        config = self._require_config()
        chunk: Dict[str, Any] = {
            "FrameID": index,
            "ExposureTime": float(config.exposure_us),
            "Gain": float(config.gain_db),
            "BlackLevel": 0.0,
            "PixelFormat": config.pixel_format.value,
        }
        if index in self.malformed_frames:
            chunk.pop("Gain")
            chunk["ExposureTime"] = "n/a"
        return {"ChunkData": chunk}

    def _make_timestamps(self, count: int, start: float) -> np.ndarray:
        period = 1.0 / self.frame_rate if self.frame_rate > 0 else 0.0
        stamps = start + np.arange(count, dtype=np.float64) * period
        if self.jitter_s > 0 and count:
            stamps = stamps + self._rng.uniform(0.0, self.jitter_s, size=count)
            stamps = np.maximum.accumulate(stamps)
        return stamps

    def _measured_rate(self) -> float:
        stamps = self._timestamps
        if stamps is None or len(stamps) < 2:
            return self.frame_rate
        span = float(stamps[-1] - stamps[0])
        if span <= 0:
            return self.frame_rate
        return (len(stamps) - 1) / span

    def _resolve_roi(self, config: AcquisitionConfig) -> Roi:
        sensor_w, sensor_h = self._limits.sensor_size
        binned_w, binned_h = sensor_w // config.binning, sensor_h // config.binning
        roi = config.roi
        if roi.x + roi.width <= binned_w and roi.y + roi.height <= binned_h:
            return roi
        self._logger.warning(
            "ROI %s does not fit %dx%d binned sensor; using full sensor",
            roi.as_position(),
            binned_w,
            binned_h,
        )
        return Roi(0, 0, binned_w, binned_h)

    def _require_config(self) -> AcquisitionConfig:
        if self.config is None:
            raise DeviceError("Camera is not configured")
        return self.config

    def _check_open(self, command: str) -> None:
        if self._closed:
            raise DeviceError(f"Cannot {command}: camera is closed")


__all__ = ["SimulatedDriver", "SimulatedStream"]
