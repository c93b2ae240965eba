"""Acquisition session: preview, bounded capture, drain, export.

State machine::

    IDLE --start_preview--> PREVIEWING --acquire--> ACQUIRING --> DRAINED --export--> CLOSED
      ^                         |                       |
      +------stop_preview-------+                       +--(fault/timeout)--> ABORTED

``close()`` is valid from every state except ACQUIRING and releases the
device once. Cancelling ``acquire()`` aborts the capture.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from pathlib import Path
from typing import Iterable, Optional

from burstcam.capture.buffer import FrameBuffer
from burstcam.capture.chunk_decoder import decode_chunks
from burstcam.capture.frame import Frame
from burstcam.capture.observer import ObserverGroup, SessionObserver
from burstcam.capture.state import PreviewStatus, SessionFacts, SessionState
from burstcam.config import AcquisitionConfig, BurstCamConfig
from burstcam.core.logging_utils import LoggerLike, ensure_structured_logger
from burstcam.defaults import DEFAULT_OUTPUT_DIR, DEFAULT_POLL_INTERVAL_MS, DEFAULT_PREVIEW_FPS
from burstcam.drivers.base import CameraDriver, FrameStream, StreamFrame
from burstcam.errors import (
    AcquisitionAborted,
    AcquisitionTimeout,
    DeviceError,
    InvalidStateTransition,
)
from burstcam.recording.exporter import Exporter, ExportResult
from burstcam.storage.session_paths import SessionPaths, resolve_session_paths
from burstcam.storage.sidecar import write_sidecar


class AcquisitionSession:
    """Owns one camera for one burst."""

    def __init__(
        self,
        driver: CameraDriver,
        config: AcquisitionConfig,
        *,
        output_dir: Path = DEFAULT_OUTPUT_DIR,
        label: str = "",
        paths: Optional[SessionPaths] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL_MS / 1000.0,
        timeout: Optional[float] = None,
        strict_metadata: bool = False,
        preview_fps: float = DEFAULT_PREVIEW_FPS,
        observers: Iterable[SessionObserver] = (),
        logger: LoggerLike = None,
    ) -> None:
        self._driver = driver
        self._config = config
        self._output_dir = Path(output_dir)
        self._label = label
        self._paths = paths
        self._poll_interval = max(0.0, float(poll_interval))
        self._timeout = timeout if timeout is None else float(timeout)
        self._strict_metadata = strict_metadata
        self._preview_fps = float(preview_fps)
        self._logger = ensure_structured_logger(logger, component="Session", fallback_name=__name__)
        self._observers = ObserverGroup(observers, logger=self._logger)

        self._state = SessionState.IDLE
        self._opened = False
        self._device_released = False
        self._buffer: Optional[FrameBuffer] = None
        self._facts: Optional[SessionFacts] = None
        self._result: Optional[ExportResult] = None

        self._stream: Optional[FrameStream] = None
        self._preview_slot: Optional[asyncio.Queue] = None
        self._preview_tasks: list[asyncio.Task] = []

    @classmethod
    def from_config(
        cls,
        driver: CameraDriver,
        config: BurstCamConfig,
        *,
        observers: Iterable[SessionObserver] = (),
        logger: LoggerLike = None,
    ) -> "AcquisitionSession":
        return cls(
            driver,
            config.acquisition,
            output_dir=config.storage.output_dir,
            label=config.storage.label,
            poll_interval=config.session.poll_interval_ms / 1000.0,
            timeout=config.session.timeout_s,
            strict_metadata=config.session.strict_metadata,
            preview_fps=config.session.preview_fps,
            observers=observers,
            logger=logger,
        )

    # ------------------------------------------------------------------
    # Properties

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def config(self) -> AcquisitionConfig:
        return self._config

    @property
    def facts(self) -> Optional[SessionFacts]:
        return self._facts

    @property
    def buffer(self) -> Optional[FrameBuffer]:
        return self._buffer

    @property
    def paths(self) -> Optional[SessionPaths]:
        return self._paths

    @property
    def result(self) -> Optional[ExportResult]:
        return self._result

    def add_observer(self, observer: SessionObserver) -> None:
        self._observers.add(observer)

    # ------------------------------------------------------------------
    # Context manager

    async def __aenter__(self) -> "AcquisitionSession":
        try:
            await self.open()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Commands

    async def open(self) -> None:
        """Validate the config against the device, then configure it."""

        if self._state is not SessionState.IDLE or self._opened:
            raise InvalidStateTransition("open", self._state)
        limits = await asyncio.to_thread(self._driver.limits)
        try:
            self._config.validate(limits)
        except Exception:
            self._logger.error("Configuration rejected; no device command issued")
            raise
        await asyncio.to_thread(self._driver.configure, self._config)
        self._opened = True
        self._logger.info(
            "Opened %s: roi=%s exposure=%.1fus gain=%.2fdB target=%d frames",
            getattr(self._driver, "name", type(self._driver).__name__),
            self._config.roi.as_position(),
            self._config.exposure_us,
            self._config.gain_db,
            self._config.target_frames,
        )

    async def start_preview(self) -> None:
        if self._state is not SessionState.IDLE or not self._opened:
            raise InvalidStateTransition("start preview", self._state)
        stream = await asyncio.to_thread(self._driver.start_preview)
        self._stream = stream
        self._preview_slot = asyncio.Queue(maxsize=1)
        self._preview_tasks = [
            asyncio.create_task(self._preview_reader(stream), name="burstcam-preview-reader"),
            asyncio.create_task(self._preview_notifier(), name="burstcam-preview-notifier"),
        ]
        self._set_state(SessionState.PREVIEWING)

    async def stop_preview(self) -> None:
        if self._state is not SessionState.PREVIEWING:
            raise InvalidStateTransition("stop preview", self._state)
        await self._stop_preview_tasks()
        self._set_state(SessionState.IDLE)

    async def acquire(self) -> FrameBuffer:
        """Capture ``target_frames`` frames and drain them into a buffer."""

        if self._state is not SessionState.PREVIEWING:
            raise InvalidStateTransition("acquire", self._state)
        await self._stop_preview_tasks()
        self._set_state(SessionState.ACQUIRING)
        target = self._config.target_frames

        try:
            await asyncio.to_thread(self._driver.start_capture, target)
            await self._wait_for_frames(target)
            buffer, chunks, timestamps = await self._drain(target)
            raw_facts = await asyncio.to_thread(self._driver.session_facts)
            facts = SessionFacts.from_driver(
                raw_facts,
                frame_count=len(buffer),
                fallback_roi=self._config.roi,
                fallback_isp=self._config.isp_enable,
            )
            paths = self._resolve_paths()
            await asyncio.to_thread(write_sidecar, paths.sidecar_path, chunks, timestamps, facts)
        except DeviceError as exc:
            self._logger.error("Device fault during acquisition: %s", exc)
            await self._abort()
            raise AcquisitionAborted(f"Acquisition aborted: {exc}") from exc
        except (Exception, asyncio.CancelledError) as exc:
            self._logger.error("Acquisition failed: %s", exc or type(exc).__name__)
            await self._abort()
            raise

        self._buffer = buffer
        self._facts = facts
        self._set_state(SessionState.DRAINED)
        return buffer

    async def export(self, exporter: Exporter) -> ExportResult:
        if self._state is not SessionState.DRAINED or self._buffer is None or self._facts is None:
            raise InvalidStateTransition("export", self._state)

        # Rejections here leave the buffer owned by the session.
        exporter.validate(self._buffer, self._facts)

        batch = self._buffer.consume()
        paths = self._resolve_paths()
        try:
            result = await exporter.export(batch, self._facts, paths)
        except (Exception, asyncio.CancelledError) as exc:
            self._logger.error("Export failed: %s", exc or type(exc).__name__)
            await self._release_device()
            self._set_state(SessionState.CLOSED)
            raise
        await self._release_device()
        self._result = result
        self._set_state(SessionState.CLOSED)
        self._observers.on_complete(result)
        return result

    async def close(self) -> None:
        """Release the camera. A running ``acquire()`` must finish or be cancelled first."""

        if self._state is SessionState.CLOSED:
            return
        if self._state is SessionState.ACQUIRING:
            raise InvalidStateTransition("close", self._state)
        await self._stop_preview_tasks()
        await self._release_device()
        self._set_state(SessionState.CLOSED)

    # ------------------------------------------------------------------
    # Acquisition internals

    async def _wait_for_frames(self, target: int) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        while True:
            available = await asyncio.to_thread(self._driver.frames_available)
            self._observers.on_progress(min(available, target), target)
            if available >= target:
                self._logger.debug("Target reached after %.3fs", loop.time() - started)
                return
            if self._timeout is not None and loop.time() - started >= self._timeout:
                raise AcquisitionTimeout(
                    f"Only {available}/{target} frames after {self._timeout:.2f}s"
                )
            await asyncio.sleep(self._poll_interval)

    async def _drain(self, target: int):
        result = await asyncio.to_thread(self._driver.drain)
        counts = {len(result.frames), len(result.timestamps), len(result.metadata)}
        self._logger.info("Drained %d frames (target %d)", len(result.frames), target)
        if counts != {target}:
            raise AcquisitionAborted(
                f"Drain returned frames={len(result.frames)} timestamps={len(result.timestamps)} "
                f"metadata={len(result.metadata)}, expected {target}"
            )

        chunks = decode_chunks(result.metadata, strict=self._strict_metadata, logger=self._logger)
        timestamps = [float(t) for t in result.timestamps]
        buffer = FrameBuffer(target)
        for index, (data, timestamp, chunk) in enumerate(zip(result.frames, timestamps, chunks)):
            buffer.append(Frame(index=index, data=data, timestamp=timestamp, chunk=chunk))
        return buffer, chunks, timestamps

    async def _abort(self) -> None:
        self._buffer = None
        self._facts = None
        await self._release_device()
        self._set_state(SessionState.ABORTED)

    async def _release_device(self) -> None:
        if self._device_released:
            return
        self._device_released = True
        for command in (self._driver.stop, self._driver.close):
            try:
                await asyncio.to_thread(command)
            except DeviceError as exc:
                self._logger.warning("%s failed while releasing camera: %s", command.__name__, exc)
        self._logger.debug("Camera released")

    def _resolve_paths(self) -> SessionPaths:
        if self._paths is None:
            self._paths = resolve_session_paths(self._output_dir, label=self._label)
        return self._paths

    # ------------------------------------------------------------------
    # Preview internals

    async def _preview_reader(self, stream: FrameStream) -> None:
        """Pull frames off the device; only the newest one is kept."""

        try:
            while True:
                frame = await asyncio.to_thread(stream.read)
                if frame is None:
                    self._logger.debug("Preview stream ended")
                    return
                self._offer_preview(frame)
        except asyncio.CancelledError:
            raise
        except DeviceError as exc:
            self._logger.error("Preview stream failed: %s", exc)
            self._observers.on_preview(
                PreviewStatus(timestamp=time.monotonic(), status="error", resolution=(0, 0), frame_rate=0.0)
            )

    def _offer_preview(self, frame: StreamFrame) -> None:
        slot = self._preview_slot
        if slot is None:
            return
        if slot.full():
            with contextlib.suppress(asyncio.QueueEmpty):
                slot.get_nowait()
        slot.put_nowait(frame)

    async def _preview_notifier(self) -> None:
        slot = self._preview_slot
        if slot is None:
            return
        min_interval = 1.0 / self._preview_fps if self._preview_fps > 0 else 0.0
        last_timestamp: Optional[float] = None
        fps = 0.0
        while True:
            frame = await slot.get()
            if last_timestamp is not None:
                delta = frame.timestamp - last_timestamp
                if delta > 0:
                    instant = 1.0 / delta
                    fps = instant if fps == 0.0 else 0.8 * fps + 0.2 * instant
            last_timestamp = frame.timestamp
            height, width = frame.data.shape[:2]
            self._observers.on_preview(
                PreviewStatus(
                    timestamp=frame.timestamp,
                    status="previewing",
                    resolution=(int(width), int(height)),
                    frame_rate=fps,
                )
            )
            del frame
            if min_interval:
                await asyncio.sleep(min_interval)

    async def _stop_preview_tasks(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                await asyncio.to_thread(stream.close)
            except DeviceError as exc:
                self._logger.warning("Closing preview stream failed: %s", exc)
        tasks, self._preview_tasks = self._preview_tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._preview_slot = None

    def _set_state(self, new: SessionState) -> None:
        old = self._state
        if old is new:
            return
        self._state = new
        self._logger.debug("State %s -> %s", old.name, new.name)
        self._observers.on_state_change(old, new)


__all__ = ["AcquisitionSession"]
