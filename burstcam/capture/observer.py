"""Session event callbacks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List

from burstcam.capture.state import PreviewStatus, SessionState
from burstcam.core.logging_utils import LoggerLike, ensure_structured_logger

if TYPE_CHECKING:
    from burstcam.recording.exporter import ExportResult


class SessionObserver:
    """No-op base; override the callbacks you care about.

    Callbacks run on the event loop and must not block.
    """

    def on_state_change(self, old: SessionState, new: SessionState) -> None:
        pass

    def on_preview(self, status: PreviewStatus) -> None:
        pass

    def on_progress(self, available: int, target: int) -> None:
        pass

    def on_complete(self, result: "ExportResult") -> None:
        pass


class LoggingObserver(SessionObserver):
    """Writes session events to the log. Preview is logged once per second at most."""

    def __init__(self, logger: LoggerLike = None, *, progress_step: float = 0.1) -> None:
        self._logger = ensure_structured_logger(logger, component="Session", fallback_name=__name__)
        self._progress_step = max(0.0, float(progress_step))
        self._last_fraction = -1.0
        self._last_preview_log = float("-inf")

    def on_state_change(self, old: SessionState, new: SessionState) -> None:
        self._logger.info("State %s -> %s", old.name, new.name)
        if new is SessionState.ACQUIRING:
            self._last_fraction = -1.0

    def on_preview(self, status: PreviewStatus) -> None:
        if status.timestamp - self._last_preview_log < 1.0:
            return
        self._last_preview_log = status.timestamp
        width, height = status.resolution
        self._logger.debug(
            "Preview %s %dx%d @ %.1f fps", status.status, width, height, status.frame_rate
        )

    def on_progress(self, available: int, target: int) -> None:
        fraction = available / target if target else 1.0
        if fraction >= 1.0 or fraction - self._last_fraction >= self._progress_step:
            self._last_fraction = fraction
            self._logger.info("Captured %d/%d frames", available, target)

    def on_complete(self, result: "ExportResult") -> None:
        self._logger.info(
            "Exported %d frames to %s (%s)", result.frame_count, result.path, result.kind
        )


class ObserverGroup(SessionObserver):
    """Fans events out to several observers; one failing observer does not stop the rest."""

    def __init__(self, observers: Iterable[SessionObserver] = (), logger: LoggerLike = None) -> None:
        self._observers: List[SessionObserver] = list(observers)
        self._logger = ensure_structured_logger(logger, component="Observers", fallback_name=__name__)

    def add(self, observer: SessionObserver) -> None:
        self._observers.append(observer)

    def remove(self, observer: SessionObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def __len__(self) -> int:
        return len(self._observers)

    def _dispatch(self, method: str, *args) -> None:
        for observer in list(self._observers):
            try:
                getattr(observer, method)(*args)
            except Exception:
                self._logger.exception("Observer %r failed in %s", observer, method)

    def on_state_change(self, old: SessionState, new: SessionState) -> None:
        self._dispatch("on_state_change", old, new)

    def on_preview(self, status: PreviewStatus) -> None:
        self._dispatch("on_preview", status)

    def on_progress(self, available: int, target: int) -> None:
        self._dispatch("on_progress", available, target)

    def on_complete(self, result: "ExportResult") -> None:
        self._dispatch("on_complete", result)


__all__ = ["LoggingObserver", "ObserverGroup", "SessionObserver"]
