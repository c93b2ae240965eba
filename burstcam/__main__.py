"""Command line entry point: ``python -m burstcam``.

Runs one burst end to end: open, preview, acquire, export, timing report.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from burstcam.capture.observer import LoggingObserver, SessionObserver
from burstcam.capture.session import AcquisitionSession
from burstcam.config import BurstCamConfig, DeviceLimits, EXPORT_FORMATS, load_config
from burstcam.core.config_manager import ConfigManager
from burstcam.core.logging_config import configure_logging
from burstcam.core.logging_utils import get_module_logger
from burstcam.diagnostics.timing import TimingDiagnostics, compute_timing, write_timing_csv
from burstcam.drivers.base import CameraDriver
from burstcam.drivers.loader import load_driver
from burstcam.errors import BurstCamError
from burstcam.recording.exporter import ExportResult, select_exporter
from burstcam.storage.sidecar import read_sidecar

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_CONFIG_PATH = PACKAGE_DIR / "config.txt"
DEFAULT_PREVIEW_SECONDS = 0.5

LOG_LEVELS: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

logger = get_module_logger("Main")


@dataclass(slots=True)
class BurstOutcome:
    result: ExportResult
    timing: TimingDiagnostics
    timing_path: Path


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="burstcam",
        description="Capture a bounded burst of frames and export it as MP4 or a TIFF stack",
    )
    parser.add_argument(
        "--format",
        choices=EXPORT_FORMATS,
        default=None,
        help="Artifact to write (default from config: mp4)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file layered over the bundled defaults",
    )
    parser.add_argument("--frames", type=int, default=None, help="Number of frames to capture")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory where artifacts will be stored",
    )
    parser.add_argument("--label", type=str, default=None, help="Optional suffix for artifact names")
    parser.add_argument(
        "--driver",
        type=str,
        default="simulated",
        help="Camera driver: 'simulated' or 'package.module:DriverClass'",
    )
    parser.add_argument(
        "--preview-seconds",
        type=float,
        default=DEFAULT_PREVIEW_SECONDS,
        help="How long to preview before starting the capture",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Abort if the burst has not arrived after this many seconds",
    )
    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS.keys()),
        default=None,
        help="Logging verbosity",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path to write logs (rotated)",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> BurstCamConfig:
    manager = ConfigManager()
    values: Dict[str, Any] = manager.read_config(DEFAULT_CONFIG_PATH)
    if args.config is not None:
        values.update(manager.read_config(args.config))
    overrides = {
        "export.format": args.format,
        "acquisition.target_frames": args.frames,
        "storage.output_dir": args.output_dir,
        "storage.label": args.label,
        "session.timeout_s": args.timeout,
        "logging.level": args.log_level,
        "logging.file": args.log_file,
    }
    return load_config(values, overrides)


def create_driver(spec: str, config: BurstCamConfig) -> CameraDriver:
    kwargs: Dict[str, Any] = {}
    if spec.strip().lower() == "simulated":
        kwargs["limits"] = DeviceLimits(sensor_size=config.acquisition.sensor_size)
    return load_driver(spec, **kwargs)


async def run_burst(
    config: BurstCamConfig,
    driver: CameraDriver,
    *,
    preview_seconds: float = DEFAULT_PREVIEW_SECONDS,
    observers: Iterable[SessionObserver] = (),
) -> BurstOutcome:
    """Open, preview, acquire, export and write the timing report."""

    session = AcquisitionSession.from_config(driver, config, observers=observers)
    exporter = select_exporter(
        config.export.format,
        config.export,
        frame_rate=config.acquisition.output_fps,
    )
    async with session:
        await session.start_preview()
        if preview_seconds > 0:
            await asyncio.sleep(preview_seconds)
        await session.acquire()
        result = await session.export(exporter)

    paths = session.paths
    record = await asyncio.to_thread(read_sidecar, paths.sidecar_path)
    timing = compute_timing(
        record["timestamp"],
        record["exposure_time"],
        record["frame_rate"],
        record["num_frames"],
    )
    timing_path = await asyncio.to_thread(write_timing_csv, paths.timing_path, timing)
    logger.info(timing.title())
    return BurstOutcome(result=result, timing=timing, timing_path=timing_path)


async def main_async(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    config = build_config(args)
    configure_logging(
        LOG_LEVELS.get(config.logging.level.lower(), logging.INFO),
        log_file=config.logging.file,
    )

    try:
        driver = create_driver(args.driver, config)
        outcome = await run_burst(
            config,
            driver,
            preview_seconds=args.preview_seconds,
            observers=[LoggingObserver()],
        )
    except BurstCamError as exc:
        logger.error("Burst failed: %s", exc)
        return 1

    logger.info("Artifact: %s", outcome.result.path)
    logger.info("Metadata: %s", outcome.result.sidecar_path)
    logger.info("Timing: %s", outcome.timing_path)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    return asyncio.run(main_async(argv))


if __name__ == "__main__":
    sys.exit(main())
