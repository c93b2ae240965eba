"""
Shared default values for burst acquisition.

Sensor numbers match a FLIR Blackfly S BFS-U3-16S2C running BayerRG8.
"""

from pathlib import Path

DEFAULT_SENSOR_SIZE = (1440, 1080)
DEFAULT_ROI_SIZE = (320, 240)
DEFAULT_BINNING = 1
DEFAULT_EXPOSURE_US = 1000.0
DEFAULT_GAIN_DB = 28.0
DEFAULT_PIXEL_FORMAT = "BayerRG8"
DEFAULT_TARGET_FRAMES = 1000
DEFAULT_OUTPUT_FPS = 20.0  # Playback rate of the saved video only
DEFAULT_ISP_ENABLE = False

# Device ranges reported by the Blackfly S
DEFAULT_EXPOSURE_RANGE_US = (12.0, 30_000_000.0)
DEFAULT_GAIN_RANGE_DB = (0.0, 47.9943)
DEFAULT_BINNING_RANGE = (1, 4)

DEFAULT_POLL_INTERVAL_MS = 50
DEFAULT_ACQUIRE_TIMEOUT_S = None  # Wait forever unless configured
DEFAULT_STRICT_METADATA = False
DEFAULT_PREVIEW_FPS = 15.0

DEFAULT_EXPORT_FORMAT = "mp4"
DEFAULT_VIDEO_BACKEND = "pyav"
DEFAULT_VIDEO_CODEC = "libx264"
DEFAULT_VIDEO_CRF = 12  # Near-lossless for x264
DEFAULT_VIDEO_QUALITY = 98  # OpenCV backend quality (0-100)
DEFAULT_TIFF_COMPRESSION_LEVEL = 6

DEFAULT_OUTPUT_DIR = Path("./data")
DEFAULT_LABEL = ""
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = None
