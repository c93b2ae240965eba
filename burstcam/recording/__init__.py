"""Burst exporters (MP4 video, TIFF stack)."""

from .exporter import Exporter, ExportResult, select_exporter
from .video import VideoExporter
from .tiff_stack import TiffStackExporter

__all__ = [
    "Exporter",
    "ExportResult",
    "select_exporter",
    "VideoExporter",
    "TiffStackExporter",
]
