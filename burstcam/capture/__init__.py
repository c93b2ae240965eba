"""Capture - frames, chunk metadata, buffering and the acquisition session.

Only the leaf modules are re-exported here; ``burstcam.config`` depends on
``capture.frame``, so ``session``/``state``/``observer`` are imported from
their own modules.
"""

from .frame import Frame, MetadataChunk, PixelFormat
from .chunk_decoder import REQUIRED_FIELDS, decode_chunk, decode_chunks
from .buffer import FrameBatch, FrameBuffer

__all__ = [
    "Frame",
    "MetadataChunk",
    "PixelFormat",
    "REQUIRED_FIELDS",
    "decode_chunk",
    "decode_chunks",
    "FrameBatch",
    "FrameBuffer",
]
