# capture/__init__.py
"""Capture package: frame readers, push-style frame sources and sessions."""

from .reader import FrameSourceError, NullTransport, OpenCVTransport, ReaderConfig, ReaderFactory
from .session import MotionSession
from .video_source import FrameSource, PollingFrameSource

__all__ = [
    "FrameSource",
    "FrameSourceError",
    "MotionSession",
    "NullTransport",
    "OpenCVTransport",
    "PollingFrameSource",
    "ReaderConfig",
    "ReaderFactory",
]

__version__ = "0.1.0"
