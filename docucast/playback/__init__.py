"""
Playback Module
===============
Audio transport for finished narrations.
"""

from .controller import PlaybackController
from .engine import MediaEngine

__all__ = ["PlaybackController", "MediaEngine"]
