"""
Media Engine Interface
======================
Abstract base class for audio engines driven by the PlaybackController.
Keeps the playback state machine testable without audio hardware.
"""

from abc import ABC, abstractmethod


class MediaEngine(ABC):
    """
    Abstract base class for media engines.

    Positions and durations are in seconds.

    Implementations:
        - SoundDeviceEngine: soundfile decoding + sounddevice output
    """

    @abstractmethod
    async def load(self, source: str) -> float:
        """
        Open the asset and resolve its metadata.

        Returns:
            Duration in seconds

        Raises:
            AudioLoadError: If the asset cannot be opened or decoded
        """
        pass

    @abstractmethod
    def play(self) -> None:
        """Start or resume output from the current position."""
        pass

    @abstractmethod
    def pause(self) -> None:
        """Stop output, keeping the current position."""
        pass

    @abstractmethod
    def seek(self, seconds: float) -> None:
        """Move the playhead."""
        pass

    @abstractmethod
    def set_rate(self, rate: float) -> None:
        """Change the playback speed multiplier."""
        pass

    @abstractmethod
    def current_position(self) -> float:
        """True playhead position."""
        pass

    @property
    @abstractmethod
    def is_playing(self) -> bool:
        """False once output stopped, including at the end of the asset."""
        pass

    def release(self) -> None:
        """Free the media handle."""
        return None
