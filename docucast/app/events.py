"""
Application State Contracts
===========================
Typed states for conversion jobs and audio playback, published to the
CLI/UI through state streams.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from docucast.errors import JobErrorKind, PlaybackError


class SynthesisStyle(str, Enum):
    """Narration styles offered by the remote service."""

    PODCAST = "podcast"
    EXECUTIVE_BRIEFING = "executive-briefing"
    CHILDRENS_STORY = "childrens-story"
    DEBATE = "debate"


class JobPhase(str, Enum):
    """Coarse conversion stages derived from raw status text."""

    QUEUED = "queued"
    PROCESSING = "processing"
    GENERATING = "generating"
    FINALIZING = "finalizing"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Idle:
    """No job has been submitted."""


@dataclass(frozen=True)
class Submitting:
    """Request sent, waiting for the remote job id."""


@dataclass(frozen=True)
class InProgress:
    """Remote job running."""

    phase: JobPhase
    progress: float
    eta_seconds: Optional[float] = None


@dataclass(frozen=True)
class Completed:
    audio_url: str


@dataclass(frozen=True)
class Failed:
    error_kind: JobErrorKind
    message: str


@dataclass(frozen=True)
class Cancelled:
    """Cancelled by the user."""


JobState = Union[Idle, Submitting, InProgress, Completed, Failed, Cancelled]


def is_terminal(state: JobState) -> bool:
    """True for states after which a job never changes again."""
    return isinstance(state, (Completed, Failed, Cancelled))


def is_active(state: JobState) -> bool:
    """True while a job occupies the controller."""
    return isinstance(state, (Submitting, InProgress))


class PlayState(str, Enum):
    """Audio playback lifecycle states."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    ENDED = "ended"


@dataclass(frozen=True)
class PlaybackState:
    """
    Snapshot of the playback controller.

    Attributes:
        play_state: Current lifecycle state
        position: Playback position in seconds
        duration: Asset duration in seconds, None until metadata loads
        rate: Playback speed multiplier (> 0)
        source: URL or path of the loaded audio
        error: Last load failure, cleared by the next load
    """

    play_state: PlayState = PlayState.IDLE
    position: float = 0.0
    duration: Optional[float] = None
    rate: float = 1.0
    source: Optional[str] = None
    error: Optional[PlaybackError] = None
