"""
Terminal Rendering Helpers
==========================
Formatting for job progress and playback position lines.
"""

from typing import Optional

from docucast.app.events import (
    Cancelled,
    Completed,
    Failed,
    Idle,
    InProgress,
    JobState,
    PlaybackState,
    Submitting,
)


def format_clock(seconds: Optional[float]) -> str:
    """Format a position as m:ss, or --:-- when unknown."""
    if seconds is None or seconds < 0:
        return "--:--"
    minutes = int(seconds) // 60
    secs = int(seconds) % 60
    return f"{minutes}:{secs:02d}"


def format_eta(seconds: Optional[float]) -> str:
    """Format an ETA as 'Xm Ys'."""
    if seconds is None or seconds < 0:
        return "unknown"
    minutes = int(seconds) // 60
    secs = int(seconds) % 60
    return f"{minutes}m {secs}s"


def progress_bar(progress: float, width: int = 20) -> str:
    filled = int(max(0.0, min(1.0, progress)) * width)
    return "[" + "#" * filled + "-" * (width - filled) + "]"


def describe_job_state(state: JobState) -> str:
    """One-line description of a job state."""
    if isinstance(state, Idle):
        return "idle"
    if isinstance(state, Submitting):
        return "submitting request..."
    if isinstance(state, InProgress):
        line = f"{progress_bar(state.progress)} {int(state.progress * 100):3d}% {state.phase.value}"
        if state.eta_seconds is not None:
            line += f" (estimated time: {format_eta(state.eta_seconds)})"
        return line
    if isinstance(state, Completed):
        return f"completed: {state.audio_url}"
    if isinstance(state, Failed):
        return f"failed ({state.error_kind.value}): {state.message}"
    if isinstance(state, Cancelled):
        return "cancelled"
    return repr(state)


def describe_playback_state(state: PlaybackState) -> str:
    """One-line transport readout: state, position / duration, rate."""
    line = (
        f"{state.play_state.value:<8} {format_clock(state.position)} / "
        f"{format_clock(state.duration)}  x{state.rate:g}"
    )
    if state.error is not None:
        line += f"  error: {state.error.message}"
    return line
