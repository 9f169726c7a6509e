"""
Application Module
==================
Conversion job control and the state contracts shared with front ends.

Key Components:
    - ConversionJobController: Submits, polls and cancels remote jobs
    - ProgressMapper: Raw status text -> phase, progress, ETA
    - AppConfig: Application configuration
"""

from .config import AppConfig
from .controller import ConversionJobController, ConversionRequest, JobHandle, ProgressTracker
from .events import (
    Cancelled,
    Completed,
    Failed,
    Idle,
    InProgress,
    JobPhase,
    JobState,
    PlaybackState,
    PlayState,
    Submitting,
    SynthesisStyle,
)
from .progress import PHASE_TABLE, PhaseRule, PhaseUpdate, ProgressMapper

__all__ = [
    "AppConfig",
    "ConversionJobController",
    "ConversionRequest",
    "JobHandle",
    "ProgressTracker",
    "Cancelled",
    "Completed",
    "Failed",
    "Idle",
    "InProgress",
    "JobPhase",
    "JobState",
    "PlaybackState",
    "PlayState",
    "Submitting",
    "SynthesisStyle",
    "PHASE_TABLE",
    "PhaseRule",
    "PhaseUpdate",
    "ProgressMapper",
]
