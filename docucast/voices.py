"""
Host Voices
===========
PlayNote host presets for two-voice narration, plus playback speed presets.

Any voice id the service accepts may be used; presets only add the display
name and gender the create request can carry.
"""

from dataclasses import dataclass
from typing import Literal, Optional


@dataclass(frozen=True)
class Voice:
    """A PlayNote host."""
    id: str
    name: str
    gender: Literal["male", "female"]
    accent: Literal["american", "british", "australian"]
    style: str


VOICES = {
    voice.id: voice
    for voice in (
        Voice("angelo", "Angelo", "male", "american", "laid-back podcast host"),
        Voice("nia", "Nia", "female", "american", "upbeat co-host"),
        Voice("deedee", "Deedee", "female", "american", "easygoing storyteller"),
        Voice("jennifer", "Jennifer", "female", "american", "newsroom anchor"),
        Voice("briggs", "Briggs", "male", "american", "measured lecturer"),
        Voice("samara", "Samara", "female", "british", "crisp interviewer"),
    )
}

DEFAULT_VOICE_1 = "angelo"
DEFAULT_VOICE_2 = "nia"


def get_voice(voice_id: str) -> Optional[Voice]:
    """Preset for `voice_id`, or None for custom ids."""
    return VOICES.get(voice_id.lower())


# Named playback rates accepted by `docucast play --rate`
SPEED_PRESETS = {
    "slow": 0.75,
    "normal": 1.0,
    "fast": 1.25,
    "faster": 1.5,
    "double": 2.0,
}
