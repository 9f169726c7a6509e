"""
Application Configuration
=========================
Configuration management for Docucast: credentials, polling, retry and
playback settings.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

from docucast.app.events import SynthesisStyle
from docucast.concurrency import RetryPolicy
from docucast.voices import DEFAULT_VOICE_1, DEFAULT_VOICE_2

DEFAULT_BASE_URL = "https://api.play.ai/api/v1"
DEFAULT_ENV_FILE = ".env"


def _env_number(name: str, cast, default):
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass
class AppConfig:
    """
    Application configuration.

    Attributes:
        api_key: Play.ht API key (PLAYHT_API_KEY)
        user_id: Play.ht user id (PLAYHT_USER_ID)
        base_url: Remote API root
        client_name: Registered remote client implementation
        default_voice_1: First host voice
        default_voice_2: Second host voice
        default_style: Default synthesis style
        poll_interval: Seconds between status fetches
        poll_timeout: Upper bound for a single fetch, in seconds
        max_poll_failures: Consecutive failed fetches before giving up
        backoff_base: First retry delay, in seconds
        backoff_max: Longest retry delay, in seconds
        tick_interval: Playback position refresh period, in seconds
        skip_seconds: Jump size for skip back/forward
        cache_dir: Where downloaded audio is kept for playback
    """

    # Credentials
    api_key: str = ""
    user_id: str = ""
    base_url: str = DEFAULT_BASE_URL
    client_name: str = "playnote"

    # Conversion defaults
    default_voice_1: str = DEFAULT_VOICE_1
    default_voice_2: str = DEFAULT_VOICE_2
    default_style: SynthesisStyle = SynthesisStyle.PODCAST

    # Polling
    poll_interval: float = 5.0
    poll_timeout: float = 30.0
    max_poll_failures: int = 5
    backoff_base: float = 1.0
    backoff_max: float = 30.0

    # Playback
    tick_interval: float = 0.5
    skip_seconds: float = 15.0
    cache_dir: Path = field(default_factory=lambda: Path("cache") / "audio")

    def __post_init__(self):
        """Validate numeric settings."""
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if self.poll_timeout <= 0:
            raise ValueError("poll_timeout must be positive")
        if self.tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        if not isinstance(self.default_style, SynthesisStyle):
            self.default_style = SynthesisStyle(self.default_style)

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.user_id)

    @property
    def missing_credentials(self) -> list[str]:
        missing = []
        if not self.api_key:
            missing.append("PLAYHT_API_KEY")
        if not self.user_id:
            missing.append("PLAYHT_USER_ID")
        return missing

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_failures=self.max_poll_failures,
            base_delay=self.backoff_base,
            max_delay=self.backoff_max,
        )

    @classmethod
    def from_env(cls, env_file: Optional[str] = DEFAULT_ENV_FILE) -> "AppConfig":
        """
        Build config from environment variables.

        Values in `env_file` are loaded first without overriding variables
        already set in the process. Missing credentials are allowed here;
        they are reported when a conversion is submitted.

        Raises:
            ValueError: If a numeric variable is malformed
        """
        if env_file:
            from dotenv import load_dotenv

            load_dotenv(env_file, override=False)

        return cls(
            api_key=os.getenv("PLAYHT_API_KEY", "").strip(),
            user_id=os.getenv("PLAYHT_USER_ID", "").strip(),
            base_url=os.getenv("PLAYHT_BASE_URL") or DEFAULT_BASE_URL,
            poll_interval=_env_number("DOCUCAST_POLL_INTERVAL", float, 5.0),
            poll_timeout=_env_number("DOCUCAST_POLL_TIMEOUT", float, 30.0),
            max_poll_failures=_env_number("DOCUCAST_MAX_POLL_FAILURES", int, 5),
        )

    @classmethod
    def from_dict(cls, config_dict: dict) -> "AppConfig":
        """
        Create config from dictionary.

        Args:
            config_dict: Configuration dictionary (unknown keys are ignored)

        Returns:
            AppConfig instance
        """
        known = {f.name for f in fields(cls)}
        processed = {}

        for key, value in config_dict.items():
            if key not in known:
                continue
            if key == "cache_dir" and value is not None:
                processed[key] = Path(value)
            elif key == "default_style" and value is not None:
                processed[key] = SynthesisStyle(value)
            else:
                processed[key] = value

        return cls(**processed)

    def to_dict(self) -> dict:
        """
        Convert config to dictionary. Credentials are not included.

        Returns:
            Configuration dictionary
        """
        return {
            "base_url": self.base_url,
            "client_name": self.client_name,
            "default_voice_1": self.default_voice_1,
            "default_voice_2": self.default_voice_2,
            "default_style": self.default_style.value,
            "poll_interval": self.poll_interval,
            "poll_timeout": self.poll_timeout,
            "max_poll_failures": self.max_poll_failures,
            "backoff_base": self.backoff_base,
            "backoff_max": self.backoff_max,
            "tick_interval": self.tick_interval,
            "skip_seconds": self.skip_seconds,
            "cache_dir": str(self.cache_dir),
        }
