"""Run settings from environment variables.

Centralized environment variable parsing and validation. Command line
flags are layered on top with ``Settings.with_overrides``.
"""

import logging
import os
import shlex
from dataclasses import dataclass, field, replace
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 900

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Run settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Remote command
    command: str = field(default="")

    # Session behaviour
    timeout: int = field(default=DEFAULT_TIMEOUT)
    workers: int = field(default=1)
    retries: int = field(default=0)

    # SSH client
    ssh_binary: str = field(default="ssh")
    ssh_options: tuple[str, ...] = field(default_factory=tuple)

    # Logging
    log_level: str = field(default="WARNING")
    log_colors: bool = field(default=True)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from SUDO_SWEEP_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        workers = cls._get_positive_int("SUDO_SWEEP_WORKERS", 1)
        timeout = cls._get_positive_int("SUDO_SWEEP_TIMEOUT", DEFAULT_TIMEOUT)

        log_level = os.getenv("SUDO_SWEEP_LOG_LEVEL", "WARNING").upper()
        if log_level not in LOG_LEVELS:
            logger.warning(
                "Invalid SUDO_SWEEP_LOG_LEVEL: %s, using default WARNING", log_level
            )
            log_level = "WARNING"

        return cls(
            command=os.getenv("SUDO_SWEEP_COMMAND", "").strip(),
            timeout=timeout,
            workers=workers,
            retries=max(0, cls._get_int("SUDO_SWEEP_RETRIES", 0)),
            ssh_binary=os.getenv("SUDO_SWEEP_SSH_BINARY", "ssh"),
            ssh_options=tuple(shlex.split(os.getenv("SUDO_SWEEP_SSH_OPTIONS", ""))),
            log_level=log_level,
            log_colors=cls._get_bool("SUDO_SWEEP_LOG_COLORS", True),
        )

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @classmethod
    def _get_positive_int(cls, key: str, default: int) -> int:
        """Get an integer that must be > 0, falling back to the default."""
        value = cls._get_int(key, default)
        if value <= 0:
            logger.warning("%s must be > 0, got %d. Using default: %d", key, value, default)
            return default
        return value

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")
