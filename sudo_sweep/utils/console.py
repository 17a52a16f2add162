"""Colorful console logging for sudo-sweep diagnostics."""

import logging
import re
import sys
from datetime import datetime

# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "white": "\033[37m",
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

# Log level colors
LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

# Component colors for logger names
COMPONENT_COLORS = {
    "sudo_sweep.services.session": COLORS["bright_magenta"],
    "sudo_sweep.services.classifier": COLORS["bright_blue"],
    "sudo_sweep.services.runner": COLORS["bright_cyan"],
    "sudo_sweep.services": COLORS["cyan"],
    "sudo_sweep.config": COLORS["green"],
    "default": COLORS["white"],
}

USER_HOST_PATTERN = re.compile(r"(\b[\w.\-]+@[\w.\-]+)")
DURATION_PATTERN = re.compile(r"(\d+\.?\d*s)\b")
OUTCOME_PATTERN = re.compile(r"\b(SUCCESS|LOGIN_FAILURE|SUDO_FAILURE)\b")

# Loggers that are only interesting when debugging the library itself
NOISY_LOGGERS = ["pexpect", "asyncio"]


class ColorfulFormatter(logging.Formatter):
    """Log formatter with colored levels, components and user@host highlighting."""

    def __init__(self, use_colors: bool = True) -> None:
        """Initialize the formatter.

        Args:
            use_colors: Whether to use ANSI colors.
        """
        super().__init__()
        self.use_colors = use_colors

    def _colorize(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _get_component_color(self, name: str) -> str:
        """Get color for a logger name/component."""
        for prefix, color in COMPONENT_COLORS.items():
            if prefix != "default" and name.startswith(prefix):
                return color
        return COMPONENT_COLORS["default"]

    def _format_timestamp(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created)
        return f"{dt.strftime('%H:%M:%S')}.{int(record.msecs):03d}"

    def _format_level(self, record: logging.LogRecord) -> str:
        """Format log level with color and fixed width."""
        level = record.levelname
        color = LEVEL_COLORS.get(level, COLORS["white"])
        return self._colorize(f"{level:<8}", color)

    def _format_component(self, record: logging.LogRecord) -> str:
        """Format component/logger name with color."""
        name = record.name
        if name.startswith("sudo_sweep."):
            name = name[len("sudo_sweep."):]
        color = self._get_component_color(record.name)
        return self._colorize(f"{name:<20}", color)

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as ``time | level | component | message``."""
        timestamp = self._colorize(self._format_timestamp(record), COLORS["dim"])
        level = self._format_level(record)
        component = self._format_component(record)
        sep = self._colorize("|", COLORS["dim"])
        message = self._highlight_message(record.getMessage())

        line = f"{timestamp} {sep} {level} {sep} {component} {sep} {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line

    def _highlight_message(self, message: str) -> str:
        """Highlight user@host targets, durations and outcomes."""
        if not self.use_colors:
            return message

        if "@" in message:
            message = USER_HOST_PATTERN.sub(
                f"{COLORS['bright_magenta']}\\1{COLORS['reset']}", message
            )

        message = DURATION_PATTERN.sub(
            f"{COLORS['bright_yellow']}\\1{COLORS['reset']}", message
        )

        def _outcome_color(match: "re.Match[str]") -> str:
            color = COLORS["bright_green"] if match.group(1) == "SUCCESS" else COLORS["bright_red"]
            return f"{color}{match.group(1)}{COLORS['reset']}"

        return OUTCOME_PATTERN.sub(_outcome_color, message)


def configure_logging(level: str = "WARNING", use_colors: bool = True) -> None:
    """Configure colorful stderr logging for the sudo_sweep package.

    Args:
        level: Log level name for the ``sudo_sweep`` logger
        use_colors: Whether to use ANSI colors (ignored when stderr is not a TTY)
    """
    if not sys.stderr.isatty():
        use_colors = False

    sweep_logger = logging.getLogger("sudo_sweep")
    level_value = getattr(logging, level.upper(), None)
    if not isinstance(level_value, int):
        level_value = logging.WARNING
    sweep_logger.setLevel(level_value)

    # Only add handler if not already configured
    if not sweep_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColorfulFormatter(use_colors=use_colors))
        sweep_logger.addHandler(handler)
        sweep_logger.propagate = False

    for noisy_logger in NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)
