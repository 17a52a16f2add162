"""Data models for sudo-sweep."""

from sudo_sweep.models.host import Credentials, Host
from sudo_sweep.models.outcome import RunTally, SessionOutcome, SessionResult

__all__ = [
    "Credentials",
    "Host",
    "RunTally",
    "SessionOutcome",
    "SessionResult",
]
