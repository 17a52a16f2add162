"""Per-host session outcomes and the run tally."""

from dataclasses import dataclass, field
from enum import Enum

from sudo_sweep.models.host import Host


class SessionOutcome(Enum):
    """Final outcome of one host session."""

    SUCCESS = "success"
    LOGIN_FAILURE = "login_failure"
    SUDO_FAILURE = "sudo_failure"

    @property
    def failed(self) -> bool:
        return self is not SessionOutcome.SUCCESS


@dataclass(frozen=True)
class SessionResult:
    """Result of driving one host to completion.

    ``reason`` is a short tag such as ``dns`` or ``timeout`` describing
    why the session ended. It is observational only.
    """

    host: Host
    outcome: SessionOutcome
    reason: str = "ok"
    attempts: int = 1


@dataclass
class RunTally:
    """Success/failure counters, only ever incremented."""

    success_count: int = 0
    failure_count: int = 0
    results: list[SessionResult] = field(default_factory=list, repr=False)

    def record(self, result: SessionResult) -> None:
        """Count a finished session."""
        if result.outcome.failed:
            self.failure_count += 1
        else:
            self.success_count += 1
        self.results.append(result)

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count

    @property
    def exit_code(self) -> int:
        """0 when every host succeeded, 1 when any host failed."""
        return 1 if self.failure_count > 0 else 0
