"""Pre-flight errors for sudo-sweep.

Per-host failures are not exceptions: they are reported as
``SessionOutcome`` values so one host can never abort the run.
"""


class SudoSweepError(Exception):
    """Base class for errors that stop a run before any host is processed."""


class UsageError(SudoSweepError):
    """Invalid invocation (missing server list, missing command)."""


class MissingCredential(SudoSweepError):
    """Username or password was empty or not provided."""

    def __init__(self, field: str):
        """Initialize missing credential error.

        Args:
            field: Name of the credential that was missing
        """
        self.field = field
        super().__init__(f"No {field} provided")


class ServerListUnreadable(SudoSweepError):
    """Server list file could not be opened."""

    def __init__(self, path: str, original_error: Exception):
        """Initialize server list error.

        Args:
            path: Path of the server list
            original_error: Original exception raised while opening it
        """
        self.path = path
        self.original_error = original_error
        super().__init__(f"Cannot read server list {path}: {original_error}")
