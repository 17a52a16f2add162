"""Host and credential data models."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credentials:
    """Shared login credentials, read-only for the whole run."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class Host:
    """A remote host taken from one line of the server list."""

    raw: str
    basename: str

    @classmethod
    def parse(cls, line: str) -> "Host":
        """Build a host from a server list line.

        Args:
            line: Bare or fully-qualified hostname, surrounding whitespace allowed

        Returns:
            Host with the basename (text before the first ".") derived
        """
        raw = line.strip()
        return cls(raw=raw, basename=raw.split(".", 1)[0])

    def shell_prompt(self, username: str) -> str:
        """Expected shell prompt once logged in as ``username``."""
        return f"{username}@{self.basename}:~$"

    def __str__(self) -> str:
        return self.raw
