"""Protocol interfaces for the interactive SSH child process.

The session state machine only depends on these, so tests can drive it
with a scripted fake instead of a real ``pexpect.spawn``.

Usage Example:

    from sudo_sweep.protocols import ChildFactory

    def fake_spawn(command: str, args: list[str], timeout: int) -> FakeChild:
        return FakeChild(script)

    session = HostSession(host, credentials, "sudo true", spawn=fake_spawn)
"""

from collections.abc import Awaitable, Sequence
from re import Pattern
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class InteractiveChild(Protocol):
    """Subset of ``pexpect.spawn`` used by the session state machine."""

    before: Any
    after: Any

    def expect(
        self,
        pattern: Sequence[Pattern[str]],
        timeout: float = -1,
        async_: bool = False,
    ) -> Awaitable[int]:
        """Wait until one of ``pattern`` appears in the output.

        Returns:
            Index of the matching pattern (awaitable when ``async_`` is true)

        Raises:
            pexpect.TIMEOUT: If nothing matched within ``timeout`` seconds
            pexpect.EOF: If the child exited before a match
        """
        ...

    def sendline(self, s: str = "") -> int:
        """Send ``s`` followed by a line terminator."""
        ...

    def sendintr(self) -> None:
        """Send the interrupt character (Ctrl+C)."""
        ...

    def close(self, force: bool = True) -> None:
        """Close the pty and terminate the child."""
        ...


class ChildFactory(Protocol):
    """Callable that launches the SSH client."""

    def __call__(self, command: str, args: list[str], timeout: int) -> InteractiveChild:
        """Spawn ``command`` with ``args``.

        Raises:
            pexpect.ExceptionPexpect: If the command cannot be started
        """
        ...
