"""Per-host interactive session driver.

States::

    Spawning -> Authenticating -> [PasswordPending] -> Executing
             -> [SudoPending] -> Closing -> Done(outcome)

Each wait is a pexpect ``expect`` against the current context's rule
patterns. The consumed text is then re-classified so the declared rule
order, not the position in the stream, decides which rule fires.
"""

import logging
import sys
import time
from collections.abc import Sequence
from typing import TextIO

import pexpect

from sudo_sweep.config import DEFAULT_TIMEOUT
from sudo_sweep.models import Credentials, Host, SessionOutcome, SessionResult
from sudo_sweep.protocols import ChildFactory, InteractiveChild
from sudo_sweep.services.classifier import Action, Context, PromptClassifier, Rule
from sudo_sweep.utils.validation import InvalidHostError, validate_host

logger = logging.getLogger(__name__)

# Contexts in which an unexpected end means we never got a shell
LOGIN_CONTEXTS = frozenset({Context.LOGIN, Context.PASSWORD})

# Failures worth another attempt: nothing was authenticated yet
TRANSIENT_REASONS = frozenset({"connect-timeout", "unreachable", "login-timeout", "login-eof"})

FAILURE_MESSAGES = {
    SessionOutcome.LOGIN_FAILURE: "Unable to login on {host}",
    SessionOutcome.SUDO_FAILURE: "Unable to sudo on {host}",
}


def spawn_ssh(command: str, args: list[str], timeout: int) -> pexpect.spawn:
    """Launch the SSH client under a pty.

    Args:
        command: SSH client binary
        args: Client arguments, destination last
        timeout: Default expect timeout in seconds

    Returns:
        Running pexpect child
    """
    return pexpect.spawn(
        command,
        args,
        timeout=timeout,
        encoding="utf-8",
        codec_errors="replace",
    )


class HostSession:
    """Drives one host from spawn to a single ``SessionResult``."""

    def __init__(
        self,
        host: Host,
        credentials: Credentials,
        command: str,
        *,
        spawn: ChildFactory = spawn_ssh,
        timeout: int = DEFAULT_TIMEOUT,
        ssh_binary: str = "ssh",
        ssh_options: Sequence[str] = (),
        classifier: PromptClassifier | None = None,
    ) -> None:
        """Initialize a session.

        Args:
            host: Target host
            credentials: Shared login credentials
            command: Remote command line to run once logged in
            spawn: Factory that launches the SSH client
            timeout: Seconds allowed for every wait-for-pattern step
            ssh_binary: SSH client executable
            ssh_options: Extra client arguments placed before the destination
            classifier: Prompt rules, built for this user/host when omitted
        """
        self.host = host
        self.credentials = credentials
        self.command = command
        self.timeout = timeout
        self.ssh_binary = ssh_binary
        self.ssh_options = list(ssh_options)
        self.classifier = classifier or PromptClassifier(credentials.username, host)
        self._spawn = spawn
        self.context = Context.LOGIN

    @property
    def destination(self) -> str:
        return f"{self.credentials.username}@{self.host.raw}"

    async def run(self) -> SessionResult:
        """Run the session to completion.

        Per-host failures are returned, never raised. Cancellation still
        propagates, after the child has been closed.

        Returns:
            Result carrying exactly one outcome
        """
        try:
            validate_host(self.host.raw)
        except InvalidHostError as e:
            logger.warning("Skipping invalid host %r: %s", self.host.raw, e)
            return self._result(SessionOutcome.LOGIN_FAILURE, "invalid-host")

        self.context = Context.LOGIN
        started = time.monotonic()
        logger.info("Opening session to %s", self.destination)

        try:
            child = self._spawn(
                self.ssh_binary,
                [*self.ssh_options, self.destination],
                self.timeout,
            )
        except (pexpect.ExceptionPexpect, OSError) as e:
            logger.error("Cannot start %s for %s: %s", self.ssh_binary, self.host.raw, e)
            return self._result(SessionOutcome.LOGIN_FAILURE, "spawn-error")

        try:
            result = await self._drive(child)
        except (pexpect.ExceptionPexpect, OSError) as e:
            logger.error(
                "Session to %s broke in %s context: %s", self.host.raw, self.context.value, e
            )
            result = self._unmatched("error")
        finally:
            self._close(child)

        logger.info(
            "Session to %s finished: %s (%s) in %.2fs",
            self.destination,
            result.outcome.name,
            result.reason,
            time.monotonic() - started,
        )
        return result

    async def _drive(self, child: InteractiveChild) -> SessionResult:
        """Follow rule transitions until a terminal outcome is reached."""
        while True:
            try:
                rule = await self._expect(child)
            except pexpect.TIMEOUT:
                return self._unmatched("timeout")
            except pexpect.EOF:
                return self._unmatched("eof")

            self._perform(child, rule.action)

            if rule.is_terminal:
                return self._result(rule.outcome, rule.reason)

            if rule.next_context is not None:
                logger.debug(
                    "%s: %s -> %s",
                    self.host.raw,
                    self.context.value,
                    rule.next_context.value,
                )
                self.context = rule.next_context

    async def _expect(self, child: InteractiveChild) -> Rule:
        """Wait for the next recognised prompt in the current context."""
        patterns = self.classifier.patterns(self.context)
        index = await child.expect(patterns, timeout=self.timeout, async_=True)

        text = _as_text(child.before) + _as_text(child.after)
        rule = self.classifier.classify(text, self.context)
        if rule is None:
            rule = self.classifier.rules(self.context)[index]
        return rule

    def _perform(self, child: InteractiveChild, action: Action) -> None:
        """Send whatever ``action`` requires to the child."""
        if action is Action.SEND_YES:
            child.sendline("yes")
        elif action is Action.SEND_PASSWORD:
            child.sendline(self.credentials.password)
        elif action is Action.SEND_COMMAND:
            logger.debug("%s: running command", self.host.raw)
            child.sendline(self.command)
        elif action is Action.SEND_EXIT:
            child.sendline("exit")
        elif action is Action.INTERRUPT:
            child.sendintr()

    def _unmatched(self, kind: str) -> SessionResult:
        """Map a timeout, end-of-file or pty error in the current context to an outcome."""
        logger.warning(
            "%s: %s while waiting in %s context", self.host.raw, kind, self.context.value
        )
        if self.context is Context.CLOSING:
            # The remote side hung up after exit: the session is torn down.
            if kind == "eof":
                return self._result(SessionOutcome.SUCCESS, "ok")
            return self._result(SessionOutcome.SUDO_FAILURE, f"close-{kind}")

        reason = f"{self.context.value}-{kind}"
        if self.context in LOGIN_CONTEXTS:
            return self._result(SessionOutcome.LOGIN_FAILURE, reason)
        return self._result(SessionOutcome.SUDO_FAILURE, reason)

    def _close(self, child: InteractiveChild) -> None:
        """Terminate the child, whatever state it is in."""
        try:
            child.close(force=True)
        except (pexpect.ExceptionPexpect, OSError) as e:
            logger.warning("Failed to close session to %s: %s", self.host.raw, e)

    def _result(self, outcome: SessionOutcome, reason: str) -> SessionResult:
        return SessionResult(host=self.host, outcome=outcome, reason=reason)


async def run_session(
    host: Host,
    credentials: Credentials,
    command: str,
    *,
    retries: int = 0,
    err: TextIO | None = None,
    prefix: str = "",
    **session_kwargs,
) -> SessionResult:
    """Run a host session, retrying transient connection failures.

    Authentication failures are never retried. The failure line for the
    final outcome is written to ``err``.

    Args:
        host: Target host
        credentials: Shared login credentials
        command: Remote command line
        retries: Extra attempts allowed for transient failures
        err: Stream for failure messages (stderr by default)
        prefix: Text put in front of every message line
        **session_kwargs: Passed through to ``HostSession``

    Returns:
        Result of the last attempt
    """
    session = HostSession(host, credentials, command, **session_kwargs)
    attempt = 1
    result = await session.run()

    while result.reason in TRANSIENT_REASONS and attempt <= retries:
        logger.warning(
            "Attempt %d on %s failed (%s), retrying", attempt, host.raw, result.reason
        )
        attempt += 1
        result = await session.run()

    if attempt > 1:
        result = SessionResult(
            host=result.host, outcome=result.outcome, reason=result.reason, attempts=attempt
        )

    message = FAILURE_MESSAGES.get(result.outcome)
    if message is not None:
        print(prefix + message.format(host=host.raw), file=err or sys.stderr, flush=True)

    return result


def _as_text(value: object) -> str:
    """pexpect leaves ``before``/``after`` as class sentinels after EOF."""
    return value if isinstance(value, str) else ""
