"""Ordered prompt rules for interactive SSH and sudo sessions.

Every context has its own rule table. Rules are tried in declared order
and the first match wins: several patterns overlap (the generic
``Permission denied (...)`` vs the password retry message, the shell
prompt vs anything printed before it) so the order is part of the
behaviour.

Patterns are templates. ``{user}``, ``{host}``, ``{basename}`` and
``{prompt}`` are replaced with regex-escaped values for the current
session so one host's prompt can never match another's.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from re import Pattern
from typing import Final

from sudo_sweep.models import Host, SessionOutcome

logger = logging.getLogger(__name__)


class Context(Enum):
    """What the session is currently waiting for."""

    LOGIN = "login"
    PASSWORD = "password"
    EXECUTING = "executing"
    SUDO = "sudo"
    CLOSING = "closing"


class Action(Enum):
    """What to send to the child when a rule fires."""

    NONE = "none"
    SEND_YES = "send_yes"
    SEND_PASSWORD = "send_password"
    SEND_COMMAND = "send_command"
    SEND_EXIT = "send_exit"
    INTERRUPT = "interrupt"


@dataclass(frozen=True)
class Rule:
    """One pattern and the transition it triggers.

    A rule with an ``outcome`` ends the session. Otherwise the session
    moves to ``next_context``, or stays where it is when that is None.
    """

    name: str
    pattern: str
    action: Action = Action.NONE
    next_context: Context | None = None
    outcome: SessionOutcome | None = None
    reason: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not None


LOGIN_FAILURE = SessionOutcome.LOGIN_FAILURE
SUDO_FAILURE = SessionOutcome.SUDO_FAILURE

SHELL_PROMPT_RULE_NAME = "shell-prompt"

RULES: Final[dict[Context, tuple[Rule, ...]]] = {
    Context.LOGIN: (
        # Answering the host key question does not end the login: a real
        # auth prompt (or the shell) follows.
        Rule(
            "host-key-confirm",
            r"Are you sure you want to continue connecting \(yes/no[^)]*\)\?",
            Action.SEND_YES,
        ),
        Rule(
            "dns",
            r"Could not resolve hostname|Name or service not known",
            outcome=LOGIN_FAILURE,
            reason="dns",
        ),
        Rule(
            "connect-timeout",
            r"Connection timed out|Operation timed out",
            outcome=LOGIN_FAILURE,
            reason="connect-timeout",
        ),
        Rule(
            "unreachable",
            r"Connection refused|No route to host|Network is unreachable",
            outcome=LOGIN_FAILURE,
            reason="unreachable",
        ),
        Rule(
            "host-key-mismatch",
            r"REMOTE HOST IDENTIFICATION HAS CHANGED|Host key verification failed",
            Action.INTERRUPT,
            outcome=LOGIN_FAILURE,
            reason="host-key-mismatch",
        ),
        Rule(
            "password-prompt",
            r"{user}@{host}'s password:",
            Action.SEND_PASSWORD,
            next_context=Context.PASSWORD,
        ),
        Rule(
            "key-denied",
            r"Permission denied \([^)]*\)",
            outcome=LOGIN_FAILURE,
            reason="key-denied",
        ),
        Rule(
            SHELL_PROMPT_RULE_NAME,
            r"{prompt}",
            Action.SEND_COMMAND,
            next_context=Context.EXECUTING,
        ),
    ),
    Context.PASSWORD: (
        Rule(
            "password-denied",
            r"Permission denied, please try again\.",
            Action.INTERRUPT,
            outcome=LOGIN_FAILURE,
            reason="password-denied",
        ),
        Rule(
            SHELL_PROMPT_RULE_NAME,
            r"{prompt}",
            Action.SEND_COMMAND,
            next_context=Context.EXECUTING,
        ),
    ),
    Context.EXECUTING: (
        Rule(
            "sudo-prompt",
            r"\[sudo\] password for {user}:",
            Action.SEND_PASSWORD,
            next_context=Context.SUDO,
        ),
        Rule(
            SHELL_PROMPT_RULE_NAME,
            r"{prompt}",
            Action.SEND_EXIT,
            next_context=Context.CLOSING,
        ),
    ),
    Context.SUDO: (
        Rule(
            "sudo-denied",
            r"Sorry, try again\.",
            Action.INTERRUPT,
            outcome=SUDO_FAILURE,
            reason="sudo-denied",
        ),
        Rule(
            SHELL_PROMPT_RULE_NAME,
            r"{prompt}",
            Action.SEND_EXIT,
            next_context=Context.CLOSING,
        ),
    ),
    Context.CLOSING: (
        Rule(
            "closed",
            r"Connection to {host} closed\.",
            outcome=SessionOutcome.SUCCESS,
            reason="ok",
        ),
    ),
}


class PromptClassifier:
    """Rule tables compiled for one user on one host."""

    def __init__(
        self,
        username: str,
        host: Host,
        rules: dict[Context, tuple[Rule, ...]] = RULES,
    ) -> None:
        """Compile every rule pattern for this session.

        Args:
            username: Login name, used in password/sudo/shell prompts
            host: Target host, used in prompts and the close confirmation
            rules: Rule tables per context
        """
        self.username = username
        self.host = host
        values = {
            "user": re.escape(username),
            # OpenSSH lowercases the destination in its own messages
            "host": f"(?i:{re.escape(host.raw)})",
            "basename": re.escape(host.basename),
            "prompt": re.escape(host.shell_prompt(username)),
        }
        self._rules = rules
        self._compiled: dict[Context, tuple[Pattern[str], ...]] = {
            context: tuple(re.compile(rule.pattern.format(**values)) for rule in table)
            for context, table in rules.items()
        }

    def rules(self, context: Context) -> tuple[Rule, ...]:
        """Rules for ``context`` in priority order."""
        return self._rules[context]

    def patterns(self, context: Context) -> list[Pattern[str]]:
        """Compiled patterns for ``context``, index-aligned with ``rules``."""
        return list(self._compiled[context])

    def classify(self, text: str, context: Context) -> Rule | None:
        """Return the first rule for ``context`` whose pattern occurs in ``text``.

        Args:
            text: Output received from the child so far
            context: Current session context

        Returns:
            Matching rule, or None if no rule matches
        """
        for rule, pattern in zip(self._rules[context], self._compiled[context]):
            if pattern.search(text):
                logger.debug(
                    "%s@%s [%s] matched rule %s",
                    self.username,
                    self.host.raw,
                    context.value,
                    rule.name,
                )
                return rule
        return None
