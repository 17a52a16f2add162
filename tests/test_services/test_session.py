"""Tests for the per-host session state machine."""

import io

import pexpect
import pytest
from fakes import FakeChild, FakeSpawner, login_banner, shell_prompt, success_script

from sudo_sweep.models import Credentials, Host, SessionOutcome
from sudo_sweep.services.session import HostSession, run_session

COMMAND = "sudo true"


def make_session(
    host: Host, credentials: Credentials, spawner: FakeSpawner, **kwargs
) -> HostSession:
    return HostSession(host, credentials, COMMAND, spawn=spawner, **kwargs)


class TestSuccessfulSessions:
    """Sessions that reach the close confirmation."""

    @pytest.mark.asyncio
    async def test_key_auth_without_sudo_prompt(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """Key login plus passwordless command never sends the password."""
        child = FakeChild(success_script("ops", host.raw, sudo=False))
        spawner.children[host.raw] = child

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.SUCCESS
        assert child.sent == [COMMAND, "exit"]
        assert credentials.password not in child.sent
        assert child.interrupts == 0
        assert child.closed

    @pytest.mark.asyncio
    async def test_password_auth_and_sudo(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """Password login and sudo prompt both get the password."""
        child = FakeChild(success_script("ops", host.raw, password=True))
        spawner.children[host.raw] = child

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.SUCCESS
        assert result.reason == "ok"
        assert child.sent == ["s3cret", COMMAND, "s3cret", "exit"]

    @pytest.mark.asyncio
    async def test_host_key_confirmation_then_password(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """One yes is sent and the password prompt is still recognised."""
        script = [
            "The authenticity of host 'web01.example.com' can't be established.\r\n",
            "Are you sure you want to continue connecting (yes/no/[fingerprint])? ",
            "Warning: Permanently added 'web01.example.com' to the list of known hosts.\r\n",
        ] + success_script("ops", host.raw, password=True)
        child = FakeChild(script)
        spawner.children[host.raw] = child

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.SUCCESS
        assert child.sent.count("yes") == 1
        assert child.sent[:2] == ["yes", "s3cret"]

    @pytest.mark.asyncio
    async def test_eof_while_closing_counts_as_success(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """The remote side hanging up after exit is a clean close."""
        script = [shell_prompt("ops", host.raw), "\r\n" + shell_prompt("ops", host.raw)]
        spawner.children[host.raw] = FakeChild(script, end="eof")

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.SUCCESS

    @pytest.mark.asyncio
    async def test_spawn_arguments(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """The client gets options first and user@host last."""
        spawner.children[host.raw] = FakeChild(success_script("ops", host.raw, sudo=False))

        await make_session(
            host,
            credentials,
            spawner,
            timeout=42,
            ssh_binary="/usr/bin/ssh",
            ssh_options=["-o", "ConnectTimeout=10"],
        ).run()

        assert spawner.calls == [
            ("/usr/bin/ssh", ["-o", "ConnectTimeout=10", "ops@web01.example.com"], 42)
        ]

    @pytest.mark.asyncio
    async def test_every_wait_uses_the_timeout(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """Each expect call is bounded by the session timeout."""
        child = FakeChild(success_script("ops", host.raw))
        spawner.children[host.raw] = child

        await make_session(host, credentials, spawner, timeout=7).run()

        assert child.expect_timeouts
        assert set(child.expect_timeouts) == {7}


class TestLoginFailures:
    """Sessions that never reach a shell."""

    @pytest.mark.asyncio
    async def test_dns_failure_sends_nothing(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """Resolution failure is a login failure with no password sent."""
        child = FakeChild(
            ["ssh: Could not resolve hostname web01.example.com: Name or service not known\r\n"]
        )
        spawner.children[host.raw] = child

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.LOGIN_FAILURE
        assert result.reason == "dns"
        assert child.sent == []
        assert child.closed

    @pytest.mark.asyncio
    async def test_wrong_password_interrupts(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """A rejected password is interrupted once."""
        child = FakeChild(
            [
                "ops@web01.example.com's password: ",
                "\r\nPermission denied, please try again.\r\n",
                "ops@web01.example.com's password: ",
            ]
        )
        spawner.children[host.raw] = child

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.LOGIN_FAILURE
        assert result.reason == "password-denied"
        assert child.sent == ["s3cret"]
        assert child.interrupts == 1

    @pytest.mark.asyncio
    async def test_host_key_mismatch_interrupts(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """A changed host key is never answered."""
        child = FakeChild(
            [
                "@    WARNING: REMOTE HOST IDENTIFICATION HAS CHANGED!     @\r\n",
                "Host key verification failed.\r\n",
            ]
        )
        spawner.children[host.raw] = child

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.LOGIN_FAILURE
        assert child.interrupts == 1
        assert child.sent == []

    @pytest.mark.asyncio
    async def test_timeout_during_login(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """No recognisable prompt before the deadline is a login failure."""
        spawner.children[host.raw] = FakeChild(["some banner\r\n"], end="timeout")

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.LOGIN_FAILURE
        assert result.reason == "login-timeout"

    @pytest.mark.asyncio
    async def test_invalid_host_is_not_spawned(
        self, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """A host that looks like an ssh option is rejected up front."""
        host = Host.parse("-oProxyCommand=evil")

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.LOGIN_FAILURE
        assert result.reason == "invalid-host"
        assert spawner.calls == []

    @pytest.mark.asyncio
    async def test_spawn_error(self, host: Host, credentials: Credentials) -> None:
        """A missing ssh client is a login failure, not a crash."""

        def broken_spawn(command: str, args: list[str], timeout: int):
            raise pexpect.ExceptionPexpect("The command was not found or was not executable: ssh.")

        result = await HostSession(host, credentials, COMMAND, spawn=broken_spawn).run()

        assert result.outcome is SessionOutcome.LOGIN_FAILURE
        assert result.reason == "spawn-error"

    @pytest.mark.asyncio
    async def test_pty_error_while_sending_password(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """An I/O error on the pty is a login failure and the child is still closed."""
        child = FakeChild(
            ["ops@web01.example.com's password: "],
            send_error=OSError(5, "Input/output error"),
        )
        spawner.children[host.raw] = child

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.LOGIN_FAILURE
        assert result.reason == "login-error"
        assert child.closed


class TestSudoFailures:
    """Sessions that log in but cannot complete the command."""

    @pytest.mark.asyncio
    async def test_sudo_denied_once(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """Wrong sudo password gives one SudoFailure and one interrupt."""
        child = FakeChild(
            [
                login_banner(host.raw),
                shell_prompt("ops", host.raw),
                "sudo true\r\n[sudo] password for ops: ",
                "\r\nSorry, try again.\r\n[sudo] password for ops: ",
            ]
        )
        spawner.children[host.raw] = child

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.SUDO_FAILURE
        assert result.reason == "sudo-denied"
        assert child.interrupts == 1
        assert child.sent == [COMMAND, "s3cret"]
        assert child.closed

    @pytest.mark.asyncio
    async def test_timeout_while_executing(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """A command that never returns to the prompt is a sudo failure."""
        spawner.children[host.raw] = FakeChild(
            [shell_prompt("ops", host.raw), "sudo true\r\nworking...\r\n"], end="timeout"
        )

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.SUDO_FAILURE
        assert result.reason == "executing-timeout"

    @pytest.mark.asyncio
    async def test_timeout_while_closing(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """No close confirmation before the deadline is not counted as success."""
        spawner.children[host.raw] = FakeChild(
            [shell_prompt("ops", host.raw), "\r\n" + shell_prompt("ops", host.raw)],
            end="timeout",
        )

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.SUDO_FAILURE
        assert result.reason == "close-timeout"

    @pytest.mark.asyncio
    async def test_pexpect_error_while_executing(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """A pexpect error after the command was sent is a sudo failure."""
        child = FakeChild(
            [login_banner(host.raw), shell_prompt("ops", host.raw)],
            error=pexpect.ExceptionPexpect("read failed"),
        )
        spawner.children[host.raw] = child

        result = await make_session(host, credentials, spawner).run()

        assert result.outcome is SessionOutcome.SUDO_FAILURE
        assert result.reason == "executing-error"
        assert child.sent == [COMMAND]
        assert child.closed


class TestRunSession:
    """Retry and reporting wrapper."""

    @pytest.mark.asyncio
    async def test_failure_message_on_err(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """Login failures are reported on the error stream."""
        spawner.children[host.raw] = FakeChild(["Connection refused\r\n"])
        err = io.StringIO()

        result = await run_session(host, credentials, COMMAND, err=err, spawn=spawner)

        assert result.outcome is SessionOutcome.LOGIN_FAILURE
        assert err.getvalue() == "Unable to login on web01.example.com\n"

    @pytest.mark.asyncio
    async def test_sudo_failure_message_with_prefix(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """Sudo failures use their own message and the host prefix."""
        spawner.children[host.raw] = FakeChild(
            [shell_prompt("ops", host.raw), "[sudo] password for ops: ", "Sorry, try again."]
        )
        err = io.StringIO()

        await run_session(
            host, credentials, COMMAND, err=err, prefix="[web01.example.com] ", spawn=spawner
        )

        assert err.getvalue() == "[web01.example.com] Unable to sudo on web01.example.com\n"

    @pytest.mark.asyncio
    async def test_success_prints_nothing(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """Successful sessions write nothing themselves."""
        spawner.children[host.raw] = FakeChild(success_script("ops", host.raw))
        err = io.StringIO()

        result = await run_session(host, credentials, COMMAND, err=err, spawn=spawner)

        assert result.outcome is SessionOutcome.SUCCESS
        assert result.attempts == 1
        assert err.getvalue() == ""

    @pytest.mark.asyncio
    async def test_transient_failure_retried(
        self, host: Host, credentials: Credentials
    ) -> None:
        """A connection timeout is retried when retries are allowed."""
        children = iter(
            [
                FakeChild(["ssh: connect to host web01.example.com port 22: Connection timed out"]),
                FakeChild(success_script("ops", host.raw, sudo=False)),
            ]
        )

        def spawn(command: str, args: list[str], timeout: int) -> FakeChild:
            return next(children)

        result = await run_session(
            host, credentials, COMMAND, retries=1, err=io.StringIO(), spawn=spawn
        )

        assert result.outcome is SessionOutcome.SUCCESS
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_auth_failure_not_retried(
        self, host: Host, credentials: Credentials, spawner: FakeSpawner
    ) -> None:
        """Rejected credentials are never tried again."""
        spawner.children[host.raw] = FakeChild(
            ["ops@web01.example.com's password: ", "Permission denied, please try again."]
        )

        result = await run_session(
            host, credentials, COMMAND, retries=3, err=io.StringIO(), spawn=spawner
        )

        assert result.outcome is SessionOutcome.LOGIN_FAILURE
        assert result.attempts == 1
        assert len(spawner.calls) == 1
