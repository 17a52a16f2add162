"""Run controller: every host, one outcome each, one exit code.

Concurrency:
- ``workers == 1`` processes hosts strictly in order, one child at a time.
- ``workers > 1`` bounds in-flight sessions with a semaphore. Each task
  owns its own child and state machine. The tally is only touched under
  ``_tally_lock``.
- Cancelling ``run`` cancels every in-flight session. Each session
  closes its child before the cancellation completes.
"""

import asyncio
import logging
import sys
from collections.abc import Iterable
from typing import TextIO

from sudo_sweep.config import Settings
from sudo_sweep.models import Credentials, Host, RunTally, SessionResult
from sudo_sweep.protocols import ChildFactory
from sudo_sweep.services.session import run_session, spawn_ssh

logger = logging.getLogger(__name__)


class RunController:
    """Runs the configured command on each host and tallies outcomes."""

    def __init__(
        self,
        credentials: Credentials,
        settings: Settings,
        *,
        spawn: ChildFactory = spawn_ssh,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            credentials: Shared login credentials
            settings: Run settings; ``settings.command`` must be set
            spawn: Factory that launches the SSH client
            out: Stream for progress and the all-success summary
            err: Stream for failures and the failure summary
        """
        self.credentials = credentials
        self.settings = settings
        self.tally = RunTally()
        self._spawn = spawn
        self._out = out or sys.stdout
        self._err = err or sys.stderr
        self._tally_lock = asyncio.Lock()

    @property
    def concurrent(self) -> bool:
        return self.settings.workers > 1

    @property
    def exit_code(self) -> int:
        return self.tally.exit_code

    async def run(self, hosts: Iterable[Host]) -> RunTally:
        """Process every host, then print the summary.

        Args:
            hosts: Hosts in order, consumed lazily

        Returns:
            Final tally
        """
        if self.concurrent:
            await self._run_concurrent(hosts)
        else:
            for host in hosts:
                await self._process(host)

        self.report_summary()
        return self.tally

    async def _run_concurrent(self, hosts: Iterable[Host]) -> None:
        semaphore = asyncio.Semaphore(self.settings.workers)
        tasks: list[asyncio.Task[SessionResult]] = []
        logger.info("Running with up to %d concurrent sessions", self.settings.workers)

        async def bounded(host: Host) -> SessionResult:
            try:
                return await self._process(host)
            finally:
                semaphore.release()

        try:
            for host in hosts:
                # Acquire before reading further so the list stays lazy
                await semaphore.acquire()
                tasks.append(asyncio.create_task(bounded(host)))
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _process(self, host: Host) -> SessionResult:
        prefix = f"[{host.raw}] " if self.concurrent else ""
        print(f"{prefix}Running on {host.raw}", file=self._out, flush=True)

        result = await run_session(
            host,
            self.credentials,
            self.settings.command,
            retries=self.settings.retries,
            err=self._err,
            prefix=prefix,
            spawn=self._spawn,
            timeout=self.settings.timeout,
            ssh_binary=self.settings.ssh_binary,
            ssh_options=self.settings.ssh_options,
        )

        async with self._tally_lock:
            self.tally.record(result)
        logger.debug("%s: %s (%s)", host.raw, result.outcome.name, result.reason)
        return result

    def report_summary(self) -> None:
        """Print the aggregate result."""
        tally = self.tally
        if tally.failure_count:
            print(
                f"completed with {tally.failure_count} failures "
                f"and {tally.success_count} successes",
                file=self._err,
                flush=True,
            )
        else:
            print(
                f"completed successfully on {tally.success_count} systems",
                file=self._out,
                flush=True,
            )
