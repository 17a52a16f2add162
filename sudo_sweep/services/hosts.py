"""Server list reading."""

import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import TextIO

from sudo_sweep.errors import ServerListUnreadable
from sudo_sweep.models import Host

logger = logging.getLogger(__name__)


def read_hosts(path: str | Path, out: TextIO | None = None) -> Iterator[Host]:
    """Open a server list and lazily yield its hosts.

    The file is opened immediately so an unreadable list fails before
    any host is processed. Lines are read one at a time afterwards.

    Args:
        path: Server list, one hostname per line
        out: Stream for blank-line notices (stdout by default)

    Returns:
        Single-use iterator of hosts in file order

    Raises:
        ServerListUnreadable: If the file cannot be opened
    """
    try:
        handle = open(path, encoding="utf-8")
    except OSError as e:
        raise ServerListUnreadable(str(path), e) from e

    logger.debug("Reading server list from %s", path)
    return _iter_hosts(handle, out)


def _iter_hosts(handle: TextIO, out: TextIO | None) -> Iterator[Host]:
    with handle:
        for lineno, line in enumerate(handle, start=1):
            if not line.strip():
                print(f"Skipping blank line {lineno}", file=out or sys.stdout, flush=True)
                continue
            yield Host.parse(line)
