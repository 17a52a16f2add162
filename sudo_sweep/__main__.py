"""Command line entry point for sudo-sweep."""

import argparse
import asyncio
import logging
import sys

from sudo_sweep import __version__
from sudo_sweep.config import LOG_LEVELS, Settings
from sudo_sweep.errors import SudoSweepError, UsageError
from sudo_sweep.services import RunController, prompt_credentials, read_hosts
from sudo_sweep.utils.console import configure_logging

logger = logging.getLogger(__name__)

EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from e
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {number}")
    return number


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from e
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="sudo-sweep",
        description="Run one sudo command on every host in a server list over SSH.",
    )
    parser.add_argument("server_list", help="file with one hostname per line")
    parser.add_argument(
        "-c",
        "--command",
        help="remote command line (default: $SUDO_SWEEP_COMMAND)",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=_positive_int,
        help="seconds to wait for each prompt (default: 900)",
    )
    parser.add_argument(
        "-w",
        "--workers",
        type=_positive_int,
        help="hosts processed at once (default: 1)",
    )
    parser.add_argument(
        "-r",
        "--retries",
        type=_non_negative_int,
        help="extra attempts after a connection failure (default: 0)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="diagnostic log level (default: WARNING)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run sudo-sweep and return the process exit code.

    Args:
        argv: Arguments without the program name (``sys.argv[1:]`` by default)

    Returns:
        0 if every host succeeded, 1 if any failed, 2 on usage errors,
        130 if interrupted
    """
    args = build_parser().parse_args(argv)

    settings = Settings.from_env().with_overrides(
        command=args.command.strip() if args.command else None,
        timeout=args.timeout,
        workers=args.workers,
        retries=args.retries,
        log_level=args.log_level,
    )
    configure_logging(settings.log_level, settings.log_colors)

    try:
        if not settings.command:
            raise UsageError("no command given (use --command or SUDO_SWEEP_COMMAND)")
        hosts = read_hosts(args.server_list)
        credentials = prompt_credentials()
    except SudoSweepError as e:
        print(f"sudo-sweep: error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except KeyboardInterrupt:
        print(file=sys.stderr)
        return EXIT_INTERRUPTED

    controller = RunController(credentials, settings)
    try:
        asyncio.run(controller.run(hosts))
    except KeyboardInterrupt:
        logger.warning(
            "Interrupted after %d host(s); in-flight sessions closed", controller.tally.total
        )
        print("Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED

    return controller.exit_code


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
