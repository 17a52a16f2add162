"""Interactive username/password collection."""

import getpass
import logging
from collections.abc import Callable

from sudo_sweep.errors import MissingCredential
from sudo_sweep.models import Credentials

logger = logging.getLogger(__name__)


def prompt_credentials(
    input_func: Callable[[str], str] = input,
    getpass_func: Callable[[str], str] = getpass.getpass,
) -> Credentials:
    """Ask for a username (echoed) and a password (not echoed).

    ``getpass`` turns terminal echo off for the password and restores it
    on every exit path, then prints the trailing newline.

    Args:
        input_func: Reads the username
        getpass_func: Reads the password without echo

    Returns:
        Captured credentials

    Raises:
        MissingCredential: If either value is empty or input ended
    """
    try:
        username = input_func("Username: ").rstrip("\r\n")
    except EOFError as e:
        raise MissingCredential("username") from e
    if not username:
        raise MissingCredential("username")

    try:
        password = getpass_func("Password: ").rstrip("\r\n")
    except EOFError as e:
        raise MissingCredential("password") from e
    if not password:
        raise MissingCredential("password")

    logger.debug("Credentials captured for user %s", username)
    return Credentials(username=username, password=password)
