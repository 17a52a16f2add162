"""Services for sudo-sweep."""

from sudo_sweep.services.classifier import Action, Context, PromptClassifier, Rule
from sudo_sweep.services.credentials import prompt_credentials
from sudo_sweep.services.hosts import read_hosts
from sudo_sweep.services.runner import RunController
from sudo_sweep.services.session import HostSession, run_session, spawn_ssh

__all__ = [
    "Action",
    "Context",
    "HostSession",
    "PromptClassifier",
    "Rule",
    "RunController",
    "prompt_credentials",
    "read_hosts",
    "run_session",
    "spawn_ssh",
]
