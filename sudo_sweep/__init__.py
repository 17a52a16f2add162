"""sudo-sweep: run one privileged command across many hosts over SSH."""

__version__ = "0.1.0"
