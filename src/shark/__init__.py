"""shark: a command-line agent that decides, calls a tool, and streams the answer."""

__version__ = "0.1.0"
