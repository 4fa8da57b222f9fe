"""Tournament race bot: command handlers, message texts and storage for scheduling head-to-head races."""

__version__ = "0.1.0"