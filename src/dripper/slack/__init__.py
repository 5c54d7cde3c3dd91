"""Slack integration for Dripper."""

from .adapter import SlackAdapter
from .commands import register_commands
from .formatter import MessageFormatter

__all__ = ["MessageFormatter", "SlackAdapter", "register_commands"]
