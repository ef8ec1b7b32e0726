"""Inbound signals: chain heads and bot commands."""

from pumpwatch.listener.block_feed import BlockFeed
from pumpwatch.listener.commands import BotCommands, CommandListener

__all__ = ["BlockFeed", "BotCommands", "CommandListener"]
