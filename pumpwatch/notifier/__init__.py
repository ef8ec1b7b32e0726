"""Notification formatting and delivery."""

from pumpwatch.notifier.channels import BotApiChannel, NotificationChannel, TelethonChannel
from pumpwatch.notifier.fanout import NotificationFanout

__all__ = ["BotApiChannel", "NotificationChannel", "NotificationFanout", "TelethonChannel"]
