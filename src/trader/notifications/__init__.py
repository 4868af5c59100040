"""Outbound trade notifications."""

from trader.notifications.telegram import TelegramNotifier

__all__ = ["TelegramNotifier"]
