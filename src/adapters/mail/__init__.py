"""Mail adapters - Notification sender implementations."""

from .console import ConsoleNotificationSender
from .graph import GraphMailSender

__all__ = ["ConsoleNotificationSender", "GraphMailSender"]
