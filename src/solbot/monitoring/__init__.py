"""Monitoring exports."""

from solbot.monitoring.audit import AuditLog
from solbot.monitoring.monitor import Monitor
from solbot.monitoring.notifier import AuditNotifier, FanoutNotifier, LogNotifier, MemoryNotifier, Notifier

__all__ = [
    "AuditLog",
    "AuditNotifier",
    "FanoutNotifier",
    "LogNotifier",
    "MemoryNotifier",
    "Monitor",
    "Notifier",
]
