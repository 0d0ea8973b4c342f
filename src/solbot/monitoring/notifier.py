"""Where operator alerts end up."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, TextIO

from solbot.monitoring.audit import AuditLog


class Notifier:
    def notify(self, event: str, message: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass
class LogNotifier(Notifier):
    prefix: str = "[SOLBOT]"
    stream: Optional[TextIO] = None

    def notify(self, event: str, message: str) -> None:
        stamp = datetime.now(timezone.utc).strftime("%H:%M:%S")
        print(f"{stamp} {self.prefix} {event}: {message}", file=self.stream or sys.stderr)


@dataclass
class AuditNotifier(Notifier):
    """Records alerts as ``alert`` events next to the session events."""

    audit_log: AuditLog

    def notify(self, event: str, message: str) -> None:
        self.audit_log.log("alert", {"alert": event, "message": message})


@dataclass
class MemoryNotifier(Notifier):
    messages: list[tuple[str, str]] = field(default_factory=list)

    def notify(self, event: str, message: str) -> None:
        self.messages.append((event, message))


@dataclass
class FanoutNotifier(Notifier):
    notifiers: list[Notifier] = field(default_factory=list)

    def notify(self, event: str, message: str) -> None:
        for notifier in self.notifiers:
            notifier.notify(event, message)
