"""Runtime exports."""

from solbot.runtime.bootstrap import build_price_chain, build_service
from solbot.runtime.scheduler import TickScheduler
from solbot.runtime.service import CommandResult, TradingService
from solbot.runtime.status_store import read_session_status, session_snapshot, write_session_status

__all__ = [
    "CommandResult",
    "TickScheduler",
    "TradingService",
    "build_price_chain",
    "build_service",
    "read_session_status",
    "session_snapshot",
    "write_session_status",
]
