"""JSON snapshots of a trading session for status polling."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

from solbot.simulator.models import MarketState, Trade, TradingSession
from solbot.simulator.portfolio import compute_stats


def trade_payload(trade: Trade) -> dict[str, Any]:
    return {
        "id": trade.id,
        "side": trade.side.value,
        "amount": trade.base_amount,
        "executed_price": trade.executed_price,
        "reference_price": trade.reference_price,
        "realized_pnl": trade.realized_pnl,
        "occurred_at": trade.occurred_at.isoformat(),
        "origin": trade.origin,
    }


def market_payload(market: Optional[MarketState]) -> Optional[dict[str, Any]]:
    if market is None:
        return None
    return {
        "last_price": market.last_price,
        "percent_change": market.percent_change,
        "updated_at": market.updated_at.isoformat(),
        "source": market.source,
    }


def session_snapshot(session: TradingSession, recent_limit: int = 10) -> dict[str, Any]:
    stats = compute_stats(session.ledger)
    recent = list(reversed(session.ledger))[:recent_limit]
    return {
        "user_id": session.user_id,
        "running": session.running,
        "config": asdict(session.config),
        "balances": asdict(session.balances),
        "market": market_payload(session.market),
        "stats": {
            "total_trades": stats.total_trades,
            "winning_trades": stats.winning_trades,
            "total_pnl": stats.total_pnl,
            "win_rate": stats.win_rate,
        },
        "last_trade_at": session.last_trade_at.isoformat() if session.last_trade_at else None,
        "recent_trades": [trade_payload(trade) for trade in recent],
    }


def write_session_status(path: str | Path, snapshot: dict[str, Any]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")


def read_session_status(path: str | Path) -> dict | None:
    path = Path(path)
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))
