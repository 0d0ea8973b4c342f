"""Command surface for trading sessions.

Every command is serialised per user with an ``asyncio.Lock`` and returns a
``CommandResult``; nothing raises to the caller. The service keeps the last
known session per user in memory and writes through to the stores. When a
store fails the in-memory copy stays authoritative, unsaved trades are queued
for the next successful write and the result carries a warning. A session
that cannot be read back completely is never cached or written; the command
returns an error and the next one retries the load.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from solbot.config.models import SessionDefaults
from solbot.config.validation import InvalidConfig, validate_start_params
from solbot.runtime.scheduler import TickScheduler
from solbot.runtime.status_store import session_snapshot, trade_payload
from solbot.simulator.engine import PortfolioSimulator
from solbot.simulator.models import Balances, Side, TickResult, TickStatus, Trade, TradingSession
from solbot.simulator.portfolio import TradeRejected, compute_stats
from solbot.storage.base import PortfolioStore, SessionStore, StoreUnavailable, TradeLedger

T = TypeVar("T")

SUCCESS = "success"
ERROR = "error"
PAUSED = "paused"
RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class CommandResult:
    status: str
    message: str
    payload: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS


class TradingService:
    def __init__(
        self,
        simulator: PortfolioSimulator,
        session_store: SessionStore,
        ledger: TradeLedger,
        portfolio_store: PortfolioStore,
        defaults: Optional[SessionDefaults] = None,
        tick_interval_seconds: float = 10.0,
        auto_tick: bool = False,
        trade_history_limit: int = 100,
        audit_log: Optional[object] = None,
        monitor: Optional[object] = None,
    ) -> None:
        self.simulator = simulator
        self.session_store = session_store
        self.ledger = ledger
        self.portfolio_store = portfolio_store
        self.defaults = defaults or SessionDefaults()
        self.tick_interval_seconds = tick_interval_seconds
        self.auto_tick = auto_tick
        self.trade_history_limit = trade_history_limit
        self._audit_log = audit_log
        self._monitor = monitor
        self._sessions: dict[str, TradingSession] = {}
        self._pending_trades: dict[str, list[Trade]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._schedulers: dict[str, TickScheduler] = {}

    def _log(self, event: str, payload: dict) -> None:
        if self._audit_log is None:
            return
        self._audit_log.log(event, payload)

    def _lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def _store_failed(self, user_id: str, action: str, exc: Exception, warnings: list[str]) -> None:
        message = f"Could not {action}: {exc}"
        warnings.append(message)
        self._log("store_unavailable", {"user_id": user_id, "action": action, "error": str(exc)})
        if self._monitor is not None:
            self._monitor.store_unavailable(user_id, message)

    async def _guard(self, command: str, user_id: str, work: Callable[[], Awaitable[CommandResult]]) -> CommandResult:
        try:
            return await work()
        except StoreUnavailable as exc:
            return CommandResult(
                ERROR,
                f"{command} failed: session storage unavailable, try again",
                warnings=[f"Could not load session: {exc}"],
            )
        except Exception as exc:
            self._log("service_error", {"command": command, "user_id": user_id, "error": str(exc)})
            return CommandResult(ERROR, f"{command} failed: {exc}")

    async def _read(self, user_id: str, action: str, call: Callable[..., T], *args: Any, warnings: list[str]) -> Optional[T]:
        try:
            return await asyncio.to_thread(call, *args)
        except StoreUnavailable as exc:
            self._store_failed(user_id, action, exc, warnings)
            return None

    async def _fetch(self, user_id: str, action: str, call: Callable[..., T], *args: Any, warnings: list[str]) -> T:
        """Like ``_read`` but re-raises, for reads whose result would be persisted."""
        try:
            return await asyncio.to_thread(call, *args)
        except StoreUnavailable as exc:
            self._store_failed(user_id, action, exc, warnings)
            raise

    async def _load_session(self, user_id: str, warnings: list[str]) -> Optional[TradingSession]:
        session = self._sessions.get(user_id)
        if session is not None:
            return session

        record = await self._fetch(user_id, "load session", self.session_store.load, user_id, warnings=warnings)
        if record is None:
            return None
        balances = await self._fetch(user_id, "load portfolio", self.portfolio_store.get, user_id, warnings=warnings)
        trades = await self._fetch(user_id, "load trades", self.ledger.list, user_id, None, warnings=warnings)
        if balances is None:
            balances = Balances.at_price(record.config.capital, 0.0, 0.0)
        session = TradingSession(
            user_id=user_id,
            config=record.config,
            balances=balances,
            market=record.market,
            ledger=list(reversed(trades)),
            last_trade_at=record.last_trade_at,
        )
        self._sessions[user_id] = session
        if session.running and self.auto_tick:
            self._log("session_resumed", {"user_id": user_id})
            self._schedule(user_id)
        return session

    async def _persist(self, session: TradingSession, warnings: list[str], trades: Sequence[Trade] = ()) -> None:
        user_id = session.user_id
        pending = self._pending_trades.setdefault(user_id, [])
        pending.extend(trades)
        try:
            while pending:
                await asyncio.to_thread(self.ledger.append, user_id, pending[0])
                pending.pop(0)
            await asyncio.to_thread(self.portfolio_store.upsert, user_id, session.balances)
            await asyncio.to_thread(self.session_store.save, user_id, session.record())
        except StoreUnavailable as exc:
            self._store_failed(user_id, "save session", exc, warnings)

    def _schedule(self, user_id: str) -> None:
        scheduler = self._schedulers.get(user_id)
        if scheduler is None:
            scheduler = TickScheduler(
                user_id,
                self.tick_interval_seconds,
                lambda: self.tick(user_id),
                audit_log=self._audit_log,
                monitor=self._monitor,
            )
            self._schedulers[user_id] = scheduler
        scheduler.start()

    async def _unschedule(self, user_id: str) -> None:
        scheduler = self._schedulers.pop(user_id, None)
        if scheduler is not None:
            await scheduler.cancel()

    def is_scheduled(self, user_id: str) -> bool:
        scheduler = self._schedulers.get(user_id)
        return scheduler is not None and scheduler.active

    def _tick_payload(self, session: TradingSession, result: TickResult) -> dict[str, Any]:
        payload = session_snapshot(session, recent_limit=0)
        payload.pop("recent_trades")
        payload["trade"] = trade_payload(result.trade) if result.trade else None
        payload["signal"] = result.reason
        payload["price_source"] = result.price_source
        if result.rejected_reason:
            payload["rejected_reason"] = result.rejected_reason
        return payload

    async def start(
        self,
        user_id: str,
        wallet_key: Any,
        capital: Any,
        token_address: Any,
        risk_percent: Any = None,
        slippage_percent: Any = None,
    ) -> CommandResult:
        async def work() -> CommandResult:
            try:
                config = validate_start_params(
                    wallet_key,
                    capital,
                    token_address,
                    self.defaults.risk_percent if risk_percent is None else risk_percent,
                    self.defaults.slippage_percent if slippage_percent is None else slippage_percent,
                )
            except InvalidConfig as exc:
                self._log("start_rejected", {"user_id": user_id, "reason": str(exc)})
                return CommandResult(ERROR, str(exc))

            warnings: list[str] = []
            async with self._lock(user_id):
                session = await self._load_session(user_id, warnings)
                if session is not None and session.running:
                    return CommandResult(ERROR, "Trading session already running", warnings=warnings)

                config = replace(config, running=True)
                if session is None:
                    balances = await self._fetch(
                        user_id, "load portfolio", self.portfolio_store.get, user_id, warnings=warnings
                    )
                    session = TradingSession(
                        user_id=user_id,
                        config=config,
                        balances=balances or Balances.at_price(config.capital, 0.0, 0.0),
                    )
                    resumed = balances is not None
                else:
                    resumed = True

                market = await self.simulator.refresh_market(replace(session, config=config))
                session.config = config
                session.market = replace(market, percent_change=0.0)
                session.balances = session.balances.revalue(market.last_price)
                self._sessions[user_id] = session
                await self._persist(session, warnings)

            self._log(
                "session_started",
                {"user_id": user_id, "capital": config.capital, "resumed": resumed, "price": market.last_price},
            )
            if self.auto_tick:
                self._schedule(user_id)
            payload = session_snapshot(session)
            payload["resumed"] = resumed
            return CommandResult(SUCCESS, "Trading session started", payload, warnings)

        return await self._guard("start", user_id, work)

    async def stop(self, user_id: str) -> CommandResult:
        async def work() -> CommandResult:
            warnings: list[str] = []
            async with self._lock(user_id):
                session = await self._load_session(user_id, warnings)
                was_running = session is not None and session.running
                if was_running:
                    session.config = replace(session.config, running=False)
                    await self._persist(session, warnings)
            await self._unschedule(user_id)

            payload: dict[str, Any] = {"was_running": was_running, "final_stats": None}
            if session is not None:
                stats = compute_stats(session.ledger)
                payload["final_stats"] = {
                    "total_trades": stats.total_trades,
                    "winning_trades": stats.winning_trades,
                    "total_pnl": stats.total_pnl,
                    "total_value": session.balances.total_value,
                }
            if was_running:
                self._log("session_stopped", {"user_id": user_id})
                return CommandResult(SUCCESS, "Trading session stopped", payload, warnings)
            return CommandResult(SUCCESS, "Trading session was not running", payload, warnings)

        return await self._guard("stop", user_id, work)

    async def tick(self, user_id: str) -> CommandResult:
        async def work() -> CommandResult:
            warnings: list[str] = []
            async with self._lock(user_id):
                session = await self._load_session(user_id, warnings)
                if session is None:
                    return CommandResult(PAUSED, "No trading session, start one first", warnings=warnings)
                result = await self.simulator.tick(session)
                if result.status == TickStatus.PAUSED:
                    return CommandResult(PAUSED, "Trading session is not running", warnings=warnings)
                if result.status == TickStatus.RATE_LIMITED:
                    return CommandResult(RATE_LIMITED, result.reason, warnings=warnings)
                await self._persist(session, warnings, [result.trade] if result.trade else [])
                payload = self._tick_payload(session, result)
            message = f"Executed {result.trade.side.value}" if result.trade else result.reason
            return CommandResult(SUCCESS, message, payload, warnings)

        return await self._guard("tick", user_id, work)

    async def manual_trade(self, user_id: str, side: Any, amount: Optional[float] = None) -> CommandResult:
        async def work() -> CommandResult:
            try:
                trade_side = Side(str(getattr(side, "value", side)).lower())
            except ValueError:
                return CommandResult(ERROR, f"Unknown side: {side!r}")

            warnings: list[str] = []
            async with self._lock(user_id):
                session = await self._load_session(user_id, warnings)
                if session is None:
                    return CommandResult(PAUSED, "No trading session, start one first", warnings=warnings)
                try:
                    result = await self.simulator.manual_trade(session, trade_side, amount)
                except TradeRejected as exc:
                    self._log("trade_rejected", {"user_id": user_id, "side": trade_side.value, "reason": str(exc)})
                    return CommandResult(ERROR, str(exc), warnings=warnings)
                if result.status == TickStatus.PAUSED:
                    return CommandResult(PAUSED, "Trading session is not running", warnings=warnings)
                await self._persist(session, warnings, [result.trade])
                payload = self._tick_payload(session, result)
            return CommandResult(SUCCESS, f"Executed manual {trade_side.value}", payload, warnings)

        return await self._guard("manual_trade", user_id, work)

    async def reset(self, user_id: str) -> CommandResult:
        async def work() -> CommandResult:
            warnings: list[str] = []
            async with self._lock(user_id):
                session = await self._load_session(user_id, warnings)
                self._pending_trades.pop(user_id, None)
                if session is None:
                    try:
                        await asyncio.to_thread(self.ledger.clear, user_id)
                        await asyncio.to_thread(self.portfolio_store.delete, user_id)
                        await asyncio.to_thread(self.session_store.delete, user_id)
                    except StoreUnavailable as exc:
                        self._store_failed(user_id, "reset account", exc, warnings)
                    self._log("session_reset", {"user_id": user_id, "capital": None})
                    return CommandResult(SUCCESS, "Account reset", {"capital": None}, warnings)

                capital = session.config.capital
                session.config = replace(session.config, running=False)
                session.balances = Balances.at_price(capital, 0.0, 0.0)
                session.market = None
                session.ledger = []
                session.last_trade_at = None
                try:
                    await asyncio.to_thread(self.ledger.clear, user_id)
                except StoreUnavailable as exc:
                    self._store_failed(user_id, "clear trades", exc, warnings)
                await self._persist(session, warnings)
            await self._unschedule(user_id)
            self._log("session_reset", {"user_id": user_id, "capital": capital})
            return CommandResult(SUCCESS, "Account reset", session_snapshot(session), warnings)

        return await self._guard("reset", user_id, work)

    async def status(self, user_id: str) -> CommandResult:
        async def work() -> CommandResult:
            warnings: list[str] = []
            async with self._lock(user_id):
                session = await self._load_session(user_id, warnings)
                if session is None:
                    return CommandResult(SUCCESS, "No trading session", {"running": False}, warnings)
                payload = session_snapshot(session)
            return CommandResult(SUCCESS, "Running" if session.running else "Stopped", payload, warnings)

        return await self._guard("status", user_id, work)

    async def trades(self, user_id: str, limit: Optional[int] = None) -> CommandResult:
        async def work() -> CommandResult:
            warnings: list[str] = []
            count = self.trade_history_limit if limit is None else limit
            trades = await self._read(user_id, "list trades", self.ledger.list, user_id, count, warnings=warnings)
            if trades is None:
                session = self._sessions.get(user_id)
                trades = list(reversed(session.ledger))[:count] if session is not None else []
            return CommandResult(SUCCESS, f"{len(trades)} trades", {"trades": [trade_payload(t) for t in trades]}, warnings)

        return await self._guard("trades", user_id, work)

    def session(self, user_id: str) -> Optional[TradingSession]:
        return self._sessions.get(user_id)

    async def close(self) -> None:
        for user_id in list(self._schedulers):
            await self._unschedule(user_id)
        await self.simulator.prices.close()
        for store in (self.session_store, self.ledger, self.portfolio_store):
            await asyncio.to_thread(store.close)
