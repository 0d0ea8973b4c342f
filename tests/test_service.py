from __future__ import annotations

import asyncio

import pytest

from solbot.execution import TradeThrottle
from solbot.monitoring import AuditLog, MemoryNotifier, Monitor
from solbot.pricing import SOL_MINT, PriceChain, PriceSource, RandomWalkGenerator
from solbot.runtime import TradingService, read_session_status, write_session_status
from solbot.simulator.engine import PortfolioSimulator
from solbot.storage import MemoryPortfolioStore, MemorySessionStore, MemoryTradeLedger, StoreUnavailable

SEED_PHRASE = " ".join(["word"] * 12)


class ScriptedSource(PriceSource):
    """Hands out prices in order and then repeats the last one."""

    name = "scripted"

    def __init__(self, prices) -> None:
        self.prices = list(prices)

    async def get_price(self, base_asset: str, quote_asset: str) -> float:
        if len(self.prices) > 1:
            return self.prices.pop(0)
        return self.prices[0]


class FlakyLedger(MemoryTradeLedger):
    def __init__(self) -> None:
        super().__init__()
        self.down = False

    def append(self, user_id, trade) -> None:
        if self.down:
            raise StoreUnavailable("ledger offline")
        super().append(user_id, trade)

    def list(self, user_id, limit=None):
        if self.down:
            raise StoreUnavailable("ledger offline")
        return super().list(user_id, limit)


class FlakyPortfolio(MemoryPortfolioStore):
    def __init__(self) -> None:
        super().__init__()
        self.down = False

    def get(self, user_id):
        if self.down:
            raise StoreUnavailable("portfolio offline")
        return super().get(user_id)


def _stores():
    return MemorySessionStore(), MemoryTradeLedger(), MemoryPortfolioStore()


def _service(prices, cooldown=0.0, stores=None, audit_log=None, monitor=None, **kwargs) -> TradingService:
    chain = PriceChain([ScriptedSource(prices)], generator=RandomWalkGenerator(seed=1))
    simulator = PortfolioSimulator(chain, throttle=TradeThrottle(cooldown_seconds=cooldown), audit_log=audit_log)
    session_store, ledger, portfolio = stores or _stores()
    return TradingService(
        simulator,
        session_store,
        ledger,
        portfolio,
        audit_log=audit_log,
        monitor=monitor,
        **kwargs,
    )


async def _start(service: TradingService, user_id: str = "alice", capital=1000.0):
    return await service.start(user_id, SEED_PHRASE, capital, SOL_MINT, risk_percent=10, slippage_percent=1)


def test_start_initialises_portfolio_at_capital():
    async def scenario():
        service = _service([150.0])
        result = await _start(service)
        assert result.ok
        assert result.payload["running"] is True
        assert result.payload["resumed"] is False
        assert result.payload["balances"]["quote_amount"] == 1000.0
        assert result.payload["balances"]["base_amount"] == 0.0
        assert result.payload["market"]["last_price"] == 150.0
        assert result.payload["market"]["percent_change"] == 0.0
        assert "word" not in str(result.payload)

    asyncio.run(scenario())


@pytest.mark.parametrize(
    "wallet_key, capital, address",
    [
        ("", 1000, SOL_MINT),
        (SEED_PHRASE, -5, SOL_MINT),
        (SEED_PHRASE, "lots", SOL_MINT),
        (SEED_PHRASE, 1000, "not-a-mint"),
        ("short", 1000, SOL_MINT),
    ],
)
def test_start_rejects_invalid_parameters(wallet_key, capital, address):
    async def scenario():
        service = _service([150.0])
        result = await service.start("alice", wallet_key, capital, address)
        assert result.status == "error"
        status = await service.status("alice")
        assert status.payload == {"running": False}

    asyncio.run(scenario())


def test_start_twice_is_an_error():
    async def scenario():
        service = _service([150.0])
        await _start(service)
        again = await _start(service)
        assert again.status == "error"
        assert "already running" in again.message

    asyncio.run(scenario())


def test_tick_buys_on_drop_and_sells_on_rise():
    async def scenario():
        service = _service([150.0, 146.0, 150.0])
        await _start(service)

        buy = await service.tick("alice")
        assert buy.ok
        trade = buy.payload["trade"]
        assert trade["side"] == "buy"
        assert trade["amount"] == pytest.approx(100.0 / 146.0)
        assert trade["executed_price"] == pytest.approx(146.0 * 1.01)
        assert buy.payload["balances"]["quote_amount"] == pytest.approx(899.0)

        sell = await service.tick("alice")
        assert sell.payload["trade"]["side"] == "sell"
        assert sell.payload["trade"]["amount"] == pytest.approx(0.3 * 100.0 / 146.0)

        status = await service.status("alice")
        trades = await service.trades("alice")
        assert status.payload["stats"]["total_trades"] == len(trades.payload["trades"]) == 2
        assert [t["side"] for t in trades.payload["trades"]] == ["sell", "buy"]

    asyncio.run(scenario())


def test_tick_without_signal_only_moves_the_market():
    async def scenario():
        service = _service([150.0, 150.5])
        await _start(service)
        result = await service.tick("alice")
        assert result.ok
        assert result.payload["trade"] is None
        assert result.payload["market"]["last_price"] == 150.5
        assert result.message == "No signal"

    asyncio.run(scenario())


def test_tick_is_paused_without_a_running_session():
    async def scenario():
        service = _service([150.0, 140.0])
        assert (await service.tick("alice")).status == "paused"

        await _start(service)
        await service.stop("alice")
        result = await service.tick("alice")
        assert result.status == "paused"
        assert service.session("alice").ledger == []
        assert (await service.manual_trade("alice", "buy", 0.1)).status == "paused"

    asyncio.run(scenario())


def test_cooldown_rate_limits_without_mutation():
    async def scenario():
        service = _service([150.0, 146.0, 140.0], cooldown=30.0)
        await _start(service)
        await service.tick("alice")
        before = service.session("alice")
        balances, market, trades = before.balances, before.market, list(before.ledger)

        result = await service.tick("alice")
        assert result.status == "rate_limited"
        assert "Cooldown" in result.message
        after = service.session("alice")
        assert after.balances == balances
        assert after.market == market
        assert after.ledger == trades

    asyncio.run(scenario())


def test_manual_trade_fills_at_fresh_price():
    async def scenario():
        service = _service([150.0, 152.0], cooldown=30.0)
        await _start(service)
        result = await service.manual_trade("alice", "BUY", 1.0)
        assert result.ok
        assert result.payload["trade"]["origin"] == "manual"
        assert result.payload["trade"]["executed_price"] == pytest.approx(152.0 * 1.01)
        # manual fills ignore the cooldown
        assert (await service.manual_trade("alice", "sell", 0.5)).ok

    asyncio.run(scenario())


def test_manual_trade_rejections():
    async def scenario():
        service = _service([150.0])
        await _start(service, capital=100.0)
        assert (await service.manual_trade("alice", "hold")).status == "error"

        too_big = await service.manual_trade("alice", "buy", 10.0)
        assert too_big.status == "error"
        nothing_held = await service.manual_trade("alice", "sell")
        assert nothing_held.status == "error"

        session = service.session("alice")
        assert session.ledger == []
        assert session.balances.quote_amount == 100.0

    asyncio.run(scenario())


def test_stop_is_idempotent():
    async def scenario():
        service = _service([150.0, 146.0])
        await _start(service)
        await service.tick("alice")

        first = await service.stop("alice")
        assert first.message == "Trading session stopped"
        assert first.payload["was_running"] is True
        assert first.payload["final_stats"]["total_trades"] == 1

        second = await service.stop("alice")
        assert second.ok
        assert second.message == "Trading session was not running"
        assert second.payload["was_running"] is False

    asyncio.run(scenario())


def test_restart_resumes_stored_portfolio():
    async def scenario():
        stores = _stores()
        service = _service([150.0, 146.0], stores=stores)
        await _start(service)
        await service.tick("alice")
        await service.stop("alice")
        quote = service.session("alice").balances.quote_amount

        fresh = _service([150.0], stores=stores)
        status = await fresh.status("alice")
        assert status.message == "Stopped"
        assert status.payload["stats"]["total_trades"] == 1

        result = await _start(fresh)
        assert result.payload["resumed"] is True
        assert result.payload["balances"]["quote_amount"] == pytest.approx(quote)

    asyncio.run(scenario())


def test_reset_restores_capital_and_clears_trades():
    async def scenario():
        stores = _stores()
        service = _service([150.0, 146.0], stores=stores)
        await _start(service)
        await service.tick("alice")

        result = await service.reset("alice")
        assert result.ok
        assert result.payload["running"] is False
        assert result.payload["balances"]["quote_amount"] == 1000.0
        assert result.payload["balances"]["base_amount"] == 0.0
        assert result.payload["market"] is None
        assert (await service.trades("alice")).payload["trades"] == []
        assert stores[1].list("alice") == []

        missing = await service.reset("bob")
        assert missing.ok
        assert missing.payload == {"capital": None}

    asyncio.run(scenario())


def test_trades_limit_returns_newest_first():
    async def scenario():
        service = _service([150.0, 146.0, 141.0, 136.0])
        await _start(service)
        for _ in range(3):
            await service.tick("alice")
        trades = (await service.trades("alice", limit=2)).payload["trades"]
        assert len(trades) == 2
        assert trades[0]["executed_price"] == pytest.approx(136.0 * 1.01)

    asyncio.run(scenario())


def test_store_failure_warns_and_queues_trades(tmp_path):
    async def scenario():
        audit = AuditLog(tmp_path / "audit.log")
        notifier = MemoryNotifier()
        ledger = FlakyLedger()
        stores = (MemorySessionStore(), ledger, MemoryPortfolioStore())
        service = _service([150.0, 146.0, 141.0], stores=stores, audit_log=audit, monitor=Monitor(notifier))
        await _start(service)

        ledger.down = True
        result = await service.tick("alice")
        assert result.ok
        assert result.warnings
        assert service.session("alice").running
        assert notifier.messages[0][0] == "STORE_UNAVAILABLE"
        assert audit.events("store_unavailable")

        fallback = await service.trades("alice")
        assert len(fallback.payload["trades"]) == 1
        assert fallback.warnings

        ledger.down = False
        second = await service.tick("alice")
        assert second.ok
        assert second.warnings == []
        assert len(ledger.list("alice")) == 2
        assert stores[2].get("alice") == service.session("alice").balances

    asyncio.run(scenario())


def test_commands_for_one_user_are_serialised():
    async def scenario():
        service = _service([150.0, 146.0, 141.0, 136.0, 131.0])
        await _start(service)
        results = await asyncio.gather(*(service.tick("alice") for _ in range(4)))
        assert all(result.ok for result in results)
        session = service.session("alice")
        assert len(session.ledger) == 4
        assert len({trade.id for trade in session.ledger}) == 4

    asyncio.run(scenario())


def test_auto_tick_runs_until_stopped(tmp_path):
    async def scenario():
        audit = AuditLog(tmp_path / "audit.log")
        service = _service([150.0], audit_log=audit, auto_tick=True, tick_interval_seconds=0.01)
        await _start(service)
        assert service.is_scheduled("alice")
        await asyncio.sleep(0.1)
        await service.stop("alice")
        assert not service.is_scheduled("alice")

        ticks = len(audit.events("tick"))
        assert ticks >= 1
        await asyncio.sleep(0.05)
        assert len(audit.events("tick")) == ticks
        await service.close()

    asyncio.run(scenario())


def test_status_snapshot_is_written_as_json(tmp_path):
    async def scenario():
        service = _service([150.0, 146.0])
        await _start(service)
        await service.tick("alice")
        return await service.status("alice")

    status = asyncio.run(scenario())
    path = tmp_path / "status" / "alice.json"
    write_session_status(path, status.payload)

    snapshot = read_session_status(path)
    assert snapshot["user_id"] == "alice"
    assert snapshot["running"] is True
    assert snapshot["stats"]["total_trades"] == 1
    assert snapshot["recent_trades"][0]["side"] == "buy"
    assert read_session_status(tmp_path / "missing.json") is None


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
def test_manual_trade_rejects_non_finite_amounts(amount):
    async def scenario():
        stores = _stores()
        service = _service([150.0], stores=stores)
        await _start(service)
        before = stores[2].get("alice")

        result = await service.manual_trade("alice", "buy", amount)

        assert result.status == "error"
        assert service.session("alice").ledger == []
        assert stores[2].get("alice") == before
        assert stores[1].list("alice") == []

    asyncio.run(scenario())


@pytest.mark.parametrize("failing", ["portfolio", "ledger"])
def test_failed_cold_load_is_not_cached_or_written(failing):
    async def scenario():
        ledger, portfolio = FlakyLedger(), FlakyPortfolio()
        stores = (MemorySessionStore(), ledger, portfolio)
        first = _service([150.0, 146.0], stores=stores)
        await _start(first)
        await first.tick("alice")
        await first.stop("alice")
        stored = portfolio.get("alice")

        fresh = _service([150.0], stores=stores)
        flaky = portfolio if failing == "portfolio" else ledger
        flaky.down = True
        status = await fresh.status("alice")
        assert status.status == "error"
        assert status.warnings
        assert fresh.session("alice") is None
        assert (await _start(fresh)).status == "error"
        assert (await _start(fresh, user_id="bob")).status == ("error" if failing == "portfolio" else "success")

        flaky.down = False
        assert portfolio.get("alice") == stored
        assert len(ledger.list("alice")) == 1

        resumed = await _start(fresh)
        assert resumed.ok
        assert resumed.payload["resumed"] is True
        assert resumed.payload["balances"]["quote_amount"] == pytest.approx(stored.quote_amount)
        assert resumed.payload["balances"]["base_amount"] == pytest.approx(stored.base_amount)
        assert resumed.payload["stats"]["total_trades"] == 1

    asyncio.run(scenario())


def test_running_session_resumes_ticking_after_restart(tmp_path):
    async def scenario():
        stores = _stores()
        first = _service([150.0], stores=stores)
        await _start(first)

        audit = AuditLog(tmp_path / "audit.log")
        restarted = _service([150.0], stores=stores, audit_log=audit, auto_tick=True, tick_interval_seconds=0.01)
        status = await restarted.status("alice")
        assert status.message == "Running"
        assert restarted.is_scheduled("alice")
        await asyncio.sleep(0.05)
        await restarted.stop("alice")

        assert not restarted.is_scheduled("alice")
        assert audit.events("session_resumed")
        assert audit.events("tick")
        await restarted.close()

    asyncio.run(scenario())
