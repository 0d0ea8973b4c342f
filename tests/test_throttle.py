from datetime import datetime, timedelta, timezone

from solbot.execution import TradeThrottle


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_cooldown_blocks_recent_trade():
    throttle = TradeThrottle(cooldown_seconds=30)
    decision = throttle.allow(NOW - timedelta(seconds=10), now=NOW)
    assert decision.allow is False
    assert "Cooldown" in decision.reason


def test_cooldown_allows_after_window():
    throttle = TradeThrottle(cooldown_seconds=30)
    assert throttle.allow(NOW - timedelta(seconds=30), now=NOW).allow is True
    assert throttle.allow(None, now=NOW).allow is True


def test_daily_cap():
    throttle = TradeThrottle(cooldown_seconds=0, max_trades_per_day=3)
    assert throttle.allow(None, trades_today=2, now=NOW).allow is True
    decision = throttle.allow(None, trades_today=3, now=NOW)
    assert decision.allow is False
    assert decision.reason == "Daily trade cap reached"


def test_naive_times_are_treated_as_utc():
    throttle = TradeThrottle(cooldown_seconds=30)
    assert throttle.allow(datetime(2024, 6, 1, 11, 59, 50), now=NOW).allow is False
