from __future__ import annotations

import argparse
import asyncio
import json
import os
from datetime import datetime, timezone
from pathlib import Path

from solbot.config import compute_config_hash, freeze_config, load_config, verify_config_lock
from solbot.monitoring import AuditLog, AuditNotifier, FanoutNotifier, LogNotifier, Monitor
from solbot.runtime import build_service, write_session_status


def _run_id(prefix: str, config_hash: str) -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return f"{prefix}-{stamp}-{config_hash[:8]}"


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a paper-trading session on the tick scheduler.")
    parser.add_argument("--config", default="configs/simulator.yaml")
    parser.add_argument("--user", default="local")
    parser.add_argument("--capital", type=float, default=500.0)
    parser.add_argument("--address", default=None, help="Token mint to trade (defaults to the config base asset)")
    parser.add_argument("--risk", type=float, default=None)
    parser.add_argument("--slippage", type=float, default=None)
    parser.add_argument("--duration", type=float, default=60.0, help="Seconds to run before stopping")
    parser.add_argument("--reset", action="store_true", help="Reset the account before starting")
    parser.add_argument("--freeze", action="store_true", help="Write a lock file for the config before running")
    parser.add_argument("--require-lock", action="store_true", help="Refuse to run if the config lock does not match")
    args = parser.parse_args()

    config_path = Path(args.config)
    if args.freeze:
        freeze_config(config_path)
    if args.require_lock and not verify_config_lock(config_path):
        raise SystemExit("Config lock mismatch; run with --freeze to accept the current config")
    config = load_config(config_path)
    config_hash = compute_config_hash(config_path)
    run_id = _run_id(config.run_id_prefix, config_hash)

    audit = AuditLog(config.runtime.audit_log_path, run_id=run_id, config_hash=config_hash)
    audit.log("run_start", {"config": str(config_path), "user_id": args.user})
    monitor = Monitor(FanoutNotifier([LogNotifier(), AuditNotifier(audit)]))
    service = build_service(config, audit_log=audit, monitor=monitor)

    wallet_key = os.getenv("SOLBOT_WALLET_KEY")
    if not wallet_key:
        raise SystemExit("SOLBOT_WALLET_KEY is required (format-checked only, never stored)")
    status_path = Path(config.runtime.status_dir) / f"{args.user}.json"

    async def _runner() -> None:
        if args.reset:
            await service.reset(args.user)
        result = await service.start(
            args.user,
            wallet_key,
            args.capital,
            args.address or config.market.base_asset,
            risk_percent=args.risk,
            slippage_percent=args.slippage,
        )
        print(f"start: {result.status} {result.message}")
        for warning in result.warnings:
            print(f"  warning: {warning}")
        if not result.ok:
            return
        if not config.runtime.auto_tick:
            print("auto_tick is disabled; ticking once")
            await service.tick(args.user)
        try:
            await asyncio.sleep(args.duration)
        finally:
            stopped = await service.stop(args.user)
            print(f"stop: {json.dumps(stopped.payload.get('final_stats'), indent=2)}")
            status = await service.status(args.user)
            write_session_status(status_path, status.payload)
            await service.close()

    try:
        asyncio.run(_runner())
    except KeyboardInterrupt:
        audit.log("run_stop", {"reason": "keyboard_interrupt"})
        print("Session stopped")


if __name__ == "__main__":
    main()
