"""PayGram CLI — operator commands for the confidential payroll engine.

Usage:
    python -m paygram.cli demo
    python -m paygram.cli demo --funding 50000 --advance-hours 25
    python -m paygram.cli verify-events data/events.jsonl
    python -m paygram.cli constants
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from eth_account import Account

from paygram.chain.runtime import BlockClock, Runtime
from paygram.config import Settings
from paygram.deployment import deploy_paygram
from paygram.models.payroll import DELAY_PERIOD_SECONDS, MAX_BATCH_SIZE, PaymentStatus
from paygram.models.trust import (
    HIGH_TRUST_THRESHOLD,
    MAX_SCORE,
    MEDIUM_TRUST_THRESHOLD,
    SCORE_EXPIRY_SECONDS,
)
from paygram.persistence.event_log import EventLog

# (salary, role, trust score)
DEMO_EMPLOYEES = [
    (5000, "Senior Engineer", 85),
    (3000, "Product Manager", 55),
    (2000, "Junior Developer", 25),
]


def cmd_demo(args: argparse.Namespace, settings: Settings) -> int:
    """Deploy, seed three employees across all tiers, run one payroll."""
    runtime = Runtime(
        clock=BlockClock(settings.start_time),
        event_log=EventLog(storage_path=settings.event_log_path),
    )
    deployer = Account.create().address
    employer = Account.create().address
    deployment = deploy_paygram(
        runtime, deployer, employer, core_funding=args.funding
    )
    core, registry = deployment.core, deployment.registry

    wallets = []
    for salary, role, score in DEMO_EMPLOYEES:
        wallet = Account.create().address
        core.add_employee_plaintext(wallet, salary, role, caller=employer)
        registry.set_trust_score_plaintext(wallet, score, caller=deployer)
        wallets.append(wallet)

    processed = core.execute_payroll(caller=employer)

    if args.advance_hours:
        runtime.clock.advance(args.advance_hours * 3600)
        for payment_id in core.get_releasable_payments():
            if core.get_pending_payment(payment_id).status == PaymentStatus.DELAYED:
                core.release_payment(payment_id, caller=employer)

    employees: list[dict[str, Any]] = []
    for wallet in wallets:
        record = core.get_employee(wallet)
        payments = []
        for payment_id in core.get_pending_payments_for_employee(wallet):
            payment = core.get_pending_payment(payment_id)
            payments.append({
                "id": payment_id,
                "status": payment.status.name,
                # Decrypted with the employer's grant.
                "amount": runtime.engine.user_decrypt(payment.encrypted_amount, employer),
                "release_time": payment.release_time,
                "milestone": payment.milestone,
            })
        employees.append({"wallet": wallet, "role": record.role, "payments": payments})

    summary = {
        "registry": registry.address,
        "token": deployment.token.address,
        "core": core.address,
        "employer": employer,
        "employees_processed": processed,
        "next_payment_id": core.next_payment_id,
        "employees": employees,
        "events_written": runtime.event_log.count,
        "event_log": str(settings.event_log_path),
    }
    print(json.dumps(summary, indent=2))
    return 0


def cmd_verify_events(args: argparse.Namespace, settings: Settings) -> int:
    """Load an event log with integrity checks and print counts by kind."""
    path = Path(args.path)
    if not path.exists():
        print(f"Event log not found: {path}", file=sys.stderr)
        return 1
    try:
        log = EventLog(storage_path=path)
    except (ValueError, KeyError, json.JSONDecodeError) as exc:
        print(f"Verification failed: {exc}", file=sys.stderr)
        return 1
    print(json.dumps({"events": log.count, "by_kind": log.counts_by_kind()}, indent=2))
    return 0


def cmd_constants(args: argparse.Namespace, settings: Settings) -> int:
    print(json.dumps({
        "HIGH_TRUST_THRESHOLD": HIGH_TRUST_THRESHOLD,
        "MEDIUM_TRUST_THRESHOLD": MEDIUM_TRUST_THRESHOLD,
        "MAX_SCORE": MAX_SCORE,
        "SCORE_EXPIRY_SECONDS": SCORE_EXPIRY_SECONDS,
        "DELAY_PERIOD_SECONDS": DELAY_PERIOD_SECONDS,
        "MAX_BATCH_SIZE": MAX_BATCH_SIZE,
    }, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paygram",
        description="PayGram — confidential trust-gated payroll engine",
    )
    sub = parser.add_subparsers(dest="command")

    p_demo = sub.add_parser("demo", help="Deploy, seed and run one payroll in memory")
    p_demo.add_argument(
        "--funding", type=int, default=50_000,
        help="cPAY minted to the payroll core (default: 50000)",
    )
    p_demo.add_argument(
        "--advance-hours", type=int, default=0,
        help="Advance the clock and release matured delayed payments",
    )

    p_verify = sub.add_parser("verify-events", help="Verify a JSONL event log")
    p_verify.add_argument("path", help="Path to events.jsonl")

    sub.add_parser("constants", help="Print protocol constants")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "demo": cmd_demo,
        "verify-events": cmd_verify_events,
        "constants": cmd_constants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args, settings)


if __name__ == "__main__":
    raise SystemExit(main())
