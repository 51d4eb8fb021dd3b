"""Run one reconciliation sweep over shipments and returns.

Meant to be scheduled externally (cron, a Kubernetes CronJob). Exits with
status 1 when anything was found so schedulers can flag the run.

Usage:
    python src/reconcile.py
    python src/reconcile.py --stale-hours 12 --return-stale-hours 48
    python src/reconcile.py --as-of 2026-01-31T00:00:00+00:00
"""

import argparse
import json
import sys
from datetime import datetime

from reconciliation.scanner import ReconciliationScanner


def _parse_as_of(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Not an ISO-8601 timestamp: {value}") from exc


def _positive(value: str) -> int:
    hours = int(value)
    if hours <= 0:
        raise argparse.ArgumentTypeError("Hours must be positive")
    return hours


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Parcelflow reconciliation sweep")
    parser.add_argument("--stale-hours", type=_positive, help="Shipment freshness threshold (default: SHIPMENT_STALE_HOURS)")
    parser.add_argument("--return-stale-hours", type=_positive, help="Return freshness threshold (default: RETURN_STALE_HOURS)")
    parser.add_argument("--as-of", type=_parse_as_of, help="Evaluate as of this instant (default: now)")
    args = parser.parse_args(argv)

    from returns.domain import returns
    from shipping.domain import shipping

    shipping.init()
    returns.init()

    scanner = ReconciliationScanner(
        shipping,
        returns,
        shipment_hours=args.stale_hours,
        return_hours=args.return_stale_hours,
    )
    report = scanner.run(args.as_of)

    print(
        json.dumps(
            {
                "as_of": report.as_of.isoformat(),
                "counts": report.counts(),
                "findings": [finding.to_dict() for finding in report.findings],
            },
            indent=2,
        )
    )
    return 0 if report.is_clean else 1


if __name__ == "__main__":
    sys.exit(main())
