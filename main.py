#!/usr/bin/env python3
"""
MarginDefense — CLI entry point.

Usage:
    python main.py                        # Report on the bundled demo agency
    python main.py --days 30              # Widen the metrics window
    python main.py --data agency.json     # Report on a JSON dataset
    python main.py --text "description"   # Classify a single work description
    python main.py --json                 # Output raw JSON instead of the report

API server:
    uvicorn margindefense.api:app --reload --port 8080
    curl http://localhost:8080/alerts
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from margindefense.config import Thresholds
from margindefense.data_loader import load_demo_store, load_store_from_json
from margindefense.pipeline import MarginEngine


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Work classification and margin risk analytics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--data", type=str, help="JSON dataset to load instead of the demo agency")
    parser.add_argument("--days", type=float, default=None, help="Metrics window in days")
    parser.add_argument("--top", type=int, default=None, help="Hall of shame size")
    parser.add_argument("--text", type=str, help="Classify a single work description")
    parser.add_argument("--json", action="store_true", help="Output raw JSON instead of formatted report")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log store activity")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = load_store_from_json(args.data) if args.data else load_demo_store()
    engine = MarginEngine(store, Thresholds.from_env())

    if args.text:
        result = engine.classify(args.text)
        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
        else:
            print(f"Analyzing: {args.text!r}\n")
            print(f"Category:    {result.category}")
            print(f"Burn reason: {result.burn_reason or '-'}")
            print(f"Confidence:  {result.confidence:.0%}")
            print(f"Rationale:   {result.rationale}")
        return 0

    if args.json:
        output = {
            "metrics": engine.get_period_metrics(args.days).to_dict(),
            "burn_by_reason": [r.to_dict() for r in engine.get_burn_by_sub_reason(args.days)],
            "burn_by_client": [r.to_dict() for r in engine.get_burn_by_client(args.days)],
            "hall_of_shame": [e.to_dict() for e in engine.get_hall_of_shame(args.top)],
            "clients": [c.to_dict() for c in engine.get_client_risk_metrics()],
            "alerts": [a.to_dict() for a in engine.get_alerts(args.days)],
        }
        print(json.dumps(output, indent=2))
    else:
        engine.print_report(days=args.days, top=args.top)

    # Exit summary
    critical = [a for a in engine.get_alerts(args.days) if a.severity in ("critical", "emergency")]
    if critical:
        print(f"⚠️  {len(critical)} critical margin alert(s)", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
