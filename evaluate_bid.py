#!/usr/bin/env python3
"""Evaluate a service request JSON file and print the bid recommendation."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from src.bidengine.errors import ConfigurationInvalid, InputValidationError
from src.bidengine.schemas.requests import parse_fleet_utilization
from src.bidengine.services.engine import BidEngine
from src.bidengine.services.outputs.formatter import evaluation_summary, evaluation_to_json_text
from src.bidengine.services.pricing.config import load_pricing_config


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("request_file", type=Path, help="JSON file with a 'request' object (or the request itself).")
    parser.add_argument("--json", action="store_true", help="Print the full evaluation as JSON.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    document = json.loads(args.request_file.read_text(encoding="utf-8"))
    request = document.get("request", document)
    try:
        utilization = parse_fleet_utilization(document.get("utilization") or None)
        engine = BidEngine(load_pricing_config(document.get("pricing_config")))
        result = engine.evaluate_sync(request, utilization)
    except (InputValidationError, ConfigurationInvalid) as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 2

    print(evaluation_to_json_text(result) if args.json else evaluation_summary(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
