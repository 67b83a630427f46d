#!/usr/bin/env python3
"""Summarize sourcelink JSON line logs for ops/CI usage."""

from __future__ import annotations

import argparse
import json
import math
from collections import Counter
from pathlib import Path
from typing import Any


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarize sourcelink structured logs.")
    parser.add_argument("files", nargs="+", help="One or more JSONL log files.")
    parser.add_argument("--json", action="store_true", help="Output JSON.")
    return parser.parse_args()


def _percentile(values: list[int], p: float) -> int | None:
    if not values:
        return None
    ordered = sorted(values)
    index = min(len(ordered) - 1, max(0, math.ceil((p / 100) * len(ordered)) - 1))
    return ordered[index]


def summarize_log_files(paths: list[Path]) -> dict[str, Any]:
    event_counts: Counter[str] = Counter()
    outcome_counts: Counter[str] = Counter()
    status_counts: Counter[str] = Counter()
    failure_counts: Counter[str] = Counter()
    total_ms_values: list[int] = []
    matched_total = 0
    unmatched_total = 0
    parse_errors = 0
    lines_total = 0

    for path in paths:
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError:
            parse_errors += 1
            continue

        for line in lines:
            lines_total += 1
            raw = line.strip()
            if not raw:
                continue

            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                parse_errors += 1
                continue

            if not isinstance(payload, dict):
                parse_errors += 1
                continue

            event = payload.get("event")
            if isinstance(event, str):
                event_counts[event] += 1
                if event == "mapping_failed":
                    failure_counts[str(payload.get("error_type", "unknown"))] += 1

            outcome = payload.get("outcome")
            if isinstance(outcome, str):
                outcome_counts[outcome] += 1

            if "status_code" in payload:
                status_counts[str(payload["status_code"])] += 1

            matched = payload.get("matched_count")
            if isinstance(matched, int):
                matched_total += matched
            unmatched = payload.get("unmatched_count")
            if isinstance(unmatched, int):
                unmatched_total += unmatched

            timing = payload.get("timing")
            if isinstance(timing, dict):
                total_ms = timing.get("total_ms")
                if isinstance(total_ms, int | float):
                    total_ms_values.append(int(total_ms))

    return {
        "files": [str(path) for path in paths],
        "lines_total": lines_total,
        "parse_errors": parse_errors,
        "event_counts": dict(sorted(event_counts.items())),
        "outcome_counts": dict(sorted(outcome_counts.items())),
        "http_status_counts": dict(sorted(status_counts.items())),
        "mapping_failures": dict(sorted(failure_counts.items())),
        "matched_total": matched_total,
        "unmatched_total": unmatched_total,
        "total_ms_p50": _percentile(total_ms_values, 50),
        "total_ms_p95": _percentile(total_ms_values, 95),
    }


def main() -> None:
    args = _parse_args()
    paths = [Path(item).expanduser() for item in args.files]
    summary = summarize_log_files(paths)

    if args.json:
        print(json.dumps(summary, ensure_ascii=False, indent=2, sort_keys=True))
        return

    print("Sourcelink Log Summary")
    for key in (
        "lines_total",
        "parse_errors",
        "event_counts",
        "outcome_counts",
        "http_status_counts",
        "mapping_failures",
        "matched_total",
        "unmatched_total",
        "total_ms_p50",
        "total_ms_p95",
    ):
        print(f"{key}={summary[key]}")


if __name__ == "__main__":
    main()
