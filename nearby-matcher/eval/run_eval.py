"""Scenario replay harness for the nearby matcher.

Each JSONL line holds ``{"sid", "request", "expected_user_ids"}``; the request
is posted to ``/nearby`` and the returned ids are compared in order.

Usage:
  python run_eval.py --base http://localhost:8010 --scenarios eval/scenarios.jsonl --out eval/report
"""

from __future__ import annotations

import argparse
import csv
import json
import statistics
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional

import requests


def load_jsonl(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as fh:
        return [json.loads(line) for line in fh if line.strip()]


@dataclass
class EvalResult:
    sid: str
    passed: bool
    latency_ms: float
    expected: str
    returned: str
    mode: str = ""
    error: Optional[str] = None


def evaluate_scenario(base_url: str, scenario: dict[str, Any], timeout: float) -> EvalResult:
    url = f"{base_url.rstrip('/')}/nearby"
    expected = [str(uid) for uid in scenario.get("expected_user_ids", [])]
    started = time.perf_counter()
    try:
        response = requests.post(url, json=scenario["request"], timeout=timeout)
    except requests.RequestException as exc:
        latency_ms = (time.perf_counter() - started) * 1000
        return EvalResult(scenario["sid"], False, latency_ms, ",".join(expected), "", error=str(exc))
    latency_ms = (time.perf_counter() - started) * 1000

    if not response.ok:
        return EvalResult(
            sid=scenario["sid"],
            passed=False,
            latency_ms=latency_ms,
            expected=",".join(expected),
            returned="",
            error=f"HTTP {response.status_code}: {response.text[:200]}",
        )

    try:
        data = response.json()
    except ValueError as exc:
        return EvalResult(scenario["sid"], False, latency_ms, ",".join(expected), "", error=f"invalid JSON: {exc}")

    returned = [item.get("user_id", "") for item in data.get("items", [])]
    return EvalResult(
        sid=scenario["sid"],
        passed=returned == expected,
        latency_ms=latency_ms,
        expected=",".join(expected),
        returned=",".join(returned),
        mode=data.get("mode", ""),
    )


def write_report(results: list[EvalResult], out_dir: Path) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / "results.csv"
    with path.open("w", encoding="utf-8", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=list(asdict(results[0]).keys()) if results else ["sid"])
        writer.writeheader()
        for r in results:
            writer.writerow(asdict(r))
    return path


def main() -> int:
    parser = argparse.ArgumentParser(description="Replay nearby-search scenarios against a running service")
    parser.add_argument("--base", default="http://localhost:8010")
    parser.add_argument("--scenarios", default=str(Path(__file__).resolve().parent / "scenarios.jsonl"))
    parser.add_argument("--out", default=str(Path(__file__).resolve().parent / "report"))
    parser.add_argument("--timeout", type=float, default=10.0)
    args = parser.parse_args()

    scenarios = load_jsonl(Path(args.scenarios))
    results = [evaluate_scenario(args.base, s, args.timeout) for s in scenarios]
    report = write_report(results, Path(args.out))

    passed = sum(1 for r in results if r.passed)
    latencies = [r.latency_ms for r in results]
    median_latency = statistics.median(latencies) if latencies else 0.0
    for r in results:
        status = "PASS" if r.passed else "FAIL"
        detail = r.error or f"expected=[{r.expected}] returned=[{r.returned}]"
        print(f"{status} {r.sid} ({r.latency_ms:.1f} ms) {detail}")
    print(f"{passed}/{len(results)} scenarios passed, median latency {median_latency:.1f} ms, report {report}")
    return 0 if passed == len(results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
