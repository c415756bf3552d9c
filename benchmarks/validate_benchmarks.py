#!/usr/bin/env python3
"""Validate benchmark outputs against regression thresholds.

This script is intended to run in CI after ``benchmarks/bench_dds.py``. It reads
CSV outputs from ``bench_out`` (or a supplied directory) and enforces
conservative performance and correctness targets so regressions surface early.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Dict, List, Tuple

import pandas as pd


# Shared CI runners build roughly 300k observations/sec; the floor only
# catches order-of-magnitude regressions.
THROUGHPUT_MIN_OPS = 50_000
ENCODE_LATENCY_P95_MAX_US = 20_000.0
# Header (17 bytes) amortized over the buckets plus two short varints each.
BYTES_PER_BUCKET_MAX = 8.0
MERGE_TIME_MAX_S = 0.5


def _load_csv(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Expected benchmark artifact missing: {path}")
    return pd.read_csv(path)


def _check_throughput(df: pd.DataFrame) -> Tuple[bool, float]:
    minimum = float(df["observations_per_sec"].min()) if not df.empty else float("inf")
    return minimum >= THROUGHPUT_MIN_OPS, minimum


def _check_encode_latency(df: pd.DataFrame) -> Tuple[bool, float]:
    if df.empty:
        return True, 0.0
    p95 = float(df["latency_us"].quantile(0.95))
    return p95 <= ENCODE_LATENCY_P95_MAX_US, p95


def _check_encoded_size(df: pd.DataFrame) -> Tuple[bool, float]:
    if df.empty:
        return True, 0.0
    worst = float(df["bytes_per_bucket"].max())
    return worst <= BYTES_PER_BUCKET_MAX, worst


def _check_merge(df: pd.DataFrame) -> Tuple[bool, Dict[str, object]]:
    if df.empty:
        return True, {"max_time_s": 0.0, "mismatches": 0}
    maximum = float(df["merge_time_s"].max())
    mismatches = int((~(df["buckets_match"] & df["count_match"])).sum())
    return maximum <= MERGE_TIME_MAX_S and mismatches == 0, {"max_time_s": round(maximum, 4), "mismatches": mismatches}


def _summarise(results: Dict[str, Dict[str, object]]) -> str:
    lines: List[str] = ["# Benchmark validation summary", ""]
    lines.append("| Check | Threshold | Observed | Status |")
    lines.append("| --- | --- | --- | --- |")
    for name, payload in results.items():
        threshold = payload["threshold"]
        observed = payload["observed"]
        status = "PASS" if payload["ok"] else "FAIL"
        lines.append(f"| {name} | {threshold} | {observed} | {status} |")
    lines.append("")
    lines.append("```json")
    lines.append(json.dumps(results, indent=2, sort_keys=True))
    lines.append("```")
    return "\n".join(lines)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("outdir", nargs="?", default="bench_out", help="Directory containing benchmark CSVs")
    parser.add_argument("--summary", default="bench_summary.md", help="Filename for the generated markdown summary")
    args = parser.parse_args()

    outdir = Path(args.outdir)
    build = _load_csv(outdir / "build_throughput.csv")
    encode = _load_csv(outdir / "encode.csv")
    merge = _load_csv(outdir / "merge.csv")

    summary: Dict[str, Dict[str, object]] = {}

    throughput_ok, throughput_obs = _check_throughput(build)
    summary["Build throughput"] = {
        "threshold": f">= {THROUGHPUT_MIN_OPS} observations/sec",
        "observed": round(throughput_obs, 2),
        "ok": throughput_ok,
    }

    latency_ok, latency_obs = _check_encode_latency(encode)
    summary["Encode latency p95"] = {
        "threshold": f"<= {ENCODE_LATENCY_P95_MAX_US} µs",
        "observed": round(latency_obs, 2),
        "ok": latency_ok,
    }

    size_ok, size_obs = _check_encoded_size(encode)
    summary["Encoded bytes per bucket"] = {
        "threshold": f"<= {BYTES_PER_BUCKET_MAX}",
        "observed": round(size_obs, 3),
        "ok": size_ok,
    }

    merge_ok, merge_obs = _check_merge(merge)
    summary["Sharded merge"] = {
        "threshold": f"<= {MERGE_TIME_MAX_S} s, 0 mismatches",
        "observed": merge_obs,
        "ok": merge_ok,
    }

    summary_path = outdir / args.summary
    summary_path.write_text(_summarise(summary), encoding="utf-8")

    print(summary_path.read_text(encoding="utf-8"))

    if not all(item["ok"] for item in summary.values()):
        raise SystemExit("Benchmark regression detected; see summary above.")


if __name__ == "__main__":
    main()
