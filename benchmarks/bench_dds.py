#!/usr/bin/env python3
"""Benchmark runner for the local dds_sketch implementation."""

from __future__ import annotations

import argparse
import hashlib
import importlib
import math
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Sequence

import numpy as np
import pandas as pd


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--module", default="dds_sketch", help="Module that exports the sketch class")
    parser.add_argument("--class", dest="cls", default="DDSketch", help="Sketch class name inside the module")
    parser.add_argument("--outdir", default="bench_out", help="Directory for benchmark CSV outputs")
    parser.add_argument("--seed", type=int, default=42, help="Base RNG seed for reproducibility")
    parser.add_argument("--Ns", nargs="+", default=["1e5", "1e6"], help="Population sizes to benchmark")
    parser.add_argument(
        "--gammas", nargs="+", default=["1.0202", "1.05", "1.1"], help="Bucket growth ratios to benchmark"
    )
    parser.add_argument(
        "--distributions",
        nargs="+",
        default=["uniform", "lognormal", "exponential", "pareto", "bimodal"],
        help="Synthetic data distributions to sample",
    )
    parser.add_argument("--shards", type=int, default=8, help="Number of shards for the merge benchmark")
    return parser.parse_args()


def _to_int_list(values: Iterable[str]) -> List[int]:
    return [int(float(v)) for v in values]


def _to_float_list(values: Iterable[str]) -> List[float]:
    return [float(v) for v in values]


def _hash_seed(seed: int, *parts: object) -> int:
    material = "::".join(str(p) for p in (seed,) + parts)
    digest = hashlib.sha256(material.encode("utf-8")).hexdigest()
    return int(digest[:16], 16)


# Every generator yields values >= 1 so all buckets are non-negative and the
# resulting sketches can be encoded.
def _uniform(rng: np.random.Generator, size: int) -> np.ndarray:
    return rng.uniform(1.0, 1_000.0, size)


def _lognormal(rng: np.random.Generator, size: int) -> np.ndarray:
    return 1.0 + rng.lognormal(mean=3.0, sigma=1.0, size=size)


def _exponential(rng: np.random.Generator, size: int) -> np.ndarray:
    return 1.0 + rng.exponential(scale=100.0, size=size)


def _pareto(rng: np.random.Generator, size: int) -> np.ndarray:
    return 1.0 + rng.pareto(a=1.5, size=size)


def _bimodal(rng: np.random.Generator, size: int) -> np.ndarray:
    left = size // 2
    right = size - left
    first = rng.normal(20.0, 5.0, left)
    second = rng.normal(500.0, 50.0, right)
    data = np.concatenate([first, second]) if size else np.empty(0, dtype=float)
    rng.shuffle(data)
    return np.maximum(data, 1.0)


DATA_GENERATORS: Dict[str, Callable[[np.random.Generator, int], np.ndarray]] = {
    "uniform": _uniform,
    "lognormal": _lognormal,
    "exponential": _exponential,
    "pareto": _pareto,
    "bimodal": _bimodal,
}


def _validate_distributions(names: Sequence[str]) -> None:
    unknown = sorted(set(names) - DATA_GENERATORS.keys())
    if unknown:
        raise ValueError(f"Unknown distributions requested: {', '.join(unknown)}")


def main() -> None:
    args = _parse_args()

    Ns = _to_int_list(args.Ns)
    gammas = _to_float_list(args.gammas)
    _validate_distributions(args.distributions)

    module = importlib.import_module(args.module)
    if not hasattr(module, args.cls):
        available = ", ".join(sorted(attr for attr in dir(module) if not attr.startswith("_")))
        raise AttributeError(f"{module.__name__!r} does not define {args.cls!r}. Available attributes: {available}")
    sketch_cls = getattr(module, args.cls)

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    build_records: List[Dict[str, object]] = []
    encode_records: List[Dict[str, object]] = []
    merge_records: List[Dict[str, object]] = []

    for dist in args.distributions:
        for N in Ns:
            combo_seed = _hash_seed(args.seed, dist, N)
            data_rng = np.random.default_rng(combo_seed)
            data = DATA_GENERATORS[dist](data_rng, N).astype(float, copy=False)
            values = data.tolist()

            for gamma in gammas:
                start = time.perf_counter()
                sketch = sketch_cls(values, gamma=gamma)
                build_elapsed = time.perf_counter() - start
                build_records.append(
                    {
                        "distribution": dist,
                        "N": int(N),
                        "gamma": gamma,
                        "build_time_s": build_elapsed,
                        "observations_per_sec": (N / build_elapsed) if build_elapsed > 0 else math.inf,
                        "bucket_count": sketch.bucket_count,
                    }
                )

                encode_start = time.perf_counter()
                payload = sketch.raw()
                encode_elapsed = time.perf_counter() - encode_start
                encode_records.append(
                    {
                        "distribution": dist,
                        "N": int(N),
                        "gamma": gamma,
                        "encoded_bytes": len(payload),
                        "bytes_per_bucket": len(payload) / max(1, sketch.bucket_count),
                        "latency_us": encode_elapsed * 1e6,
                    }
                )

                shard_sketches = [
                    sketch_cls(shard.tolist(), gamma=gamma) for shard in np.array_split(data, args.shards)
                ]
                merge_start = time.perf_counter()
                merged = sketch_cls.empty(gamma=gamma)
                for shard_sketch in shard_sketches:
                    merged = merged.merge(shard_sketch)
                merge_elapsed = time.perf_counter() - merge_start

                merge_records.append(
                    {
                        "distribution": dist,
                        "N": int(N),
                        "gamma": gamma,
                        "shards": int(args.shards),
                        "merge_time_s": merge_elapsed,
                        "buckets_match": merged.buckets == sketch.buckets,
                        "count_match": merged.count == sketch.count,
                    }
                )

    build_path = outdir / "build_throughput.csv"
    encode_path = outdir / "encode.csv"
    merge_path = outdir / "merge.csv"

    pd.DataFrame.from_records(build_records).to_csv(build_path, index=False)
    pd.DataFrame.from_records(encode_records).to_csv(encode_path, index=False)
    pd.DataFrame.from_records(merge_records).to_csv(merge_path, index=False)

    print("Benchmark artifacts written to:")
    print(f"  {build_path}")
    print(f"  {encode_path}")
    print(f"  {merge_path}")


if __name__ == "__main__":
    main()
