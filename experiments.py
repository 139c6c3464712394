"""
Huffman coding experiments

Runs the codec over synthetic byte distributions and sizes, with repeated runs,
and records how close the codes get to the entropy bound

Outputs (in --outdir):
  - metrics.csv     (raw row per run per pipeline)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 7 --exp1_size_kb 1024 --exp2_max_mb 16
  python experiments.py --outdir results --runs 5 --exp1_generators uniform256,zipf128,repetitive90,english_like

Pipelines:
  bitstring  decode straight from the '0'/'1' string
  packed     pack the bits into bytes, unpack, then decode
"""

from __future__ import annotations

import argparse
import csv
import random
import statistics
import time
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt

import huffman as huff

PIPELINES = ("bitstring", "packed")


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


# Synthetic dataset generators

def _sample_weighted(rng: random.Random, size: int, symbols: Sequence[int], weights: Sequence[float]) -> bytes:
    # Binary search over the cumulative distribution
    total = sum(weights)
    cdf = []
    acc = 0.0
    for w in weights:
        acc += w / total
        cdf.append(acc)

    out = bytearray()
    for _ in range(size):
        r = rng.random()
        lo, hi = 0, len(cdf) - 1
        while lo < hi:
            mid = (lo + hi) // 2
            if r <= cdf[mid]:
                hi = mid
            else:
                lo = mid + 1
        out.append(symbols[lo])
    return bytes(out)

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(0, alphabet) for _ in range(size))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    others = [i for i in range(256) if i != dominant]
    return bytes(dominant if rng.random() < dom_frac else rng.choice(others) for _ in range(size))

def gen_single_symbol(size: int, symbol: int = ord('A')) -> bytes:
    return bytes([symbol]) * size

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    weights = [1.0 / ((rank + 1) ** s) for rank in range(alphabet)]
    return _sample_weighted(rng, size, list(range(alphabet)), weights)

def gen_english_like(size: int, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    chars = " etaoinshrdlcumwfgypbvkjxqETAOINSHRDLCUMWFGYPBVKJXQ\n"

    def weight(ch: str) -> float:
        if ch == ' ':
            return 13.0
        if ch == '\n':
            return 1.5
        if ch.lower() in "etaoinshrdlu":
            return 6.0
        if ch.lower() in "cmfwgypbvk":
            return 2.5
        return 1.2

    return _sample_weighted(rng, size, [ord(ch) for ch in chars], [weight(ch) for ch in chars])

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform128": lambda size, seed: gen_uniform(size, alphabet=128, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "zipf64": lambda size, seed: gen_zipf_like(size, alphabet=64, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.99, seed=seed),
    "single_symbol": lambda size, seed: gen_single_symbol(size),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> Tuple[str, bytes]:
    """
    Unknown dataset names fall back to uniform256 so one typo does not
    abort a long run; the fallback is visible in the dataset name
    """
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        return f"{name}_fallback_uniform256", gen_uniform(size_bytes, alphabet=256, seed=seed)
    return name, fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    pipeline: str  # "bitstring" or "packed"
    unique_symbols: int

    build_tree_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    encoded_bits: int
    compressed_bytes: int
    pad_bits: int
    compression_ratio: float

    avg_code_length: float
    entropy_bits: float
    redundancy_bits: float
    correctness_ok: int  # 1 or 0


def run_one(data: bytes, pipeline: str) -> MetricRow:
    if pipeline not in PIPELINES:
        raise ValueError(f"pipeline must be one of {PIPELINES}, got {pipeline!r}")

    ft = huff.build_frequency_table(data)

    t0 = now_ns()
    root = huff.build_huffman_tree(ft)
    code_map = huff.generate_huffman_codes(root)
    t1 = now_ns()
    build_tree_ms = ns_to_ms(t1 - t0)

    t2 = now_ns()
    bits = huff.huffman_encode(data, code_map)
    packed, pad_bits = huff.pack_bits(bits)
    t3 = now_ns()
    encode_ms = ns_to_ms(t3 - t2)

    t4 = now_ns()
    if pipeline == "packed":
        decoded = huff.huffman_decode(huff.unpack_bits(packed, pad_bits), root)
    else:
        decoded = huff.huffman_decode(bits, root)
    t5 = now_ns()
    decode_ms = ns_to_ms(t5 - t4)

    avg_len = huff.average_code_length(ft, code_map)
    h = huff.entropy(ft)

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        pipeline=pipeline,
        unique_symbols=sum(1 for f in ft if f > 0),
        build_tree_ms=build_tree_ms,
        encode_ms=encode_ms,
        decode_ms=decode_ms,
        total_ms=build_tree_ms + encode_ms + decode_ms,
        encoded_bits=len(bits),
        compressed_bytes=len(packed),
        pad_bits=pad_bits,
        compression_ratio=len(packed) / max(1, len(data)),
        avg_code_length=avg_len,
        entropy_bits=h,
        redundancy_bits=avg_len - h,
        correctness_ok=1 if decoded == data else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    names = [f.name for f in fields(MetricRow)]
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=names)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in names})


SUMMARY_METRICS = (
    "compression_ratio", "avg_code_length", "entropy_bits", "redundancy_bits",
    "build_tree_ms", "encode_ms", "decode_ms", "total_ms",
)

def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes, pipeline and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int, str], List[MetricRow]] = {}
    for r in rows:
        key = (r.exp_name, r.dataset_name, r.file_size_bytes, r.pipeline)
        key_to.setdefault(key, []).append(r)

    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "pipeline", "n_runs"]
    for metric in SUMMARY_METRICS:
        summary_fields += [f"{metric}_mean", f"{metric}_stdev"]
    summary_fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for key, items in sorted(key_to.items()):
            exp_name, dataset_name, size_b, pipeline = key
            out = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "pipeline": pipeline,
                "n_runs": len(items),
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            }
            for metric in SUMMARY_METRICS:
                m, s = mean_stdev([getattr(x, metric) for x in items])
                out[f"{metric}_mean"] = m
                out[f"{metric}_stdev"] = s
            w.writerow(out)


# Plotting

def _line_chart(outdir: Path, filename: str, x, series: Dict[str, List[float]], title: str,
                ylabel: str, xlabel: Optional[str] = None, xticks: Optional[List[str]] = None) -> None:
    plt.figure()
    for label, y in series.items():
        plt.plot(x, y, marker="o", label=label)
    if xticks is not None:
        plt.xticks(x, xticks, rotation=20, ha="right")
    if xlabel:
        plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    plt.title(title)
    if len(series) > 1:
        plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / filename, dpi=200)
    plt.close()


def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_for(dataset: str, pipeline: str, field: str) -> float:
        vals = [getattr(r, field) for r in exp_rows if r.dataset_name == dataset and r.pipeline == pipeline]
        return statistics.mean(vals) if vals else float("nan")

    _line_chart(outdir, "exp1_compression_ratio.png", x,
                {"huffman": [mean_for(d, "bitstring", "compression_ratio") for d in datasets]},
                "Experiment 1: Compression Ratio by Distribution",
                "Compressed Bytes / Original Bytes", xticks=datasets)

    _line_chart(outdir, "exp1_decode_time.png", x,
                {p: [mean_for(d, p, "decode_ms") for d in datasets] for p in PIPELINES},
                "Experiment 1: Decode Time by Distribution",
                "Decode Time (ms)", xticks=datasets)

    _line_chart(outdir, "exp1_total_time.png", x,
                {p: [mean_for(d, p, "total_ms") for d in datasets] for p in PIPELINES},
                "Experiment 1: Total Runtime by Distribution",
                "Total Time (ms) (build + encode + decode)", xticks=datasets)


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))

        def mean_size(size: int, pipeline: str, field: str) -> float:
            vals = [getattr(r, field) for r in dist_rows if r.file_size_bytes == size and r.pipeline == pipeline]
            return statistics.mean(vals) if vals else float("nan")

        _line_chart(outdir, f"exp2_encode_time_{dist}.png", sizes,
                    {"huffman": [mean_size(s, "bitstring", "encode_ms") for s in sizes]},
                    f"Experiment 2: Encode Time vs Size ({dist})",
                    "Encode Time (ms)", xlabel="File Size (bytes)")

        _line_chart(outdir, f"exp2_decode_time_{dist}.png", sizes,
                    {p: [mean_size(s, p, "decode_ms") for s in sizes] for p in PIPELINES},
                    f"Experiment 2: Decode Time vs Size ({dist})",
                    "Decode Time (ms)", xlabel="File Size (bytes)")

        _line_chart(outdir, f"exp2_compression_ratio_{dist}.png", sizes,
                    {"huffman": [mean_size(s, "bitstring", "compression_ratio") for s in sizes]},
                    f"Experiment 2: Compression Ratio vs Size ({dist})",
                    "Compressed Bytes / Original Bytes", xlabel="File Size (bytes)")


def plot_experiment_3(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp3_entropy_bound" and r.pipeline == "bitstring"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_for(dataset: str, field: str) -> float:
        return statistics.mean(getattr(r, field) for r in exp_rows if r.dataset_name == dataset)

    _line_chart(outdir, "exp3_code_length_vs_entropy.png", x,
                {
                    "average code length": [mean_for(d, "avg_code_length") for d in datasets],
                    "entropy": [mean_for(d, "entropy_bits") for d in datasets],
                },
                "Experiment 3: Average Code Length vs Entropy",
                "Bits per Symbol", xticks=datasets)


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def _record(rows: List[MetricRow], exp_name: str, dataset_name: str, run_id: int, data: bytes) -> None:
    for pipeline in PIPELINES:
        row = run_one(data, pipeline)
        row.exp_name = exp_name
        row.dataset_name = dataset_name
        row.run_id = run_id
        rows.append(row)

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Huffman coding experiments")
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")

    # Experiment toggles
    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (distribution)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (size scaling)")
    ap.add_argument("--no_exp3", action="store_true", help="Disable experiment 3 (entropy bound)")

    # Experiment 1 controls
    ap.add_argument("--exp1_size_kb", type=int, default=512, help="Experiment 1 fixed file size in KB")
    ap.add_argument("--exp1_generators", type=str, default="uniform256,zipf128,repetitive90,english_like",
                    help="Comma-separated dataset generator names for experiment 1")

    # Experiment 2 controls
    ap.add_argument("--exp2_min_kb", type=int, default=4, help="Experiment 2 min size in KB (power-of-two growth)")
    ap.add_argument("--exp2_max_mb", type=int, default=8, help="Experiment 2 max size in MB (power-of-two growth)")
    ap.add_argument("--exp2_generators", type=str, default="uniform256,zipf128,repetitive90",
                    help="Comma-separated dataset generator names for experiment 2")

    # Experiment 3 controls
    ap.add_argument("--exp3_size_kb", type=int, default=256, help="Experiment 3 fixed file size in KB")
    ap.add_argument("--exp3_generators", type=str,
                    default="uniform256,uniform128,zipf128,zipf64,repetitive90,repetitive99,single_symbol,english_like",
                    help="Comma-separated dataset generator names for experiment 3")

    args = ap.parse_args(argv)

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows: List[MetricRow] = []

    # Experiment 1: distributions (fixed size)
    if not args.no_exp1:
        fixed_size = max(1, args.exp1_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp1_generators):
            for run_id in range(1, args.runs + 1):
                dataset_name, data = generate_dataset(gen_name, fixed_size, args.seed + run_id)
                _record(rows, "exp1_distribution", dataset_name, run_id, data)

    # Experiment 2: size scaling (powers of 2)
    if not args.no_exp2:
        min_bytes = max(1, args.exp2_min_kb) * 1024
        max_bytes = max(1, args.exp2_max_mb) * 1024 * 1024

        sizes: List[int] = []
        s = min_bytes
        while s <= max_bytes:
            sizes.append(s)
            s *= 2

        for gen_name in parse_csv_list(args.exp2_generators):
            for size_b in sizes:
                for run_id in range(1, args.runs + 1):
                    dataset_name, data = generate_dataset(gen_name, size_b, args.seed + 10_000 + size_b + run_id)
                    _record(rows, "exp2_size_scaling", dataset_name, run_id, data)

    # Experiment 3: average code length against the entropy bound
    if not args.no_exp3:
        fixed_size = max(1, args.exp3_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp3_generators):
            for run_id in range(1, args.runs + 1):
                dataset_name, data = generate_dataset(gen_name, fixed_size, args.seed + 200_000 + run_id)
                _record(rows, "exp3_entropy_bound", dataset_name, run_id, data)

    # Write raw and summary
    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    # Plots
    plot_experiment_1(rows, outdir)
    plot_experiment_2(rows, outdir)
    plot_experiment_3(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
