from __future__ import annotations

import argparse
import csv
import json
import sys
import time
from pathlib import Path
from statistics import mean, pstdev


def _fmt_mu_sigma(vals, digits=4):
    mu = mean(vals)
    sd = pstdev(vals) if len(vals) > 1 else 0.0
    return f"{mu:.{digits}f} ± {sd:.{digits}f}"


def run_once(dataset, threads, seed, iterations, hidden):
    from flatprop.core.flat import FlatNetwork
    from flatprop.core.strategies import ResilientPropagation
    from flatprop.training.trainer import MultiTrainer

    network = FlatNetwork.from_dims([dataset.input_size, hidden, dataset.ideal_size], "sigmoid", seed=seed)
    start = time.perf_counter()
    with MultiTrainer(network, dataset, ResilientPropagation(), num_threads=threads) as trainer:
        for _ in range(iterations):
            trainer.iteration()
        workers = len(trainer.workers)
        error = trainer.error
    elapsed = time.perf_counter() - start
    return {"workers": workers, "final_error": error, "seconds": elapsed}


def main():
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))

    from flatprop.data import get_dataset

    ap = argparse.ArgumentParser()
    ap.add_argument("--threads", nargs="+", type=int, default=[1, 2, 4])
    ap.add_argument("--seeds", nargs="+", type=int, default=[0, 1, 2])
    ap.add_argument("--iterations", type=int, default=50)
    ap.add_argument("--points", type=int, default=2048)
    ap.add_argument("--hidden", type=int, default=16)
    ap.add_argument("--out", type=str, default=".artifacts/bench")
    args = ap.parse_args()

    dataset = get_dataset("sine", n_points=args.points, seed=0).dataset
    out = Path(args.out)
    out.mkdir(parents=True, exist_ok=True)

    runs = []
    for threads in args.threads:
        for seed in args.seeds:
            r = run_once(dataset, threads, seed, args.iterations, args.hidden)
            runs.append({"threads": threads, "seed": seed, **r})
    (out / "results.jsonl").write_text("\n".join(json.dumps(x) for x in runs), encoding="utf-8")

    base = mean(r["seconds"] for r in runs if r["threads"] == args.threads[0])
    csv_path = out / "bench_threads.csv"
    md_lines = [
        "### Thread scaling: RPROP on sine regression",
        "",
        f"- Records: `{dataset.count}`; Hidden: `{args.hidden}`; "
        f"Iterations: `{args.iterations}`; Seeds: `{args.seeds}`",
        "",
        "| Threads | Workers | Seconds (μ±σ) | Speedup | Final error (μ±σ) |",
        "|---:|---:|---:|---:|---:|",
    ]
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["threads", "workers", "seconds_mu", "seconds_sd", "speedup", "final_error_mu"])
        for threads in args.threads:
            rows = [r for r in runs if r["threads"] == threads]
            secs = [r["seconds"] for r in rows]
            errs = [r["final_error"] for r in rows]
            speedup = base / mean(secs) if mean(secs) > 0 else 0.0
            w.writerow([
                threads,
                rows[0]["workers"],
                f"{mean(secs):.4f}",
                f"{pstdev(secs) if len(secs) > 1 else 0.0:.4f}",
                f"{speedup:.2f}",
                f"{mean(errs):.6f}",
            ])
            md_lines.append(
                f"| {threads} | {rows[0]['workers']} | {_fmt_mu_sigma(secs)} | "
                f"{speedup:.2f}x | {_fmt_mu_sigma(errs, 6)} |"
            )

    md_path = out / "bench_threads.md"
    md_path.write_text("\n".join(md_lines), encoding="utf-8")
    print("Wrote:", csv_path, md_path)


if __name__ == "__main__":
    main()
