"""Deterministic summaries of a metrics JSONL file."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Mapping, Sequence

import numpy as np

_SKIP = {"iteration", "seed"}


def compute_auc(points: Sequence[float]) -> float:
    """Trapezoid area under ``points`` with unit spacing."""

    if len(points) < 2:
        return 0.0
    y = np.asarray(points, dtype=np.float64)
    return float(np.sum((y[1:] + y[:-1]) * 0.5))


def _series(records: Iterable[Mapping[str, object]]) -> dict[str, list[float]]:
    series: dict[str, list[float]] = {}
    for record in records:
        for key, value in record.items():
            if key in _SKIP or isinstance(value, bool):
                continue
            if isinstance(value, (int, float)):
                series.setdefault(key, []).append(float(value))
    return series


def summarize(records: Sequence[Mapping[str, object]], tail: int = 32) -> dict[str, object]:
    tail_window = min(tail, len(records))
    metrics: dict[str, dict[str, float]] = {}
    for name, values in _series(records).items():
        arr = np.asarray(values, dtype=np.float64)
        metrics[name] = {
            "min": float(arr.min()),
            "max": float(arr.max()),
            "mean": float(arr.mean()),
            "last": float(arr[-1]),
            "tail_auc": compute_auc(arr[-tail_window:].tolist()) if tail_window else 0.0,
        }
    return {
        "version": 1,
        "records": len(records),
        "tail_window": tail_window,
        "metrics": metrics,
    }


def write_summary(metrics_jsonl: str | Path, out_summary_json: str | Path, *, tail: int = 32) -> str:
    metrics_path = Path(metrics_jsonl)
    out_path = Path(out_summary_json)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    records: list[Mapping[str, object]] = []
    if metrics_path.exists():
        for line in metrics_path.read_text().splitlines():
            if line.strip():
                records.append(json.loads(line))

    out_path.write_text(json.dumps(summarize(records, tail), sort_keys=True, indent=2))
    return str(out_path)


__all__ = ["compute_auc", "summarize", "write_summary"]
