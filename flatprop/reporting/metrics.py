"""Per-iteration metrics sinks."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Mapping

from .artifacts import git_sha


def _numeric(metrics: Mapping[str, object]) -> dict[str, float]:
    return {k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))}


class JsonlSink:
    """One JSON object per iteration, truncated on construction."""

    def __init__(
        self,
        path: str | Path,
        *,
        strategy: str = "",
        seed: int | None = None,
        sha: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.strategy = strategy
        self.seed = seed
        self.sha = sha or git_sha()

    def on_iteration(self, iteration: int, metrics: Mapping[str, object]) -> None:
        record = {
            "iteration": int(iteration),
            "strategy": self.strategy,
            "seed": self.seed,
            "sha": self.sha,
        }
        record.update(_numeric(metrics))
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    __call__ = on_iteration


class CsvSink:
    """CSV rows with sorted columns; the header is written once."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")

    def on_iteration(self, iteration: int, metrics: Mapping[str, object]) -> None:
        row = {"iteration": int(iteration)}
        row.update(_numeric(metrics))
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=sorted(row))
            if handle.tell() == 0:
                writer.writeheader()
            writer.writerow(row)

    __call__ = on_iteration


__all__ = ["CsvSink", "JsonlSink"]
