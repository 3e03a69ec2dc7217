"""Training-curve plot, rendered headless when enabled."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Tuple


class PlotAdapter:
    """Buffer the error per iteration and draw it on :meth:`close`."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False, *, log_scale: bool = True):
        self.enable_plots = enable_plots
        self.log_scale = log_scale
        self.run_dir = Path(run_dir)
        self.plot_path = self.run_dir / "error.png"
        self._history: List[Tuple[int, float]] = []

    def on_iteration(self, iteration: int, metrics: Mapping[str, object]) -> None:
        if self.enable_plots:
            self._history.append((iteration, float(metrics.get("error", 0.0))))

    def close(self) -> str | None:
        if not self.enable_plots or not self._history:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt

        self.run_dir.mkdir(parents=True, exist_ok=True)
        iterations, errors = zip(*self._history)
        fig, ax = plt.subplots()
        ax.plot(iterations, errors)
        if self.log_scale and min(errors) > 0:
            ax.set_yscale("log")
        ax.set_xlabel("Iteration")
        ax.set_ylabel("RMS error")
        ax.set_title("Training error")
        fig.savefig(self.plot_path)
        plt.close(fig)
        return str(self.plot_path)

    __call__ = on_iteration


__all__ = ["PlotAdapter"]
