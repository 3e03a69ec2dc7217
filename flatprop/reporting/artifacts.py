"""Run artifacts: manifest and weight checkpoints."""

from __future__ import annotations

import json
import platform
import subprocess
import time
from pathlib import Path
from typing import Mapping

import numpy as np

from ..core.flat import FlatNetwork


def git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    network: Mapping[str, object] | None = None,
) -> str:
    """Write a JSON manifest with everything needed to repeat the run."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "git_sha": git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "dataset": dict(dataset_provenance),
        "network": dict(network or {}),
        "environment": {
            "python": platform.python_version(),
            "numpy": np.__version__,
        },
    }
    path.write_text(json.dumps(manifest, indent=2, default=str))
    return str(path)


def save_checkpoint(path: str | Path, network: FlatNetwork) -> str:
    """Store the weight vector and the input-first layer sizes as ``.npz``."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez(
        path,
        weights=network.network_to_array(),
        dims=np.asarray(list(reversed(network.layer_counts)), dtype=np.int64),
        activation=np.asarray(int(network.activation_type[0])),
        input_bias=np.asarray(network.has_input_bias),
    )
    return str(path)


def load_checkpoint(path: str | Path) -> FlatNetwork:
    """Rebuild the network saved by :func:`save_checkpoint`."""

    with np.load(Path(path)) as data:
        network = FlatNetwork.from_dims(
            [int(d) for d in data["dims"]],
            int(data["activation"]),
            input_bias=bool(data["input_bias"]),
        )
        network.array_to_network(data["weights"])
    return network


__all__ = ["git_sha", "load_checkpoint", "save_checkpoint", "write_manifest"]
