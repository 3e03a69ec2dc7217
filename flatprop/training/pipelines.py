"""Assemble dataset, network, trainer and reporting from a run config."""

from __future__ import annotations

import json
import logging
import time
import warnings
from copy import deepcopy
from pathlib import Path
from typing import Dict, Mapping, MutableMapping

from ..core.activations import ActivationType
from ..core.flat import FlatNetwork
from ..core.strategies import (
    Backpropagation,
    ManhattanPropagation,
    ResilientPropagation,
    RPROPType,
    UpdateStrategy,
)
from ..core.types import RunResult
from ..data import registry
from ..reporting.artifacts import save_checkpoint, write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from ..util.netlog import dump_debug_log, reset_debug_log
from .adaline import TrainAdaline
from .loop import train
from .trainer import MultiTrainer
from .worker import BatchGradientWorker

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "xor-rprop": {
        "data": {"name": "xor", "options": {}},
        "network": {"hidden": [2], "activation": "sigmoid", "seed": 3},
        "train": {
            "strategy": "rprop",
            "rprop_type": "rprop+",
            "threads": 1,
            "iterations": 500,
            "target_error": 0.01,
            "run_dir": "runs/xor-rprop",
            "enable_plots": False,
        },
    },
    "xor-backprop": {
        "data": {"name": "xor", "options": {}},
        "network": {"hidden": [3], "activation": "sigmoid", "seed": 1},
        "train": {
            "strategy": "backprop",
            "learning_rate": 0.7,
            "momentum": 0.3,
            "threads": 1,
            "iterations": 2000,
            "target_error": 0.05,
            "run_dir": "runs/xor-backprop",
            "enable_plots": False,
        },
    },
    "sine-rprop": {
        "data": {"name": "sine", "options": {"freq": 1.0, "n_points": 256, "seed": 0, "noise": 0.02}},
        "network": {"hidden": [8], "activation": "sigmoid", "seed": 0},
        "train": {
            "strategy": "rprop",
            "rprop_type": "irprop+",
            "threads": 2,
            "iterations": 300,
            "target_error": 0.03,
            "run_dir": "runs/sine-rprop",
            "enable_plots": False,
        },
    },
    "sine-manhattan": {
        "data": {"name": "sine", "options": {"freq": 1.0, "n_points": 128, "seed": 0}},
        "network": {"hidden": [6], "activation": "sigmoid", "seed": 0},
        "train": {
            "strategy": "manhattan",
            "learning_rate": 0.001,
            "threads": 2,
            "iterations": 200,
            "run_dir": "runs/sine-manhattan",
            "enable_plots": False,
        },
    },
    "sine-adaline": {
        "data": {"name": "sine", "options": {"freq": 0.5, "n_points": 64, "seed": 0, "noise": 0.0}},
        "network": {"hidden": [], "activation": "linear", "seed": 0},
        "train": {
            "strategy": "adaline",
            "learning_rate": 0.01,
            "iterations": 100,
            "run_dir": "runs/sine-adaline",
            "enable_plots": False,
        },
    },
}

_REQUIRED_SECTIONS = {"data", "network", "train"}
_DEPRECATED_KEYS = {"epochs": "iterations", "lr": "learning_rate"}
_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def _read_preset_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            import yaml
        except ImportError as exc:
            raise RuntimeError("PyYAML is required to load preset files in YAML format") from exc
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported preset file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Preset {path.name} must decode to a mapping")
    return data


def _check_sections(config: Mapping[str, object], label: str) -> None:
    missing = _REQUIRED_SECTIONS - set(config)
    if missing:
        raise KeyError(f"{label} is missing required sections: {', '.join(sorted(missing))}")


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = _read_preset_file(file)
                _check_sections(data, f"Preset {file.name}")
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    available = presets()
    if name not in available:
        raise KeyError(f"Unknown preset: {name!r}. Available presets: {', '.join(sorted(available))}")
    return available[name]


def _normalize_train(train_cfg: MutableMapping[str, object]) -> MutableMapping[str, object]:
    for old, new in _DEPRECATED_KEYS.items():
        if old in train_cfg:
            warnings.warn(
                f"train.{old} is deprecated; use train.{new}",
                DeprecationWarning,
                stacklevel=3,
            )
            train_cfg.setdefault(new, train_cfg.pop(old))
    return train_cfg


def build_strategy(train_cfg: Mapping[str, object]) -> UpdateStrategy:
    """Update strategy named by ``train.strategy`` (not used for ``adaline``)."""

    name = str(train_cfg.get("strategy", "rprop")).lower()
    if name == "rprop":
        return ResilientPropagation(
            rprop_type=RPROPType.parse(str(train_cfg.get("rprop_type", "rprop+"))),
            initial_update=float(train_cfg.get("initial_update", 0.1)),
            max_step=float(train_cfg.get("max_step", 50.0)),
        )
    if name == "backprop":
        return Backpropagation(
            learning_rate=float(train_cfg.get("learning_rate", 0.7)),
            momentum=float(train_cfg.get("momentum", 0.3)),
        )
    if name == "manhattan":
        return ManhattanPropagation(learning_rate=float(train_cfg.get("learning_rate", 0.001)))
    raise ValueError(f"Unknown strategy: {name!r}. Available: adaline, backprop, manhattan, rprop")


def build_network(network_cfg: Mapping[str, object], input_size: int, ideal_size: int) -> FlatNetwork:
    dims = [int(input_size)]
    dims.extend(int(h) for h in network_cfg.get("hidden", []))  # type: ignore[union-attr]
    dims.append(int(ideal_size))
    seed = network_cfg.get("seed")
    return FlatNetwork.from_dims(
        dims,
        ActivationType.parse(network_cfg.get("activation", "sigmoid")),  # type: ignore[arg-type]
        seed=int(seed) if seed is not None else None,
        input_bias=bool(network_cfg.get("input_bias", True)),
    )


def _build_trainer(network: FlatNetwork, spec: registry.DatasetSpec, train_cfg: Mapping[str, object]):
    name = str(train_cfg.get("strategy", "rprop")).lower()
    if name == "adaline":
        return TrainAdaline(network, spec.dataset, float(train_cfg.get("learning_rate", 0.01)))
    accelerators = int(train_cfg.get("accelerators", 0))
    return MultiTrainer(
        network,
        spec.dataset,
        build_strategy(train_cfg),
        num_threads=int(train_cfg.get("threads", 0)),
        accelerators=[BatchGradientWorker] * accelerators,
        accelerator_ratio=float(train_cfg.get("accelerator_ratio", 1.0)),
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str, strategy: str) -> Path:
    if train_cfg.get("run_dir"):
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset / strategy


def _log_banner(spec: registry.DatasetSpec, network: FlatNetwork, train_cfg: Mapping[str, object]) -> None:
    strategy = str(train_cfg.get("strategy", "rprop"))
    if strategy == "rprop":
        strategy = f"rprop ({train_cfg.get('rprop_type', 'rprop+')})"
    logger.info("=== flatprop run ===")
    logger.info("Dataset     : %s (%d records)", spec.name, spec.dataset.count)
    logger.info("Dimensions  : %s", list(reversed(network.layer_counts)))
    logger.info("Activation  : %s", network.activation_type[0].name.lower())
    logger.info("Strategy    : %s", strategy)
    logger.info("Weights     : %d", network.weight_count)
    logger.info("====================")


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    """Train once according to ``config`` and write the run artifacts."""

    _check_sections(config, "Config")
    config = json.loads(json.dumps(config))
    data_cfg = dict(config["data"])
    network_cfg = dict(config["network"])
    train_cfg = _normalize_train(dict(config["train"]))
    config["train"] = dict(train_cfg)

    spec = registry.get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options") or {}))
    network = build_network(network_cfg, spec.input_size, spec.ideal_size)
    # Config errors surface here, before anything is written to disk.
    trainer = _build_trainer(network, spec, train_cfg)
    strategy_name = str(train_cfg.get("strategy", "rprop")).lower()
    run_dir = _resolve_run_dir(train_cfg, spec.name, strategy_name)
    run_dir.mkdir(parents=True, exist_ok=True)
    reset_debug_log()
    _log_banner(spec, network, train_cfg)

    seed = network_cfg.get("seed")
    jsonl = JsonlSink(run_dir / "metrics.jsonl", strategy=strategy_name, seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    target = train_cfg.get("target_error")
    with trainer:
        history = train(
            trainer,
            max_iterations=int(train_cfg.get("iterations", 100)),
            target_error=float(target) if target is not None else None,
            callbacks=[jsonl, csv_sink, plots],
        )
    plots.close()

    manifest = write_manifest(
        run_dir / "manifest.json",
        config=config,
        dataset_provenance=spec.provenance,
        network={
            "dims": list(reversed(network.layer_counts)),
            "activation": network.activation_type[0].name.lower(),
            "weight_count": network.weight_count,
            "input_bias": network.has_input_bias,
        },
    )
    summary_path = write_summary(jsonl.path, run_dir / "summary.json", tail=int(train_cfg.get("summary_tail", 32)))
    (run_dir / "config.json").write_text(json.dumps(config, indent=2))

    checkpoint_path = ""
    if bool(train_cfg.get("checkpoint", True)):
        checkpoint_path = save_checkpoint(run_dir / "weights.npz", network)
    dump_debug_log(run_dir / "debug.log")

    return RunResult(
        iterations=history.iterations,
        final_error=history.final_error,
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
        summary_path=summary_path,
        checkpoint_path=checkpoint_path,
    )


__all__ = ["build_network", "build_strategy", "load_preset", "presets", "run_pipeline"]
