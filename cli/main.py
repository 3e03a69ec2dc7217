"""Command line entry point for flatprop training runs."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable

from flatprop.training import pipelines
from flatprop.util.netlog import setup_logging


def _format_result(result) -> str:
    payload = {
        "iterations": result.iterations,
        "final_error": result.final_error,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    if result.summary_path:
        payload["summary"] = result.summary_path
    if result.checkpoint_path:
        payload["checkpoint"] = result.checkpoint_path
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="xor-rprop",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument("--threads", type=int, help="Worker threads (0 picks from the CPU count)")
    parser.add_argument("--iterations", type=int, help="Maximum training iterations")
    parser.add_argument("--target-error", type=float, help="Stop once the RMS error drops below this")
    parser.add_argument("--run-dir", help="Directory for metrics, manifest and checkpoint")
    parser.add_argument("--enable-plots", action="store_true", help="Write an error curve plot")
    parser.add_argument("--list-presets", action="store_true", help="List available presets and exit")
    parser.add_argument("--dump-config", type=Path, help="Dump the resolved config to a JSON file")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Screen logging level",
    )
    return parser.parse_args(argv)


def _load_override(path: Path) -> dict:
    text = path.read_text()
    if path.suffix in {".yml", ".yaml"}:
        try:
            import yaml
        except ImportError as exc:
            raise RuntimeError("PyYAML is required to load YAML configs") from exc
        return yaml.safe_load(text) or {}
    return json.loads(text)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    setup_logging(level=args.log_level)
    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = _load_override(args.config)
        if {"data", "network", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = _merge(config, override)

    train_cfg = config.setdefault("train", {})
    if args.threads is not None:
        train_cfg["threads"] = int(args.threads)
    if args.iterations is not None:
        train_cfg["iterations"] = int(args.iterations)
    if args.target_error is not None:
        train_cfg["target_error"] = float(args.target_error)
    if args.run_dir:
        train_cfg["run_dir"] = args.run_dir
    if args.enable_plots:
        train_cfg["enable_plots"] = True

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    result = pipelines.run_pipeline(config)
    print(_format_result(result))


if __name__ == "__main__":
    main()
