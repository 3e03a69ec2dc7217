"""Metrics sinks, manifests, summaries and plots for training runs."""

from .artifacts import load_checkpoint, save_checkpoint, write_manifest
from .metrics import CsvSink, JsonlSink
from .plots import PlotAdapter
from .summary import write_summary

__all__ = [
    "CsvSink",
    "JsonlSink",
    "PlotAdapter",
    "load_checkpoint",
    "save_checkpoint",
    "write_manifest",
    "write_summary",
]
