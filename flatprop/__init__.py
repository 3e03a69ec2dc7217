"""flatprop public API."""

from .core import activations, strategies, types  # noqa: F401
from .core.activations import ActivationType
from .core.errors import DataShapeError, FlatpropError, NetworkConfigError, TrainingError
from .core.flat import FlatNetwork, LayerSpec, NetworkDescription
from .core.strategies import Backpropagation, ManhattanPropagation, ResilientPropagation, RPROPType
from .data import BasicDataset, DataPair, get_dataset
from .training.adaline import TrainAdaline
from .training.loop import train
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import MultiTrainer

__all__ = [
    "ActivationType",
    "Backpropagation",
    "BasicDataset",
    "DataPair",
    "DataShapeError",
    "FlatNetwork",
    "FlatpropError",
    "LayerSpec",
    "ManhattanPropagation",
    "MultiTrainer",
    "NetworkConfigError",
    "NetworkDescription",
    "RPROPType",
    "ResilientPropagation",
    "TrainAdaline",
    "TrainingError",
    "activations",
    "get_dataset",
    "load_preset",
    "presets",
    "run_pipeline",
    "strategies",
    "train",
    "types",
]
