"""Dataset registry and loader helpers."""

# Ensure built-in datasets register themselves when the package is imported.
from . import builtin as _builtin  # noqa: F401
from . import csv_generic as _csv_generic  # noqa: F401
from .dataset import BasicDataset, DataPair
from .registry import DatasetSpec, available_datasets, get_dataset, register_dataset

__all__ = [
    "BasicDataset",
    "DataPair",
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
