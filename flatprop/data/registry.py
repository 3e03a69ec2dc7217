"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping

from .dataset import BasicDataset


@dataclass(frozen=True)
class DatasetSpec:
    """A loaded training set plus what is needed to reproduce it."""

    name: str
    dataset: BasicDataset
    provenance: Dict[str, Any] = field(default_factory=dict)

    @property
    def input_size(self) -> int:
        return self.dataset.input_size

    @property
    def ideal_size(self) -> int:
        return self.dataset.ideal_size


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("xor")
        def make_xor(**kwargs):
            ...

    or directly::

        register_dataset("xor", make_xor)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str | None = None, /, **options: Any) -> DatasetSpec:
    """Return the :class:`DatasetSpec` produced by the factory named ``dataset``."""

    if dataset is None:
        if "name" in options:
            dataset = str(options.pop("name"))
        else:
            raise TypeError("Dataset name must be provided")

    if dataset not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY))
        raise KeyError(f"Unknown dataset {dataset!r}. Available datasets: {available}")

    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if spec.dataset.count == 0:
        raise ValueError(f"Dataset {spec.name!r} produced no examples")
    if not isinstance(spec.provenance, dict):
        raise TypeError("DatasetSpec.provenance must be a mapping")


__all__ = [
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
