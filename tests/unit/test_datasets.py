import numpy as np
import pytest

from flatprop.core.errors import DataShapeError
from flatprop.data import BasicDataset, DataPair, available_datasets, get_dataset, register_dataset
from flatprop.data.registry import DatasetSpec


def test_basic_dataset_records_fill_pair_buffers():
    data = BasicDataset([[0.0, 1.0], [2.0, 3.0]], [[1.0], [0.0]])
    pair = data.create_pair()
    data.get_record(1, pair)
    np.testing.assert_array_equal(pair.input, [2.0, 3.0])
    np.testing.assert_array_equal(pair.ideal, [0.0])
    assert (data.count, data.input_size, data.ideal_size) == (2, 2, 1)
    with pytest.raises(IndexError):
        data.get_record(2, pair)


def test_one_dimensional_values_become_columns():
    data = BasicDataset([0.0, 1.0, 2.0], [1.0, 2.0, 3.0])
    assert data.input_size == 1
    assert len(data) == 3


def test_mismatched_rows_and_ragged_pairs_raise():
    with pytest.raises(DataShapeError):
        BasicDataset([[0.0], [1.0]], [[1.0]])
    with pytest.raises(DataShapeError):
        BasicDataset.from_pairs([([0.0, 1.0], [1.0]), ([0.0], [1.0])])
    with pytest.raises(DataShapeError):
        BasicDataset.from_pairs([])


def test_subset_and_iteration():
    data = BasicDataset.from_pairs([([i, i + 1.0], [i * 2.0]) for i in range(5)])
    part = data.subset(1, 3)
    assert part.count == 2
    ideals = [pair.ideal[0] for pair in part]
    assert ideals == [2.0, 4.0]
    assert isinstance(next(iter(data)), DataPair)


def test_builtin_datasets_registered():
    names = set(available_datasets())
    assert {"xor", "sine", "csv"} <= names
    xor = get_dataset("xor")
    assert (xor.input_size, xor.ideal_size, xor.dataset.count) == (2, 1, 4)
    sine = get_dataset(name="sine", n_points=32, seed=3)
    assert sine.dataset.count == 32
    assert np.all((sine.dataset.ideals > 0) & (sine.dataset.ideals < 1))
    again = get_dataset("sine", n_points=32, seed=3)
    np.testing.assert_array_equal(sine.dataset.ideals, again.dataset.ideals)


def test_unknown_dataset_lists_choices():
    with pytest.raises(KeyError, match="xor"):
        get_dataset("nope")


def test_register_dataset_direct_call():
    def _tiny(**_):
        return DatasetSpec(name="tiny", dataset=BasicDataset([[1.0]], [[1.0]]))

    register_dataset("tiny-test", _tiny)
    assert get_dataset("tiny-test").dataset.count == 1


def test_csv_loader(tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("a,b,target\n1,2,0.5\n3,4,0.25\n5,6,0.75\n")
    spec = get_dataset("csv", csv_path=path, standardize_inputs=True)
    assert (spec.input_size, spec.ideal_size) == (2, 1)
    np.testing.assert_allclose(spec.dataset.inputs.mean(axis=0), [0.0, 0.0], atol=1e-12)
    assert spec.provenance["input_cols"] == ["a", "b"]

    picked = get_dataset("csv", csv_path=str(path), ideal_cols="a,b", input_cols=["target"])
    assert (picked.input_size, picked.ideal_size) == (1, 2)


def test_csv_loader_errors(tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("a,target\n1,x\n")
    with pytest.raises(KeyError):
        get_dataset("csv", csv_path=path, ideal_cols="missing")
    with pytest.raises(DataShapeError):
        get_dataset("csv", csv_path=path)
