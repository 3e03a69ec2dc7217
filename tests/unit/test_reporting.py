import csv
import json

import numpy as np

from flatprop.core.flat import FlatNetwork
from flatprop.reporting import CsvSink, JsonlSink, PlotAdapter, load_checkpoint, save_checkpoint, write_summary
from flatprop.reporting.summary import compute_auc
from flatprop.util.netlog import dump_debug_log, setup_logging


def test_sinks_write_one_row_per_iteration(tmp_path):
    jsonl = JsonlSink(tmp_path / "m.jsonl", strategy="rprop", seed=3, sha="abc")
    sink = CsvSink(tmp_path / "m.csv")
    for i, error in enumerate([0.5, 0.25], start=1):
        jsonl.on_iteration(i, {"error": error, "note": "skipped"})
        sink(i, {"error": error})
    rows = [json.loads(line) for line in (tmp_path / "m.jsonl").read_text().splitlines()]
    assert [r["iteration"] for r in rows] == [1, 2]
    assert rows[0]["strategy"] == "rprop" and rows[0]["sha"] == "abc"
    assert "note" not in rows[0]
    with (tmp_path / "m.csv").open() as handle:
        table = list(csv.DictReader(handle))
    assert [float(r["error"]) for r in table] == [0.5, 0.25]


def test_summary_is_deterministic(tmp_path):
    jsonl = JsonlSink(tmp_path / "m.jsonl", seed=0, sha="x")
    for i, error in enumerate([1.0, 0.5, 0.25, 0.125], start=1):
        jsonl.on_iteration(i, {"error": error})
    first = write_summary(jsonl.path, tmp_path / "s1.json", tail=2)
    second = write_summary(jsonl.path, tmp_path / "s2.json", tail=2)
    text = (tmp_path / "s1.json").read_text()
    assert text == (tmp_path / "s2.json").read_text()
    summary = json.loads(text)
    assert summary["records"] == 4
    assert summary["metrics"]["error"]["last"] == 0.125
    assert summary["metrics"]["error"]["tail_auc"] == 0.1875
    assert first != second


def test_compute_auc():
    assert compute_auc([]) == 0.0
    assert compute_auc([1.0, 3.0]) == 2.0


def test_plot_adapter_headless(tmp_path):
    adapter = PlotAdapter(tmp_path, enable_plots=True)
    adapter.on_iteration(1, {"error": 1.0})
    adapter.on_iteration(2, {"error": 0.5})
    assert adapter.close() == str(tmp_path / "error.png")
    assert (tmp_path / "error.png").exists()


def test_plot_adapter_disabled_writes_nothing(tmp_path):
    adapter = PlotAdapter(tmp_path / "run", enable_plots=False)
    adapter.on_iteration(1, {"error": 1.0})
    assert adapter.close() is None
    assert not (tmp_path / "run").exists()


def test_checkpoint_round_trip(tmp_path):
    network = FlatNetwork.from_dims([2, 3, 1], "tanh", seed=5, input_bias=False)
    path = save_checkpoint(tmp_path / "w.npz", network)
    restored = load_checkpoint(path)
    np.testing.assert_array_equal(restored.weights, network.weights)
    assert restored.layer_counts == network.layer_counts
    assert restored.activation_type == network.activation_type
    assert restored.has_input_bias is False


def test_logging_bucket_dump(tmp_path):
    log = setup_logging(name="flatprop.test", level="WARNING")
    log.debug("only in the bucket")
    path = dump_debug_log(tmp_path / "debug.log")
    assert "only in the bucket" in (tmp_path / "debug.log").read_text()
    assert path.endswith("debug.log")
