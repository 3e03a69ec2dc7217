import time

import pytest

from flatprop.training import pipelines


@pytest.mark.perf
def test_sine_rprop_runtime(tmp_path):
    config = pipelines.load_preset("sine-rprop")
    config["train"].update({"iterations": 100, "target_error": None, "run_dir": str(tmp_path / "run")})
    start = time.perf_counter()
    result = pipelines.run_pipeline(config)
    elapsed = time.perf_counter() - start
    assert result.iterations == 100
    assert elapsed < 30.0
