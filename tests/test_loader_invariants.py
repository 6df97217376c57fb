import math
import pandas as pd
import pytest

from fitperf.config import DatasetConfig
from fitperf.errors import DataConsistencyError
from fitperf.loader import load_dataset, load_datasets, load_population, read_steady_state

PREDICTIONS = "model\tA-B\tA-C\tB-C\nm1\t1\t0\t1\nm2\t0\tNA\t1\nm3\t1\t1\t0\n"
STABLE = "model\tX\tY\tZ\nm1\t1\t0\t1\nm2\t1\t1\t1\nm3\t0\t0\t1\n"
LINKS = "model\tL1\tL2\nm1\t0\t1\nm2\t0\t1\nm3\t1\t1\n"

def write_cell_line(root, cell_line="CL", predictions=PREDICTIONS, stable=STABLE, links=LINKS,
                    steady="X\t1\nY\t0\nZ\tNA\n"):
    pop = root / cell_line / "models"
    pop.mkdir(parents=True)
    (pop / "model_predictions.tsv").write_text(predictions)
    (pop / "stable_states.tsv").write_text(stable)
    (pop / "link_operators.tsv").write_text(links)
    (root / cell_line / "observed_synergies.txt").write_text("# gold standard\nA-B\n\nB-C\n")
    if steady is not None:
        (root / cell_line / "steady_state.tsv").write_text(steady)
    return DatasetConfig(data_root=root, cell_lines=(cell_line,))

def test_population_is_aligned_by_model_id(tmp_path):
    # stable states listed in a different order than predictions
    stable = "model\tX\tY\tZ\nm3\t0\t0\t1\nm1\t1\t0\t1\nm2\t1\t1\t1\n"
    cfg = write_cell_line(tmp_path, stable=stable)
    models = load_population(cfg, "CL", "models")
    assert [m.name for m in models] == ["m1", "m2", "m3"]
    assert models[2].stable_state.tolist() == [0, 0, 1]
    assert math.isnan(models[1].predictions["A-C"])
    assert models[0].signature == models[1].signature

def test_load_dataset_scores_models(tmp_path):
    cfg = write_cell_line(tmp_path)
    ds, models, evidence = load_dataset(cfg, "CL", "models")
    assert evidence.observed == frozenset({"A-B", "B-C"})
    assert evidence.tested == ("A-B", "A-C", "B-C")
    assert ds.fitness.tolist() == [1.0, 0.5, 0.5]
    assert ds.tp.tolist() == [2, 1, 1]
    assert abs(ds.mcc["m1"] - 1.0) < 1e-9

def test_load_datasets_keys(tmp_path):
    cfg = write_cell_line(tmp_path)
    datasets = load_datasets(cfg)
    assert list(datasets) == ["CL/models"]

def test_missing_steady_state_skips_fitness(tmp_path):
    cfg = write_cell_line(tmp_path, steady=None)
    ds, _, evidence = load_dataset(cfg, "CL", "models")
    assert evidence.steady_state is None
    assert "fitness" not in ds.metrics.columns

def test_mismatched_model_ids_fail(tmp_path):
    links = "model\tL1\tL2\nm1\t0\t1\nm2\t0\t1\nm4\t1\t1\n"
    cfg = write_cell_line(tmp_path, links=links)
    with pytest.raises(DataConsistencyError, match="model ids differ"):
        load_population(cfg, "CL", "models")

def test_multiple_stable_states_fail(tmp_path):
    stable = STABLE + "m2\t0\t0\t0\n"
    cfg = write_cell_line(tmp_path, stable=stable)
    with pytest.raises(DataConsistencyError, match="more than one stable state"):
        load_population(cfg, "CL", "models")

def test_non_binary_prediction_fails(tmp_path):
    predictions = PREDICTIONS.replace("m3\t1\t1\t0", "m3\t1\t2\t0")
    cfg = write_cell_line(tmp_path, predictions=predictions)
    with pytest.raises(DataConsistencyError, match="outside"):
        load_population(cfg, "CL", "models")

def test_steady_state_reader_keeps_missing(tmp_path):
    path = tmp_path / "ss.tsv"
    path.write_text("A\t1\nB\tNA\nC\t0\n")
    ss = read_steady_state(path)
    assert list(ss.index) == ["A", "B", "C"]
    assert ss.isna().tolist() == [False, True, False]
