import math
import numpy as np
import pandas as pd
import pytest

from fitperf.errors import DataConsistencyError
from fitperf.model import BooleanModel, Evidence
from fitperf.scores.fitness import fitness, score_fitness
from fitperf.scores.performance import confusion_counts, mcc, mcc_from_counts, score_mcc, tp_count

def make_toy_model(name="toy", predictions=None):
    return BooleanModel(
        name=name,
        stable_state=pd.Series({"X": 1, "Y": 0, "Z": 1}),
        predictions=pd.Series(predictions or {"AB": 1, "CD": 0, "EF": np.nan, "GH": 1}, dtype=float),
        signature=(0, 1, 1),
    )

def test_fitness_ignores_missing_steady_state_nodes():
    stable = pd.Series({"X": 1, "Y": 0, "Z": 1})
    steady = pd.Series({"X": 1, "Y": 0, "Z": np.nan})
    assert fitness(stable, steady) == 1.0

def test_fitness_aligns_by_node_name():
    stable = pd.Series({"X": 1, "Y": 0, "Z": 1})
    steady = pd.Series({"Z": 0, "Y": 0, "X": 1, "W": 1})   # W is not a model node
    assert abs(fitness(stable, steady) - 2 / 3) < 1e-9

def test_fitness_of_identical_states_is_one():
    stable = pd.Series({"A": 0, "B": 1, "C": 1, "D": 0})
    assert fitness(stable, stable) == 1.0

def test_fitness_without_shared_defined_nodes_fails():
    stable = pd.Series({"X": 1})
    with pytest.raises(DataConsistencyError):
        fitness(stable, pd.Series({"X": np.nan, "Q": 1}))

def test_tp_count_skips_missing_predictions():
    preds = pd.Series({"AB": 1, "CD": 0, "EF": np.nan, "GH": 1})
    assert tp_count(preds, {"AB", "GH"}) == 2
    assert tp_count(preds, {"EF", "CD"}) == 0

def test_tp_count_is_bounded_by_observed():
    preds = pd.Series({"AB": 1, "CD": 1, "EF": 1})
    observed = {"AB", "CD", "XY"}
    assert 0 <= tp_count(preds, observed) <= len(observed)

def test_mcc_known_value():
    preds = pd.Series({"A": 1, "B": 1, "C": 0, "D": 0, "E": 1})
    assert confusion_counts(preds, {"A", "C"}) == (1, 2, 1, 1)
    assert abs(mcc(preds, {"A", "C"}) - (-1 / 6)) < 1e-9

def test_mcc_treats_missing_prediction_as_negative():
    preds = pd.Series({"A": np.nan, "B": 1, "C": 0})
    counts = confusion_counts(preds, {"A"})
    assert (counts.tp, counts.fp, counts.tn, counts.fn) == (0, 1, 1, 1)
    assert abs(mcc(preds, {"A"}) + 0.5) < 1e-9

def test_mcc_undefined_when_a_margin_is_empty():
    assert math.isnan(mcc_from_counts(tp=0, fp=0, tn=5, fn=3))
    assert math.isnan(mcc_from_counts(tp=2, fp=3, tn=0, fn=0))
    all_negative = pd.Series({"A": 0, "B": 0, "C": np.nan})
    assert math.isnan(mcc(all_negative, {"A"}))

def test_mcc_perfect_prediction():
    preds = pd.Series({"A": 1, "B": 0, "C": 1, "D": 0})
    assert abs(mcc(preds, {"A", "C"}) - 1.0) < 1e-9

def test_score_functions_use_evidence():
    m = make_toy_model()
    ev = Evidence(cell_line="CL", observed=frozenset({"AB", "GH"}),
                  tested=("AB", "CD", "EF", "GH"),
                  steady_state=pd.Series({"X": 1, "Y": 1, "Z": np.nan}))
    assert abs(score_fitness(m, ev).value - 0.5) < 1e-9
    res = score_mcc(m, ev)
    assert res.meta == {"tp": 2, "fp": 0, "tn": 2, "fn": 0}
    assert abs(res.value - 1.0) < 1e-9

def test_observed_synergy_without_prediction_fails():
    preds = pd.Series({"A": 1, "B": 0, "C": 0})
    with pytest.raises(DataConsistencyError, match="without a prediction"):
        confusion_counts(preds, {"A", "Z"})
    with pytest.raises(DataConsistencyError):
        mcc(preds, {"A", "Z"})
