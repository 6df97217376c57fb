from itertools import combinations
import numpy as np
import pandas as pd
import pytest

from fitperf.classify import class_summary, classify_scores, cluster_1d
from fitperf.errors import ClusteringError

def brute_force_withinss(values, k):
    """Best total SSQ over every split of the sorted values into k contiguous runs."""
    x = np.sort(np.asarray(values, dtype=float))
    best = np.inf
    for cuts in combinations(range(1, x.size), k - 1):
        parts = np.split(x, cuts)
        best = min(best, sum(float(np.sum((p - p.mean()) ** 2)) for p in parts))
    return best

def test_three_separated_pairs():
    res = cluster_1d([0.1, 0.15, 0.5, 0.55, 0.9, 0.95], k=3)
    assert res.labels.tolist() == [1, 1, 2, 2, 3, 3]
    assert np.allclose(res.centers, [0.125, 0.525, 0.925])
    assert res.sizes.tolist() == [2, 2, 2]

def test_labels_follow_value_order_not_input_order():
    values = [0.9, 0.1, 0.55, 0.95, 0.15, 0.5]
    res = cluster_1d(values, k=3)
    assert res.labels.tolist() == [3, 1, 2, 3, 1, 2]

def test_matches_exhaustive_search():
    rng = np.random.default_rng(7)
    values = rng.normal(size=9)
    for k in (2, 3, 4):
        res = cluster_1d(values, k)
        assert abs(res.tot_withinss - brute_force_withinss(values, k)) < 1e-9

def test_labels_are_monotone_in_value():
    rng = np.random.default_rng(3)
    values = np.round(rng.uniform(-1, 1, size=200), 2)
    res = cluster_1d(values, k=5)
    order = np.argsort(values, kind="mergesort")
    assert np.all(np.diff(res.labels[order]) >= 0)
    assert np.all(np.diff(res.centers) > 0)
    assert res.sizes.sum() == values.size

def test_duplicates_share_a_label():
    values = [0.2, 0.2, 0.2, 0.21, 0.8, 0.8, 0.5]
    res = cluster_1d(values, k=3)
    assert len(set(res.labels[:3])) == 1
    assert res.labels[4] == res.labels[5]

def test_deterministic():
    values = [0.3, -0.1, 0.3, 0.7, 0.0, 0.25, 0.9, 0.65]
    a = cluster_1d(values, 3)
    b = cluster_1d(values, 3)
    assert a.labels.tolist() == b.labels.tolist()
    assert np.array_equal(a.centers, b.centers)
    assert np.array_equal(a.sizes, b.sizes)

def test_single_class():
    res = cluster_1d([1.0, 2.0, 3.0], k=1)
    assert res.labels.tolist() == [1, 1, 1]
    assert abs(res.centers[0] - 2.0) < 1e-12

def test_too_many_classes_fails():
    with pytest.raises(ClusteringError, match="only 2 distinct"):
        cluster_1d([0.1, 0.1, 0.5, 0.5], k=3)

def test_non_finite_values_fail():
    with pytest.raises(ClusteringError):
        cluster_1d([0.1, np.nan, 0.5], k=2)

def test_classify_scores_keeps_undefined_rows():
    scores = pd.Series([0.1, np.nan, 0.12, 0.8, 0.82], index=list("abcde"), name="mcc")
    labels = classify_scores(scores, 2)
    assert list(labels.index) == list("abcde")
    assert labels.isna().tolist() == [False, True, False, False, False]
    assert labels.dropna().tolist() == [1, 1, 2, 2]

def test_class_summary():
    scores = pd.Series([0.1, 0.12, 0.8, 0.82, np.nan], name="mcc")
    labels = classify_scores(scores, 2)
    summary = class_summary(scores, labels)
    assert summary.index.tolist() == [1, 2]
    assert summary["size"].tolist() == [2, 2]
    assert abs(summary.loc[2, "center"] - 0.81) < 1e-12
