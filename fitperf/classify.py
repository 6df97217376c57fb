"""Optimal univariate k-means.

Scores are partitioned into k classes by exact dynamic programming over the
sorted distinct values (each weighted by its multiplicity), minimising the
total within-class sum of squared deviations. The optimum is global, classes
are contiguous value ranges, and class 1 always holds the smallest values.
"""
from __future__ import annotations
from dataclasses import dataclass
import logging
import numpy as np
import pandas as pd

from fitperf.errors import ClusteringError

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ClusterResult:
    labels: np.ndarray        # 1..k, aligned with the input vector
    centers: np.ndarray       # increasing
    sizes: np.ndarray
    withinss: np.ndarray
    lower: np.ndarray         # smallest value in each class
    upper: np.ndarray         # largest value in each class

    @property
    def k(self) -> int:
        return int(self.centers.size)

    @property
    def tot_withinss(self) -> float:
        return float(np.sum(self.withinss))

def _segment_ssq(W, S1, S2, j, i):
    """Weighted SSQ of distinct values j..i (inclusive); j may be an array."""
    w = W[i + 1] - W[j]
    s = S1[i + 1] - S1[j]
    ss = S2[i + 1] - S2[j]
    return np.maximum(ss - s * s / w, 0.0)

def cluster_1d(values, k: int) -> ClusterResult:
    x = np.asarray(values, dtype=float).ravel()
    if x.size == 0:
        raise ClusteringError("cannot cluster an empty vector")
    if not np.all(np.isfinite(x)):
        raise ClusteringError("values must be finite; drop NaN scores before clustering")
    k = int(k)
    if k < 1:
        raise ClusteringError(f"number of classes must be >= 1, got {k}")

    uniq, inverse, counts = np.unique(x, return_inverse=True, return_counts=True)
    m = uniq.size
    if k > m:
        raise ClusteringError(
            f"requested {k} classes but the input has only {m} distinct values"
        )

    # shifting by the median keeps the prefix sums well conditioned
    xc = uniq - np.median(uniq)
    w = counts.astype(float)
    W = np.concatenate([[0.0], np.cumsum(w)])
    S1 = np.concatenate([[0.0], np.cumsum(w * xc)])
    S2 = np.concatenate([[0.0], np.cumsum(w * xc * xc)])

    D = np.full((k, m), np.inf)
    B = np.zeros((k, m), dtype=int)
    D[0] = _segment_ssq(W, S1, S2, np.zeros(m, dtype=int), np.arange(m))
    for q in range(1, k):
        for i in range(q, m):
            js = np.arange(q, i + 1)
            cand = D[q - 1, js - 1] + _segment_ssq(W, S1, S2, js, i)
            best = int(np.argmin(cand))
            D[q, i] = cand[best]
            B[q, i] = js[best]

    cluster_of_uniq = np.empty(m, dtype=int)
    end = m - 1
    for q in range(k - 1, -1, -1):
        start = B[q, end] if q > 0 else 0
        cluster_of_uniq[start:end + 1] = q
        end = start - 1

    centers = np.empty(k)
    sizes = np.empty(k, dtype=int)
    withinss = np.empty(k)
    lower = np.empty(k)
    upper = np.empty(k)
    for q in range(k):
        sel = cluster_of_uniq == q
        vals, wts = uniq[sel], counts[sel]
        centers[q] = np.average(vals, weights=wts)
        sizes[q] = int(wts.sum())
        withinss[q] = float(np.sum(wts * (vals - centers[q]) ** 2))
        lower[q], upper[q] = vals[0], vals[-1]

    return ClusterResult(
        labels=cluster_of_uniq[inverse] + 1,
        centers=centers,
        sizes=sizes,
        withinss=withinss,
        lower=lower,
        upper=upper,
    )

def classify_scores(scores: pd.Series, k: int) -> pd.Series:
    """Class label per model; models with a NaN score get <NA> and keep their row."""
    finite = scores[np.isfinite(scores.astype(float))]
    dropped = scores.size - finite.size
    if dropped:
        logger.warning("%s: %d models with undefined score left unclassified", scores.name, dropped)
    res = cluster_1d(finite.to_numpy(dtype=float), k)
    labels = pd.Series(pd.NA, index=scores.index, dtype="Int64", name=f"{scores.name}_class")
    labels.loc[finite.index] = res.labels
    logger.info("%s: %d classes, sizes %s, centers %s", scores.name, k,
                res.sizes.tolist(), np.round(res.centers, 4).tolist())
    return labels

def class_summary(values: pd.Series, labels: pd.Series) -> pd.DataFrame:
    """Size, mean and value range of every class (the classified score table)."""
    df = pd.DataFrame({"value": values.astype(float), "label": labels}).dropna(subset=["label"])
    out = df.groupby("label")["value"].agg(size="size", center="mean", min="min", max="max")
    out.index = out.index.astype(int)
    out.index.name = "class"
    return out
