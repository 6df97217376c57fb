"""Cross-dataset summaries used to choose the dataset worth analysing.

The ranking is advisory: it orders candidates by how much spread their
fitness, MCC and TP vectors show, and the final pick is left to the caller.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable
import logging
import numpy as np
import pandas as pd

from fitperf.model import Dataset
from fitperf.validation import safe_div

logger = logging.getLogger(__name__)

RANGE_COLUMNS = ("fitness_range", "mcc_range", "tp_range")

def _describe(values: pd.Series, prefix: str, median: bool) -> Dict[str, float]:
    v = values.astype(float)
    v = v[np.isfinite(v)]
    if v.empty:
        out = {f"{prefix}_{s}": float("nan") for s in ("min", "max", "range", "mean")}
        if median:
            out[f"{prefix}_median"] = float("nan")
        return out
    out = {
        f"{prefix}_min": float(v.min()),
        f"{prefix}_max": float(v.max()),
        f"{prefix}_range": float(v.max() - v.min()),
        f"{prefix}_mean": float(v.mean()),
    }
    if median:
        out[f"{prefix}_median"] = float(v.median())
    return out

def summarize_dataset(ds: Dataset) -> Dict[str, Any]:
    """Extrema, range, mean (and median for fitness/MCC) of each metric vector.

    Undefined MCC values are skipped here only; the models stay in the
    dataset and in every other aggregate.
    """
    row: Dict[str, Any] = {
        "dataset": ds.key,
        "cell_line": ds.cell_line,
        "population": ds.population,
        "n_models": int(len(ds.metrics)),
        "n_observed": int(ds.n_observed),
    }
    if "fitness" in ds.metrics:
        row.update(_describe(ds.fitness, "fitness", median=True))
    row.update(_describe(ds.mcc, "mcc", median=True))
    row["n_mcc_undefined"] = int(ds.mcc.isna().sum())
    row.update(_describe(ds.tp, "tp", median=False))
    row["max_tp_rate"] = float(safe_div([row["tp_max"]], [ds.n_observed])[0])
    logger.debug("summary %s: %s", ds.key, row)
    return row

def summarize_datasets(datasets: Iterable[Dataset]) -> pd.DataFrame:
    rows = [summarize_dataset(ds) for ds in datasets]
    return pd.DataFrame(rows).set_index("dataset")

def rank_datasets(summary: pd.DataFrame) -> pd.DataFrame:
    """Add per-range ranks (1 = widest) and their sum, sorted best first.

    A missing range (e.g. no steady state, so no fitness) ranks last.
    """
    out = summary.copy()
    rank_cols = []
    for col in RANGE_COLUMNS:
        if col not in out:
            out[col] = np.nan
        rc = col.replace("_range", "_rank")
        out[rc] = out[col].rank(ascending=False, method="min", na_option="bottom")
        rank_cols.append(rc)
    out["rank_score"] = out[rank_cols].sum(axis=1)
    return out.sort_values(["rank_score", "fitness_range"], ascending=[True, False], kind="mergesort")

def top_candidates(summary: pd.DataFrame, n: int = 1) -> list:
    ranked = rank_datasets(summary)
    picks = list(ranked.index[:n])
    logger.info("top dataset candidates: %s", picks)
    return picks
