"""Prediction performance of a single model against the observed synergies.

Missing (NaN) predictions count as "not synergistic" in every count below:
they add nothing to TP or FP and are absorbed by FN or TN. Downstream
numbers depend on this convention, so it is kept as is.
"""
from __future__ import annotations
from typing import Iterable, NamedTuple, Optional
import math
import numpy as np
import pandas as pd

from fitperf.errors import DataConsistencyError
from fitperf.model import BooleanModel, Evidence, ScoreResult

class Confusion(NamedTuple):
    tp: int
    fp: int
    tn: int
    fn: int

def _positives(predictions: pd.Series, keys) -> int:
    vals = pd.to_numeric(predictions.reindex(list(keys)), errors="coerce").to_numpy(dtype=float)
    return int(np.sum(vals == 1))

def tp_count(predictions: pd.Series, observed: Iterable[str]) -> int:
    """Observed synergies the model predicts as synergistic."""
    observed = set(observed)
    return _positives(predictions, [k for k in predictions.index if k in observed])

def confusion_counts(predictions: pd.Series, observed: Iterable[str],
                     total_tested: Optional[int] = None) -> Confusion:
    observed = set(observed)
    untested = observed - set(predictions.index)
    if untested:
        raise DataConsistencyError(
            f"observed synergies without a prediction: {sorted(untested)[:5]}"
        )
    if total_tested is None:
        total_tested = int(predictions.size)
    unobserved = [k for k in predictions.index if k not in observed]
    tp = tp_count(predictions, observed)
    fp = _positives(predictions, unobserved)
    fn = len(observed) - tp
    tn = (total_tested - len(observed)) - fp
    return Confusion(tp=tp, fp=fp, tn=tn, fn=fn)

def mcc_from_counts(tp: int, fp: int, tn: int, fn: int) -> float:
    denom = float(tp + fp) * float(tp + fn) * float(tn + fp) * float(tn + fn)
    if denom == 0:
        return float("nan")
    return (float(tp) * tn - float(fp) * fn) / math.sqrt(denom)

def mcc(predictions: pd.Series, observed: Iterable[str],
        total_tested: Optional[int] = None) -> float:
    """Matthews correlation coefficient; NaN when any confusion margin is empty."""
    return mcc_from_counts(*confusion_counts(predictions, observed, total_tested))

def score_tp(model: BooleanModel, evidence: Evidence) -> ScoreResult:
    return ScoreResult(name="tp", value=float(tp_count(model.predictions, evidence.observed)))

def score_mcc(model: BooleanModel, evidence: Evidence) -> ScoreResult:
    counts = confusion_counts(model.predictions, evidence.observed, evidence.total_tested)
    return ScoreResult(name="mcc", value=mcc_from_counts(*counts), meta=counts._asdict())
