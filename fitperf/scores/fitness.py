from __future__ import annotations
import numpy as np
import pandas as pd

from fitperf.errors import DataConsistencyError
from fitperf.model import BooleanModel, Evidence, ScoreResult

def fitness(stable_state: pd.Series, steady_state: pd.Series) -> float:
    """Fraction of steady-state-defined nodes on which the stable state agrees.

    Both vectors are keyed by node name. The steady state is first restricted
    to nodes the model has, so column order never matters and extra
    steady-state nodes are ignored.
    """
    shared = steady_state.index.intersection(stable_state.index)
    ss = pd.to_numeric(steady_state.loc[shared], errors="coerce").dropna()
    if ss.empty:
        raise DataConsistencyError(
            "steady state has no defined value on any node of the model"
        )
    model_vals = stable_state.loc[ss.index].to_numpy(dtype=float)
    matches = int(np.sum(model_vals == ss.to_numpy(dtype=float)))
    return matches / float(ss.size)

def score_fitness(model: BooleanModel, evidence: Evidence) -> ScoreResult:
    if evidence.steady_state is None:
        return ScoreResult(name="fitness", value=float("nan"), meta={"reason": "no steady state"})
    return ScoreResult(name="fitness", value=fitness(model.stable_state, evidence.steady_state))
