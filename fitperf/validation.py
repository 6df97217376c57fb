from __future__ import annotations
import numpy as np
import pandas as pd

from fitperf.errors import DataConsistencyError

def safe_div(a, b):
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    out = np.full_like(a, np.nan, dtype=float)
    m = (b != 0) & ~np.isnan(a) & ~np.isnan(b)
    out[m] = a[m] / b[m]
    return out

def check_aligned_ids(**frames: pd.DataFrame) -> None:
    """All frames must be indexed by the same set of model ids, without duplicates.

    Order is not compared; callers reindex on the first frame afterwards.
    """
    names = list(frames)
    for name in names:
        dup = frames[name].index[frames[name].index.duplicated()]
        if len(dup):
            raise DataConsistencyError(
                f"{name}: duplicated model ids {sorted(map(str, dup.unique()))[:5]}"
            )
    ref_name = names[0]
    ref = set(frames[ref_name].index)
    for name in names[1:]:
        other = set(frames[name].index)
        if other != ref:
            only_ref = sorted(map(str, ref - other))[:5]
            only_other = sorted(map(str, other - ref))[:5]
            raise DataConsistencyError(
                f"model ids differ between {ref_name} and {name}: "
                f"only in {ref_name}={only_ref}, only in {name}={only_other}"
            )

def check_binary(values: pd.DataFrame, what: str, allow_missing: bool) -> None:
    arr = values.to_numpy(dtype=float)
    missing = np.isnan(arr)
    if missing.any() and not allow_missing:
        rows = values.index[missing.any(axis=1)]
        raise DataConsistencyError(f"{what}: missing values for models {list(rows[:5])}")
    bad = ~missing & (arr != 0) & (arr != 1)
    if bad.any():
        rows = values.index[bad.any(axis=1)]
        raise DataConsistencyError(f"{what}: values outside {{0,1}} for models {list(rows[:5])}")

def check_single_fixpoint(stable_states: pd.DataFrame) -> None:
    """Each model must contribute exactly one complete binary stable state."""
    counts = stable_states.index.value_counts()
    multi = counts[counts != 1]
    if len(multi):
        raise DataConsistencyError(
            f"models with more than one stable state: {list(multi.index[:5])}"
        )
    check_binary(stable_states, "stable states", allow_missing=False)
