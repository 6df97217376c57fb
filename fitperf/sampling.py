from __future__ import annotations
from typing import Callable, Hashable, Iterable, List, Optional, Sequence, Set, TypeVar
import logging
import numpy as np
import pandas as pd

from fitperf.errors import SamplingError
from fitperf.model import BooleanModel, Dataset

logger = logging.getLogger(__name__)

T = TypeVar("T")

def _first_by(items: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    seen: Set[Hashable] = set()
    out = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        out.append(item)
    return out

def dedupe_by_signature(models: Sequence[BooleanModel]) -> List[BooleanModel]:
    """Keep the first model seen for each distinct link-operator signature."""
    return _first_by(models, lambda m: tuple(m.signature))

def unique_model_ids(link_operators: pd.DataFrame) -> List[str]:
    """Frame form of dedupe_by_signature: ids of the first row of each distinct row."""
    return [str(i) for i in link_operators.index[~link_operators.duplicated(keep="first")]]

def sample(ids: Iterable[str], n: int, seed: int) -> Set[str]:
    """Draw ``n`` distinct ids uniformly without replacement.

    Candidates are sorted first so the draw depends only on the candidate
    set, ``n`` and ``seed``; a private generator is used, never global state.
    """
    pool = sorted(set(ids))
    if n < 0 or n > len(pool):
        raise SamplingError(f"cannot sample {n} unique ids: {len(pool)} available")
    rng = np.random.default_rng(seed)
    picked = rng.choice(len(pool), size=n, replace=False)
    return {pool[i] for i in picked}

def reduce_dataset(ds: Dataset, dedupe: bool = True, n: Optional[int] = None,
                   seed: int = 0) -> Dataset:
    """Structurally unique models of a dataset, optionally subsampled."""
    ids = list(ds.metrics.index)
    if dedupe and ds.signatures:
        unique = _first_by(ids, lambda m: tuple(ds.signatures.get(m, (m,))))
        logger.info("%s: %d of %d models are structurally unique", ds.key, len(unique), len(ids))
        ids = unique
    if n is not None:
        ids = sample(ids, n, seed)
        logger.info("%s: sampled %d models (seed=%d)", ds.key, n, seed)
    return ds.subset(ids)
