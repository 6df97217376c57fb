from __future__ import annotations
from concurrent.futures import ProcessPoolExecutor
from typing import Dict, List, Optional, Sequence
import logging
import numbers
import numpy as np
import pandas as pd
from tqdm import tqdm

from fitperf.model import BooleanModel, Dataset, Evidence
from fitperf.scores.base import ScoreSpec
from fitperf.scores.fitness import score_fitness
from fitperf.scores.performance import score_mcc, score_tp

logger = logging.getLogger(__name__)

def build_metric_registry(with_fitness: bool = True) -> List[ScoreSpec]:
    """Per-model metrics in the column order of the metric table."""
    registry = [ScoreSpec("fitness", score_fitness)] if with_fitness else []
    registry += [
        ScoreSpec("tp", score_tp),
        ScoreSpec("mcc", score_mcc),
    ]
    return registry

def _score_rows(models: Sequence[BooleanModel], evidence: Evidence,
                registry: Sequence[ScoreSpec], confusion: bool, progress: bool) -> List[dict]:
    rows = []
    for m in tqdm(models, desc=f"Scoring {evidence.cell_line}", unit="model", disable=not progress):
        row = {"model": m.name}
        for spec in registry:
            res = spec.fn(m, evidence)
            row[spec.name] = res.value
            if confusion and res.meta:
                row.update({f"n_{k}": v for k, v in res.meta.items() if isinstance(v, numbers.Integral)})
        rows.append(row)
    return rows

def compute_metrics(models: Sequence[BooleanModel], evidence: Evidence,
                    registry: Optional[Sequence[ScoreSpec]] = None,
                    confusion: bool = False, n_jobs: int = 1,
                    progress: bool = False) -> pd.DataFrame:
    """One row per model, indexed by model id, one column per registered metric.

    Rows are independent, so with ``n_jobs > 1`` the models are split into
    contiguous chunks scored in worker processes; the result keeps the input
    model order regardless of completion order.
    """
    if registry is None:
        registry = build_metric_registry(with_fitness=evidence.steady_state is not None)
    models = list(models)
    if n_jobs > 1 and len(models) > n_jobs:
        chunks = [list(c) for c in np.array_split(np.arange(len(models)), n_jobs)]
        with ProcessPoolExecutor(max_workers=n_jobs) as pool:
            futures = [
                pool.submit(_score_rows, [models[i] for i in idx], evidence, list(registry), confusion, False)
                for idx in chunks
            ]
            rows = [row for fut in futures for row in fut.result()]
    else:
        rows = _score_rows(models, evidence, registry, confusion, progress)
    columns = ["model"] + [spec.name for spec in registry]
    df = pd.DataFrame(rows, columns=columns + [c for c in (rows[0] if rows else {}) if c not in columns])
    return df.set_index("model")

def build_dataset(population: str, models: Sequence[BooleanModel], evidence: Evidence,
                  **kwargs) -> Dataset:
    """Score a whole model population and wrap it as a Dataset record."""
    metrics = compute_metrics(models, evidence, **kwargs)
    signatures: Dict[str, tuple] = {m.name: m.signature for m in models}
    logger.info("%s/%s: scored %d models (%d observed synergies, %d tested)",
                evidence.cell_line, population, len(metrics),
                len(evidence.observed), evidence.total_tested)
    return Dataset(
        cell_line=evidence.cell_line,
        population=population,
        metrics=metrics,
        n_observed=len(evidence.observed),
        signatures=signatures,
    )
