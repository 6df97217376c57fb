from __future__ import annotations
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple
import logging
import pandas as pd

from fitperf.config import DatasetConfig
from fitperf.errors import DataConsistencyError
from fitperf.model import BooleanModel, Dataset, Evidence
from fitperf.pipeline import build_dataset
from fitperf.validation import check_aligned_ids, check_binary, check_single_fixpoint

logger = logging.getLogger(__name__)

NA_VALUES = ["NA", "NaN", "nan", ""]

def _read_matrix(path: Path, id_column: str) -> pd.DataFrame:
    if not path.exists():
        raise DataConsistencyError(f"missing input file: {path}")
    df = pd.read_csv(path, sep="\t", na_values=NA_VALUES, keep_default_na=False,
                     dtype={id_column: str})
    if id_column not in df.columns:
        raise DataConsistencyError(f"{path}: no '{id_column}' column")
    return df.set_index(id_column)

def _numeric(df: pd.DataFrame, path: Path) -> pd.DataFrame:
    try:
        return df.apply(pd.to_numeric).astype(float)
    except (TypeError, ValueError) as exc:
        raise DataConsistencyError(f"{path}: non-numeric values ({exc})") from exc

def read_observed_synergies(path: Path) -> FrozenSet[str]:
    if not path.exists():
        raise DataConsistencyError(f"missing input file: {path}")
    out = set()
    with open(path) as fh:
        for line in fh:
            line = line.strip()
            if line and not line.startswith("#"):
                out.add(line)
    return frozenset(out)

def read_steady_state(path: Path) -> pd.Series:
    """Node-indexed steady state; NA entries are kept as NaN."""
    if not path.exists():
        raise DataConsistencyError(f"missing input file: {path}")
    df = pd.read_csv(path, sep="\t", header=None, names=["node", "value"],
                     na_values=NA_VALUES, keep_default_na=False, dtype={"node": str})
    ss = pd.to_numeric(df["value"], errors="coerce")
    ss.index = df["node"]
    if ss.index.duplicated().any():
        raise DataConsistencyError(f"{path}: duplicated node names")
    check_binary(ss.to_frame().T, "steady state", allow_missing=True)
    return ss

def load_population(cfg: DatasetConfig, cell_line: str, population: str) -> List[BooleanModel]:
    """Read and cross-check the three per-model matrices of one population."""
    root = cfg.dataset_dir(cell_line, population)
    pred_path = root / cfg.predictions_file
    ss_path = root / cfg.stable_states_file
    lo_path = root / cfg.link_operators_file

    predictions = _numeric(_read_matrix(pred_path, cfg.id_column), pred_path)
    stable_states = _numeric(_read_matrix(ss_path, cfg.id_column), ss_path)
    link_operators = _read_matrix(lo_path, cfg.id_column)

    check_single_fixpoint(stable_states)
    check_binary(predictions, "model predictions", allow_missing=True)
    check_aligned_ids(predictions=predictions, stable_states=stable_states,
                      link_operators=link_operators)

    order = predictions.index
    stable_states = stable_states.loc[order]
    link_operators = link_operators.loc[order]

    models = [
        BooleanModel(
            name=str(name),
            stable_state=stable_states.loc[name],
            predictions=predictions.loc[name],
            signature=tuple(link_operators.loc[name].tolist()),
        )
        for name in order
    ]
    logger.info("%s/%s: loaded %d models, %d combinations, %d nodes",
                cell_line, population, len(models), predictions.shape[1], stable_states.shape[1])
    return models

def load_evidence(cfg: DatasetConfig, cell_line: str, tested: Sequence[str]) -> Evidence:
    observed = read_observed_synergies(cfg.observed_path(cell_line))
    untested = sorted(observed - set(tested))
    if untested:
        raise DataConsistencyError(
            f"{cell_line}: observed synergies not among tested combinations: {untested[:5]}"
        )
    ss_path = cfg.steady_state_path(cell_line)
    steady_state: Optional[pd.Series] = read_steady_state(ss_path) if ss_path.exists() else None
    if steady_state is None:
        logger.info("%s: no steady state file, fitness will not be computed", cell_line)
    return Evidence(cell_line=cell_line, observed=observed, tested=tuple(tested),
                    steady_state=steady_state)

def load_dataset(cfg: DatasetConfig, cell_line: str, population: str,
                 **metric_kwargs) -> Tuple[Dataset, List[BooleanModel], Evidence]:
    models = load_population(cfg, cell_line, population)
    tested = list(models[0].predictions.index) if models else []
    evidence = load_evidence(cfg, cell_line, tested)
    return build_dataset(population, models, evidence, **metric_kwargs), models, evidence

def load_datasets(cfg: DatasetConfig, **metric_kwargs) -> Dict[str, Dataset]:
    """Every configured (cell line, population) pair, keyed by ``cell_line/population``."""
    out: Dict[str, Dataset] = {}
    for cell_line in cfg.cell_lines:
        for population in cfg.populations:
            ds, _, _ = load_dataset(cfg, cell_line, population, **metric_kwargs)
            out[ds.key] = ds
    return out
