from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple
import pandas as pd

@dataclass(frozen=True)
class BooleanModel:
    """One boolean model of a population, as produced by the upstream simulator."""
    name: str
    stable_state: pd.Series               # node -> {0,1}, the single fixpoint
    predictions: pd.Series                # drug combination -> {0,1,NaN}
    signature: Tuple[Any, ...] = ()       # link-operator encoding of the equations

@dataclass(frozen=True)
class Evidence:
    """Cell-line specific ground truth the models are scored against."""
    cell_line: str
    observed: FrozenSet[str]              # gold-standard synergies
    tested: Tuple[str, ...]               # every combination the models were tested on
    steady_state: Optional[pd.Series] = None   # node -> {0,1,NaN}

    @property
    def unobserved(self) -> FrozenSet[str]:
        return frozenset(self.tested) - self.observed

    @property
    def total_tested(self) -> int:
        return len(self.tested)

@dataclass(frozen=True)
class ScoreResult:
    """Standard output of any per-model metric."""
    name: str
    value: float
    meta: Optional[Dict[str, Any]] = None

@dataclass(frozen=True)
class Dataset:
    """A (cell line, model population) pair with its aligned per-model metrics.

    ``metrics`` is indexed by model id and carries at least the
    ``fitness``, ``tp`` and ``mcc`` columns.
    """
    cell_line: str
    population: str
    metrics: pd.DataFrame
    n_observed: int
    signatures: Dict[str, Tuple[Any, ...]] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.cell_line}/{self.population}"

    @property
    def fitness(self) -> pd.Series:
        return self.metrics["fitness"]

    @property
    def tp(self) -> pd.Series:
        return self.metrics["tp"]

    @property
    def mcc(self) -> pd.Series:
        return self.metrics["mcc"]

    def subset(self, model_ids) -> "Dataset":
        """Restrict to the given models, keeping the current row order."""
        wanted = set(model_ids)
        keep = [m for m in self.metrics.index if m in wanted]
        return Dataset(
            cell_line=self.cell_line,
            population=self.population,
            metrics=self.metrics.loc[keep].copy(),
            n_observed=self.n_observed,
            signatures={m: self.signatures[m] for m in keep if m in self.signatures},
        )
