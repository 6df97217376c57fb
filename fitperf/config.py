from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

@dataclass(frozen=True)
class DatasetConfig:
    """Where the precomputed model artifacts live and how their files are named."""
    data_root: Path
    cell_lines: Tuple[str, ...] = ()
    populations: Tuple[str, ...] = ("models",)
    predictions_file: str = "model_predictions.tsv"
    stable_states_file: str = "stable_states.tsv"
    link_operators_file: str = "link_operators.tsv"
    observed_file: str = "observed_synergies.txt"
    steady_state_file: str = "steady_state.tsv"
    id_column: str = "model"

    def cell_line_dir(self, cell_line: str) -> Path:
        return Path(self.data_root) / cell_line

    def dataset_dir(self, cell_line: str, population: str) -> Path:
        return self.cell_line_dir(cell_line) / population

    def steady_state_path(self, cell_line: str) -> Path:
        return self.cell_line_dir(cell_line) / self.steady_state_file

    def observed_path(self, cell_line: str) -> Path:
        return self.cell_line_dir(cell_line) / self.observed_file

@dataclass(frozen=True)
class AnalysisConfig:
    """Parameters of the fixed test sequence run on one selected dataset."""
    seed: int = 0
    sample_size: Optional[int] = None
    dedupe: bool = True
    mcc_classes: Optional[int] = 4      # None -> max(TP) - 1
    fitness_classes: int = 4
    normality_max_n: int = 5000
    alpha: float = 0.05
    p_adjust: str = "fdr_bh"
    band_points: int = 100
    band_level: float = 0.95
