from __future__ import annotations
from dataclasses import dataclass
from typing import Callable

from fitperf.model import BooleanModel, Evidence, ScoreResult

ScoreFn = Callable[[BooleanModel, Evidence], ScoreResult]

@dataclass(frozen=True)
class ScoreSpec:
    name: str
    fn: ScoreFn
