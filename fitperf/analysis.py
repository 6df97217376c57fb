from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import logging
import pandas as pd

from fitperf.classify import class_summary, classify_scores
from fitperf.config import AnalysisConfig
from fitperf.model import Dataset
from fitperf.sampling import reduce_dataset
from fitperf.stats import (
    CorrelationResult, KruskalResult, NormalityResult, PairwiseResult, PseudoR2Result,
    choose_correlation_methods, kruskal_wallis, multinomial_pseudo_r2, normality_check,
    pairwise_rank_sum, rank_correlation, regression_band,
)

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class AnalysisReport:
    """Everything the fixed test sequence produces for one dataset."""
    dataset: str
    metrics: pd.DataFrame                 # per-model scores plus class labels
    normality: List[NormalityResult]
    methods: Tuple[str, ...]
    correlations: List[CorrelationResult]
    bands: Dict[str, pd.DataFrame]
    pseudo_r2: Optional[PseudoR2Result]
    class_summaries: Dict[str, pd.DataFrame] = field(default_factory=dict)
    kruskal: Dict[str, KruskalResult] = field(default_factory=dict)
    pairwise: Dict[str, PairwiseResult] = field(default_factory=dict)

    def to_frames(self) -> Dict[str, pd.DataFrame]:
        frames = {
            "metrics": self.metrics,
            "normality": pd.DataFrame([
                {"variable": r.name, "statistic": r.statistic, "pvalue": r.pvalue,
                 "n": r.n, "reject_normality": r.reject}
                for r in self.normality
            ]),
            "correlations": pd.DataFrame([vars(r) for r in self.correlations]),
            "kruskal_wallis": pd.DataFrame([
                {"comparison": name, "statistic": r.statistic, "pvalue": r.pvalue,
                 "df": r.df, "n": r.n, "dropped_groups": list(r.dropped)}
                for name, r in self.kruskal.items()
            ]),
        }
        if self.pseudo_r2 is not None:
            frames["pseudo_r2"] = pd.DataFrame([vars(self.pseudo_r2)])
        for name, band in self.bands.items():
            frames[f"band_{name}"] = band
        for name, summ in self.class_summaries.items():
            frames[f"class_summary_{name}"] = summ
        for name, pw in self.pairwise.items():
            frames[f"pairwise_{name}"] = pw.pvalues
        return frames

def resolve_mcc_classes(cfg: AnalysisConfig, tp: pd.Series) -> int:
    if cfg.mcc_classes is not None:
        return int(cfg.mcc_classes)
    return int(tp.max()) - 1

def _compare(name: str, values: pd.Series, groups: pd.Series, cfg: AnalysisConfig,
             kruskal: Dict[str, KruskalResult], pairwise: Dict[str, PairwiseResult]) -> None:
    kruskal[name] = kruskal_wallis(values, groups)
    pairwise[name] = pairwise_rank_sum(values, groups, p_adjust=cfg.p_adjust)

def run_analysis(ds: Dataset, cfg: AnalysisConfig = AnalysisConfig()) -> AnalysisReport:
    """Dedupe/sample, then normality, correlations, pseudo-R^2 and class comparisons."""
    ds = reduce_dataset(ds, dedupe=cfg.dedupe, n=cfg.sample_size, seed=cfg.seed)
    metrics = ds.metrics.copy()
    has_fitness = "fitness" in metrics and metrics["fitness"].notna().any()
    logger.info("analysing %s with %d models", ds.key, len(metrics))

    variables = (["fitness"] if has_fitness else []) + ["mcc", "tp"]
    normality = [
        normality_check(metrics[v], name=v, max_n=cfg.normality_max_n, seed=cfg.seed, alpha=cfg.alpha)
        for v in variables
    ]
    methods = choose_correlation_methods(normality)

    correlations: List[CorrelationResult] = []
    bands: Dict[str, pd.DataFrame] = {}
    pseudo_r2 = None
    kruskal: Dict[str, KruskalResult] = {}
    pairwise: Dict[str, PairwiseResult] = {}
    summaries: Dict[str, pd.DataFrame] = {}

    if has_fitness:
        for target in ("mcc", "tp"):
            for method in methods:
                correlations.append(rank_correlation(metrics["fitness"], metrics[target], method=method,
                                                     x_name="fitness", y_name=target))
            bands[f"fitness_{target}"] = regression_band(metrics["fitness"], metrics[target],
                                                         level=cfg.band_level, n_points=cfg.band_points)
        pseudo_r2 = multinomial_pseudo_r2(metrics["tp"], metrics["fitness"],
                                          response_name="tp", predictor_name="fitness")

    metrics["mcc_class"] = classify_scores(metrics["mcc"], resolve_mcc_classes(cfg, metrics["tp"]))
    summaries["mcc"] = class_summary(metrics["mcc"], metrics["mcc_class"])
    if has_fitness:
        metrics["fitness_class"] = classify_scores(metrics["fitness"], cfg.fitness_classes)
        summaries["fitness"] = class_summary(metrics["fitness"], metrics["fitness_class"])
        _compare("fitness_by_mcc_class", metrics["fitness"], metrics["mcc_class"], cfg, kruskal, pairwise)
        _compare("mcc_by_fitness_class", metrics["mcc"], metrics["fitness_class"], cfg, kruskal, pairwise)
        _compare("fitness_by_tp", metrics["fitness"], metrics["tp"].astype(int), cfg, kruskal, pairwise)

    return AnalysisReport(
        dataset=ds.key,
        metrics=metrics,
        normality=normality,
        methods=methods,
        correlations=correlations,
        bands=bands,
        pseudo_r2=pseudo_r2,
        class_summaries=summaries,
        kruskal=kruskal,
        pairwise=pairwise,
    )
