"""Rank correlation and group-comparison tests over per-model scores."""
from __future__ import annotations
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, List, Sequence, Tuple
import logging
import numpy as np
import pandas as pd
from scipy import stats
import statsmodels.api as sm
from statsmodels.stats.multitest import multipletests
from statsmodels.tools.sm_exceptions import PerfectSeparationError

from fitperf.errors import PreconditionError

logger = logging.getLogger(__name__)

RANK_METHODS = ("spearman", "kendall")

@dataclass(frozen=True)
class NormalityResult:
    name: str
    statistic: float
    pvalue: float
    n: int
    alpha: float = 0.05

    @property
    def reject(self) -> bool:
        return bool(self.pvalue < self.alpha)

@dataclass(frozen=True)
class CorrelationResult:
    x: str
    y: str
    method: str
    coefficient: float
    pvalue: float
    n: int

@dataclass(frozen=True)
class PseudoR2Result:
    response: str
    predictor: str
    r2: float
    llf: float
    llnull: float
    n_levels: int
    n: int

@dataclass(frozen=True)
class KruskalResult:
    statistic: float
    pvalue: float
    df: int
    n: int
    groups: Tuple = ()
    dropped: Tuple = ()

@dataclass(frozen=True)
class PairwiseResult:
    """Lower-triangular matrices of pairwise rank-sum p-values (NaN elsewhere)."""
    pvalues: pd.DataFrame
    raw: pd.DataFrame
    method: str
    statistics: Dict[Tuple, float] = field(default_factory=dict)

def _paired(x, y) -> Tuple[np.ndarray, np.ndarray]:
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.shape != y.shape:
        raise PreconditionError(f"vectors differ in length: {x.size} vs {y.size}")
    keep = np.isfinite(x) & np.isfinite(y)
    return x[keep], y[keep]

def normality_check(values, name: str = "", max_n: int = 5000, seed: int = 0,
                    alpha: float = 0.05) -> NormalityResult:
    """Shapiro-Wilk on the finite values, on a seeded subsample above ``max_n``."""
    x = np.asarray(values, dtype=float)
    x = x[np.isfinite(x)]
    if x.size < 3:
        raise PreconditionError(f"{name}: normality test needs >= 3 values, got {x.size}")
    if x.size > max_n:
        logger.info("%s: Shapiro-Wilk on %d of %d values", name, max_n, x.size)
        x = np.random.default_rng(seed).choice(x, size=max_n, replace=False)
    stat, p = stats.shapiro(x)
    return NormalityResult(name=name, statistic=float(stat), pvalue=float(p), n=int(x.size), alpha=alpha)

def choose_correlation_methods(checks: Sequence[NormalityResult]) -> Tuple[str, ...]:
    """Pearson only when no variable rejects normality, rank methods otherwise."""
    if any(c.reject for c in checks):
        return RANK_METHODS
    return ("pearson",)

def rank_correlation(x, y, method: str = "spearman", x_name: str = "x",
                     y_name: str = "y") -> CorrelationResult:
    xv, yv = _paired(x, y)
    if xv.size < 3:
        raise PreconditionError(f"{method} correlation needs >= 3 complete pairs, got {xv.size}")
    if method == "spearman":
        r, p = stats.spearmanr(xv, yv)
    elif method == "kendall":
        r, p = stats.kendalltau(xv, yv)
    elif method == "pearson":
        r, p = stats.pearsonr(xv, yv)
    else:
        raise ValueError(f"unknown correlation method: {method}")
    return CorrelationResult(x=x_name, y=y_name, method=method,
                             coefficient=float(r), pvalue=float(p), n=int(xv.size))

def regression_band(x, y, level: float = 0.95, n_points: int = 100) -> pd.DataFrame:
    """Least-squares line of y on x with its pointwise confidence band."""
    xv, yv = _paired(x, y)
    if xv.size < 3:
        raise PreconditionError(f"regression needs >= 3 complete pairs, got {xv.size}")
    fit = sm.OLS(yv, sm.add_constant(xv, has_constant="add")).fit()
    grid = np.linspace(xv.min(), xv.max(), n_points)
    frame = fit.get_prediction(sm.add_constant(grid, has_constant="add")).summary_frame(alpha=1 - level)
    return pd.DataFrame({
        "x": grid,
        "fit": frame["mean"].to_numpy(),
        "lower": frame["mean_ci_lower"].to_numpy(),
        "upper": frame["mean_ci_upper"].to_numpy(),
    })

def multinomial_pseudo_r2(response, predictor, response_name: str = "response",
                          predictor_name: str = "predictor") -> PseudoR2Result:
    """McFadden's pseudo-R^2 of a multinomial logit of a discrete response on one predictor.

    R^2 = 1 - logL(fitted) / logL(intercept only).
    """
    yv, xv = _paired(response, predictor)
    levels, codes = np.unique(yv, return_inverse=True)
    if levels.size < 2:
        raise PreconditionError(f"{response_name}: multinomial fit needs >= 2 response levels")
    counts = np.bincount(codes).astype(float)
    llnull = float(np.sum(counts * np.log(counts / counts.sum())))
    model = sm.MNLogit(codes, sm.add_constant(xv, has_constant="add"))
    try:
        with np.errstate(over="ignore", invalid="ignore"):
            res = model.fit(method="lbfgs", maxiter=500, disp=False, skip_hessian=True)
        llf = float(res.llf)
    except PerfectSeparationError:
        llf = float("nan")
    if not np.isfinite(llf):
        # separated levels: the likelihood tends to 1 as the coefficients diverge
        logger.warning("%s: response levels separated by %s, taking logL(fitted) = 0",
                       response_name, predictor_name)
        llf = 0.0
    llf = min(llf, 0.0)
    return PseudoR2Result(response=response_name, predictor=predictor_name,
                          r2=1.0 - llf / llnull, llf=llf, llnull=llnull,
                          n_levels=int(levels.size), n=int(yv.size))

def _grouped(values, groups) -> Tuple[Dict, List]:
    """Finite values per group label, plus labels with fewer than two members."""
    v = pd.Series(np.asarray(values, dtype=float))
    g = pd.Series(np.asarray(groups, dtype=object))
    if v.size != g.size:
        raise PreconditionError(f"values and groups differ in length: {v.size} vs {g.size}")
    keep = np.isfinite(v.to_numpy()) & g.notna().to_numpy()
    by_group = {lab: grp.to_numpy() for lab, grp in v[keep].groupby(g[keep], sort=True)}
    small = [lab for lab, arr in by_group.items() if arr.size < 2]
    if small:
        logger.warning("excluding groups with fewer than 2 members: %s", small)
    return {lab: arr for lab, arr in by_group.items() if arr.size >= 2}, small

def kruskal_wallis(values, groups) -> KruskalResult:
    """Rank-based one-way test for equal location across groups."""
    by_group, small = _grouped(values, groups)
    if len(by_group) < 2:
        raise PreconditionError(
            f"Kruskal-Wallis needs >= 2 groups with >= 2 members, got {len(by_group)}"
        )
    try:
        h, p = stats.kruskal(*by_group.values())
    except ValueError as exc:
        raise PreconditionError(f"Kruskal-Wallis failed: {exc}") from exc
    n = int(sum(arr.size for arr in by_group.values()))
    logger.info("Kruskal-Wallis: H=%.4f, p=%.3g over %d groups (n=%d)", h, p, len(by_group), n)
    return KruskalResult(statistic=float(h), pvalue=float(p), df=len(by_group) - 1, n=n,
                         groups=tuple(by_group), dropped=tuple(small))

def adjust_pvalues(pvalues, method: str = "fdr_bh") -> np.ndarray:
    """Multiple-comparison adjustment over the finite entries; NaN stays NaN."""
    p = np.asarray(pvalues, dtype=float)
    out = np.full_like(p, np.nan)
    ok = np.isfinite(p)
    if ok.any():
        out[ok] = multipletests(p[ok], method=method)[1]
    return out

def pairwise_rank_sum(values, groups, p_adjust: str = "fdr_bh") -> PairwiseResult:
    """Two-sided Mann-Whitney tests for every group pair, adjusted jointly.

    Rows and columns are the sorted group labels; entry [b, a] (b after a)
    holds the p-value of a vs b. The diagonal, the upper triangle and pairs
    involving a group with fewer than two members are NaN.
    """
    by_group, small = _grouped(values, groups)
    if len(by_group) < 2:
        raise PreconditionError(
            f"pairwise tests need >= 2 groups with >= 2 members, got {len(by_group)}"
        )
    labels = sorted(list(by_group) + small)
    raw = pd.DataFrame(np.nan, index=labels, columns=labels)
    statistics = {}
    pairs = []
    for a, b in combinations(labels, 2):
        if a not in by_group or b not in by_group:
            continue
        u, p = stats.mannwhitneyu(by_group[a], by_group[b], alternative="two-sided")
        raw.loc[b, a] = p
        statistics[(a, b)] = float(u)
        pairs.append((b, a))
    adjusted = raw.copy()
    flat = adjust_pvalues([raw.loc[r, c] for r, c in pairs], method=p_adjust)
    for (r, c), q in zip(pairs, flat):
        adjusted.loc[r, c] = q
    return PairwiseResult(pvalues=adjusted, raw=raw, method=p_adjust, statistics=statistics)
