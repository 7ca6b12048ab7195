"""
completion_report/selection.py

Bidirectional stepwise predictor selection by AIC, and a ranked AIC/BIC
comparison table for any set of fitted models.

The search is greedy, like R's step(direction = "both"): at each step every
single removal and every single addition is fitted, the best one is taken,
and the search stops as soon as no candidate beats the current model. It can
miss the globally best subset; that is the conventional behavior and is kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from completion_report.errors import NonConvergenceError, SeparationError
from completion_report.modeling import FittedModel, fit_logistic, information_criterion


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepRecord:
    """One accepted move; action is "start", "+" (add) or "-" (remove)."""
    action: str
    predictor: Optional[str]
    criterion: float
    predictors: Tuple[str, ...]


@dataclass(frozen=True)
class StepwiseResult:
    model: FittedModel
    steps: Tuple[StepRecord, ...]
    k: float

    @property
    def criterion(self) -> float:
        return self.steps[-1].criterion


@dataclass(frozen=True)
class Candidate:
    action: str
    predictor: str
    model: FittedModel
    criterion: float


def pick_best_candidate(candidates: Sequence[Candidate]) -> Optional[Candidate]:
    """
    Lowest criterion wins; exact ties go to the model with fewer predictors,
    then to the candidate evaluated first.
    """
    best = None
    for cand in candidates:
        if best is None:
            best = cand
            continue
        if cand.criterion < best.criterion:
            best = cand
        elif cand.criterion == best.criterion and cand.model.n_predictors < best.model.n_predictors:
            best = cand
    return best


def _try_fit(df: pd.DataFrame, target: str, predictors: List[str], **fit_kwargs) -> Optional[FittedModel]:
    try:
        return fit_logistic(df, target, predictors, **fit_kwargs)
    except (NonConvergenceError, SeparationError) as e:
        logger.warning("Skipping candidate %s: %s", predictors, e)
        return None


def _candidates(
    current: FittedModel,
    df: pd.DataFrame,
    universe: Sequence[str],
    k: float,
    **fit_kwargs,
) -> List[Candidate]:
    used = list(current.predictors)
    out: List[Candidate] = []

    for p in used:
        model = _try_fit(df, current.target, [q for q in used if q != p], **fit_kwargs)
        if model is not None:
            out.append(Candidate("-", p, model, information_criterion(model, k)))

    for p in universe:
        if p in used:
            continue
        model = _try_fit(df, current.target, used + [p], **fit_kwargs)
        if model is not None:
            out.append(Candidate("+", p, model, information_criterion(model, k)))

    return out


def stepwise_aic(
    initial: FittedModel,
    df: pd.DataFrame,
    universe: Sequence[str],
    k: float = 2.0,
    max_steps: int = 1000,
    **fit_kwargs,
) -> StepwiseResult:
    """
    Greedy bidirectional search starting from `initial`.

    Parameters
    ----------
    initial : FittedModel
        Starting model, usually the full model.
    df : pd.DataFrame
        The records the initial model was fitted on.
    universe : sequence of str
        Every predictor the search may use. Predictors of the initial model
        that are missing from it are still eligible for removal.
    k : float
        Penalty per parameter; 2 gives AIC, log(n) gives BIC.
    max_steps : int
        Upper bound on accepted moves.

    Returns
    -------
    StepwiseResult
        The selected model and the accepted moves, starting with the initial model.

    Notes
    -----
    All candidates are fitted on the complete rows of the full universe so
    that every criterion is computed on the same observations.
    """
    universe = list(dict.fromkeys([*initial.predictors, *universe]))
    data = df.dropna(subset=[initial.target, *universe])
    if len(data) != initial.n_obs:
        logger.info("Refitting the start model on %d complete rows (was %d)", len(data), initial.n_obs)
        initial = fit_logistic(data, initial.target, list(initial.predictors), **fit_kwargs)

    current = initial
    current_crit = information_criterion(current, k)
    steps = [StepRecord("start", None, current_crit, current.predictors)]
    logger.info("Stepwise start: %s  criterion=%.4f", current.formula, current_crit)

    for _ in range(max_steps):
        best = pick_best_candidate(_candidates(current, data, universe, k, **fit_kwargs))
        if best is None or not best.criterion < current_crit:
            break

        current, current_crit = best.model, best.criterion
        steps.append(StepRecord(best.action, best.predictor, current_crit, current.predictors))
        logger.info("  %s %s: criterion=%.4f", best.action, best.predictor, current_crit)

    logger.info("Stepwise final: %s  criterion=%.4f", current.formula, current_crit)
    return StepwiseResult(model=current, steps=tuple(steps), k=k)


def compare_models(models: Mapping[str, FittedModel]) -> pd.DataFrame:
    """Ranked {model, formula, aic, bic, df} table, ascending by AIC."""
    rows = [
        {"model": name, "formula": m.formula, "aic": m.aic, "bic": m.bic, "df": m.df}
        for name, m in models.items()
    ]
    table = pd.DataFrame(rows, columns=["model", "formula", "aic", "bic", "df"])
    return table.sort_values("aic", kind="mergesort").reset_index(drop=True)
