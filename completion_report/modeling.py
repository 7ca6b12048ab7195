"""
completion_report/modeling.py

Binomial logistic regression (logit-link GLM) fitted by IRLS through
statsmodels. A FittedModel is immutable: refitting with another predictor
subset always produces a new instance.

Convergence follows the usual GLM conventions: at most 25 IRLS iterations and
a deviance-change tolerance of 1e-8. When a fit is both separated and
unconverged, SeparationError is raised.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from pandas.api.types import is_numeric_dtype
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from completion_report.errors import NonConvergenceError, SeparationError


logger = logging.getLogger(__name__)

MAX_ITER = 25
TOL = 1e-8

# A fitted probability this close to its 0/1 label counts as "perfectly predicted".
SEPARATION_EPS = 1e-6

# Coefficient and SE ceilings for a fit where only part of the sample is saturated.
DIVERGED_COEF = 10.0
EXPLODED_SE = 1e3


@dataclass(frozen=True)
class FittedModel:
    """
    Everything the selector, evaluator and report need from one fit.

    `result` is the statsmodels GLMResults object; it is kept only for
    scoring new rows through the same formula (dummy coding included).
    """
    formula: str
    target: str
    predictors: Tuple[str, ...]
    coefficients: pd.Series
    std_errors: pd.Series
    deviance: float
    null_deviance: float
    log_likelihood: float
    aic: float
    bic: float
    df: int
    n_obs: int
    iterations: int
    result: object

    @property
    def n_predictors(self) -> int:
        return len(self.predictors)


def categorical_predictors(df: pd.DataFrame, predictors: Sequence[str]) -> List[str]:
    return [p for p in predictors if not is_numeric_dtype(df[p]) or df[p].dtype == bool]


def build_formula(target: str, predictors: Sequence[str], categorical: Sequence[str] = ()) -> str:
    """
    Patsy formula for the model, e.g. "y ~ x1 + C(group)".

    With no predictors the intercept-only formula "y ~ 1" is returned.
    """
    if not predictors:
        return f"{target} ~ 1"
    terms = [f"C({p})" if p in categorical else p for p in predictors]
    return f"{target} ~ " + " + ".join(terms)


def _validate_inputs(df: pd.DataFrame, target: str, predictors: Sequence[str]) -> None:
    unknown = [c for c in [target, *predictors] if c not in df.columns]
    if unknown:
        raise ValueError(f"Unknown columns: {unknown}")
    if len(set(predictors)) != len(predictors):
        raise ValueError(f"Duplicate predictors: {list(predictors)}")

    values = set(pd.to_numeric(df[target], errors="coerce").dropna().unique().tolist())
    if not values.issubset({0, 1}):
        raise ValueError(f"Target '{target}' must be binary 0/1. Found values: {sorted(values)}")


def _is_separated(result, y: np.ndarray, caught) -> bool:
    if any(issubclass(w.category, PerfectSeparationWarning) for w in caught):
        return True
    if not np.all(np.isfinite(result.bse)):
        return True
    mu = np.asarray(result.fittedvalues)
    saturated = np.abs(mu - y) < SEPARATION_EPS
    if saturated.all():
        return True
    # quasi-complete: only part of the sample is perfectly predicted
    diverging = (np.max(np.abs(np.asarray(result.params))) > DIVERGED_COEF
                 or np.max(np.asarray(result.bse)) > EXPLODED_SE)
    return bool(saturated.any() and diverging)


def fit_logistic(
    df: pd.DataFrame,
    target: str,
    predictors: Sequence[str],
    max_iter: int = MAX_ITER,
    tol: float = TOL,
) -> FittedModel:
    """
    Fit P(target = 1) = expit(b0 + b1*x1 + ...) by maximum likelihood.

    Parameters
    ----------
    df : pd.DataFrame
        Records; rows with a missing value in any used column are dropped.
    target : str
        Binary 0/1 column.
    predictors : sequence of str
        Ordered predictor columns. Non-numeric columns are treatment coded.
        An empty sequence fits the intercept-only model.
    max_iter : int
        IRLS iteration cap.
    tol : float
        Absolute and relative tolerance on the change in deviance.

    Returns
    -------
    FittedModel

    Raises
    ------
    SeparationError
        If the classes are perfectly separated by the predictors.
    NonConvergenceError
        If IRLS reaches max_iter without meeting the tolerance.
    ValueError
        For unknown columns, duplicate predictors, or a non-binary target.
    """
    predictors = list(predictors)
    _validate_inputs(df, target, predictors)

    data = df[[target, *predictors]].dropna().copy()
    if data.empty:
        raise ValueError("No complete rows left after dropping missing values.")
    data[target] = data[target].astype(int)

    formula = build_formula(target, predictors, categorical_predictors(data, predictors))
    model = smf.glm(formula, data=data, family=sm.families.Binomial())

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            result = model.fit(maxiter=max_iter, tol=tol, rtol=tol)
        except PerfectSeparationError as e:
            raise SeparationError(f"Perfect separation in '{formula}': {e}") from e

    y = data[target].to_numpy(dtype=float)
    if _is_separated(result, y, caught):
        raise SeparationError(
            f"Perfect separation in '{formula}': fitted probabilities match the labels "
            f"and coefficients diverge."
        )

    iterations = int(result.fit_history.get("iteration", max_iter))
    converged = bool(getattr(result, "converged", True)) and not any(
        issubclass(w.category, ConvergenceWarning) for w in caught
    )
    if not converged:
        raise NonConvergenceError(
            f"IRLS did not converge for '{formula}' within {max_iter} iterations "
            f"(tol={tol:g}).",
            iterations=iterations,
        )

    n_obs = int(result.nobs)
    n_params = int(len(result.params))
    llf = float(result.llf)

    fitted = FittedModel(
        formula=formula,
        target=target,
        predictors=tuple(predictors),
        coefficients=result.params.copy(),
        std_errors=result.bse.copy(),
        deviance=float(result.deviance),
        null_deviance=float(result.null_deviance),
        log_likelihood=llf,
        aic=-2.0 * llf + 2.0 * n_params,
        bic=-2.0 * llf + np.log(n_obs) * n_params,
        df=n_params,
        n_obs=n_obs,
        iterations=iterations,
        result=result,
    )
    logger.info("Fitted %s: AIC=%.3f deviance=%.3f (%d iterations)",
                formula, fitted.aic, fitted.deviance, iterations)
    return fitted


def information_criterion(model: FittedModel, k: float = 2.0) -> float:
    """-2 logL + k * df. k=2 is AIC, k=log(n) is BIC."""
    return -2.0 * model.log_likelihood + k * model.df


def coefficient_table(model: FittedModel) -> pd.DataFrame:
    """Estimate, standard error, z, p-value and odds ratio for every term."""
    res = model.result
    table = pd.DataFrame(
        {
            "estimate": model.coefficients,
            "std_error": model.std_errors,
            "z": res.tvalues,
            "p_value": res.pvalues,
        }
    )
    table["odds_ratio"] = np.exp(table["estimate"])
    table.index.name = "term"
    return table


def linear_predictor(model: FittedModel, df: pd.DataFrame) -> pd.Series:
    """b0 + b.x for each row of df (rows must be complete in the model's predictors)."""
    if not model.predictors:
        # patsy cannot size an intercept-only design from the data
        return pd.Series(float(model.coefficients.iloc[0]), index=df.index, name="linear_predictor")
    eta = model.result.predict(df, which="linear")
    return pd.Series(np.asarray(eta, dtype=float), index=df.index, name="linear_predictor")


def complete_rows(model: FittedModel, df: pd.DataFrame) -> pd.DataFrame:
    """Rows of df with no missing value in the model's target or predictors."""
    return df.dropna(subset=[model.target, *model.predictors])

