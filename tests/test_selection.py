"""
Model Selector Unit Tests

Tests for stepwise AIC search, tie-breaking and the comparison table.
"""

from types import SimpleNamespace

import numpy as np
import pytest

from completion_report.modeling import fit_logistic, information_criterion
from completion_report.selection import (
    Candidate,
    compare_models,
    pick_best_candidate,
    stepwise_aic,
)


UNIVERSE = ["x1", "x2", "noise1", "noise2", "group"]


def _candidate(action, predictor, criterion, n_predictors):
    model = SimpleNamespace(n_predictors=n_predictors)
    return Candidate(action=action, predictor=predictor, model=model, criterion=criterion)


class TestPickBestCandidate:
    """Tests for the candidate ranking rule."""

    def test_lowest_criterion_wins(self):
        """Verify the smallest criterion is chosen."""
        best = pick_best_candidate([
            _candidate("-", "a", 10.0, 2),
            _candidate("+", "b", 9.0, 4),
            _candidate("-", "c", 11.0, 2),
        ])

        assert best.predictor == "b"

    def test_exact_tie_prefers_smaller_model(self):
        """Verify an exact tie goes to the model with fewer predictors."""
        best = pick_best_candidate([
            _candidate("+", "a", 10.0, 4),
            _candidate("-", "b", 10.0, 2),
        ])

        assert best.predictor == "b"

    def test_exact_tie_same_size_keeps_first(self):
        """Verify equal criterion and size keeps evaluation order."""
        best = pick_best_candidate([
            _candidate("+", "a", 10.0, 3),
            _candidate("+", "b", 10.0, 3),
        ])

        assert best.predictor == "a"

    def test_no_candidates(self):
        """Verify an empty candidate list yields None."""
        assert pick_best_candidate([]) is None


class TestStepwiseAic:
    """Tests for the greedy bidirectional search."""

    @pytest.fixture
    def full(self, logistic_df):
        return fit_logistic(logistic_df, "y", ["x1", "x2", "noise1", "noise2"])

    def test_selected_aic_not_above_full(self, full, logistic_df):
        """Verify the selected model's AIC is at most the starting model's."""
        result = stepwise_aic(full, logistic_df, UNIVERSE)

        assert result.model.aic <= full.aic
        assert result.criterion == pytest.approx(result.model.aic)

    def test_keeps_signal_predictors(self, full, logistic_df):
        """Verify the true predictors survive selection."""
        result = stepwise_aic(full, logistic_df, UNIVERSE)

        assert {"x1", "x2"} <= set(result.model.predictors)

    def test_stops_at_local_minimum(self, full, logistic_df):
        """Verify no single removal or addition beats the selected model."""
        result = stepwise_aic(full, logistic_df, UNIVERSE)
        chosen = list(result.model.predictors)

        for p in chosen:
            neighbour = fit_logistic(logistic_df, "y", [q for q in chosen if q != p])
            assert neighbour.aic >= result.model.aic
        for p in UNIVERSE:
            if p not in chosen:
                neighbour = fit_logistic(logistic_df, "y", chosen + [p])
                assert neighbour.aic >= result.model.aic

    def test_history_is_monotone(self, full, logistic_df):
        """Verify every accepted move strictly lowers the criterion."""
        result = stepwise_aic(full, logistic_df, UNIVERSE)
        crits = [s.criterion for s in result.steps]

        assert result.steps[0].action == "start"
        assert all(b < a for a, b in zip(crits, crits[1:]))

    def test_adds_from_empty_start(self, logistic_df):
        """Verify the search adds predictors when starting from the intercept-only model."""
        start = fit_logistic(logistic_df, "y", [])
        result = stepwise_aic(start, logistic_df, UNIVERSE)

        assert result.steps[1].action == "+"
        assert result.steps[1].predictor == "x1"
        assert {"x1", "x2"} <= set(result.model.predictors)

    def test_bic_penalty_is_not_larger_model(self, full, logistic_df):
        """Verify k=log(n) never selects more predictors than k=2."""
        aic_result = stepwise_aic(full, logistic_df, UNIVERSE)
        bic_result = stepwise_aic(full, logistic_df, UNIVERSE, k=np.log(len(logistic_df)))

        assert bic_result.model.n_predictors <= aic_result.model.n_predictors
        assert bic_result.criterion == pytest.approx(
            information_criterion(bic_result.model, np.log(len(logistic_df)))
        )

    def test_skips_candidates_that_fail_to_fit(self, logistic_df):
        """Verify a separating candidate is skipped rather than aborting the search."""
        df = logistic_df.copy()
        df["leak"] = np.where(df["y"] == 1, 1.0, -1.0) * (1 + np.abs(df["x1"]))
        start = fit_logistic(df, "y", ["x1"])

        result = stepwise_aic(start, df, ["x1", "x2", "leak"])

        assert "leak" not in result.model.predictors

    def test_skips_quasi_separating_candidate(self, logistic_df):
        """Verify a candidate that separates all but a few tied rows is skipped."""
        df = logistic_df.copy()
        df["leak"] = np.where(df["y"] == 1, 1.0, -1.0) * (1 + np.abs(df["x1"]))
        tied = np.r_[np.flatnonzero(df["y"] == 1)[:5], np.flatnonzero(df["y"] == 0)[:5]]
        df.loc[df.index[tied], "leak"] = 0.0
        start = fit_logistic(df, "y", ["x1"])

        result = stepwise_aic(start, df, ["x1", "x2", "leak"])

        assert "leak" not in result.model.predictors


class TestCompareModels:
    """Tests for the AIC/BIC comparison table."""

    def test_sorted_ascending_by_aic(self, logistic_df):
        """Verify rows are ranked by AIC with BIC and df reported."""
        models = {
            "null": fit_logistic(logistic_df, "y", []),
            "x1": fit_logistic(logistic_df, "y", ["x1"]),
            "x1+x2": fit_logistic(logistic_df, "y", ["x1", "x2"]),
        }
        table = compare_models(models)

        assert list(table.columns) == ["model", "formula", "aic", "bic", "df"]
        assert list(table["model"]) == ["x1+x2", "x1", "null"]
        assert table["aic"].is_monotonic_increasing
        assert list(table["df"]) == [3, 2, 1]
