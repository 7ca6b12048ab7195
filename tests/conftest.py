"""
Pytest Configuration and Fixtures

Seeded synthetic datasets shared by the loader, model and evaluation tests.
"""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from completion_report.make_synthetic_data import generate_engagement_dataset


# ==================== Engagement Fixtures ====================

@pytest.fixture(scope="session")
def engagement_df() -> pd.DataFrame:
    """2,000 synthetic users with the real export's columns."""
    return generate_engagement_dataset(n_users=2000, random_state=7)


@pytest.fixture
def engagement_csv(tmp_path: Path, engagement_df: pd.DataFrame) -> Path:
    """engagement_df written to a CSV with a header row."""
    path = tmp_path / "engagement.csv"
    engagement_df.to_csv(path, index=False)
    return path


@pytest.fixture
def write_csv(tmp_path: Path):
    """
    Factory fixture writing raw text to a file.

    Usage:
        path = write_csv("a,b\\n1,2\\n")
    """
    def _write(text: str, name: str = "data.csv") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


# ==================== Model Fixtures ====================

@pytest.fixture(scope="session")
def logistic_df() -> pd.DataFrame:
    """
    Standard-normal predictors with a known log-odds function.

    logit P(y=1) = -0.5 + 1.0*x1 - 0.8*x2; noise1/noise2/group carry no signal.
    """
    rng = np.random.default_rng(11)
    n = 1500
    x1 = rng.normal(size=n)
    x2 = rng.normal(size=n)
    noise1 = rng.normal(size=n)
    noise2 = rng.normal(size=n)
    group = rng.choice(["a", "b", "c"], size=n)
    eta = -0.5 + 1.0 * x1 - 0.8 * x2
    y = rng.binomial(1, 1 / (1 + np.exp(-eta)))
    return pd.DataFrame(
        {"y": y, "x1": x1, "x2": x2, "noise1": noise1, "noise2": noise2, "group": group}
    )


@pytest.fixture
def separated_df() -> pd.DataFrame:
    """x perfectly separates the classes."""
    x = np.array([-5.0, -4.0, -3.0, -2.0, -1.0, 1.0, 2.0, 3.0, 4.0, 5.0])
    return pd.DataFrame({"y": (x > 0).astype(int), "x": x})


@pytest.fixture
def quasi_separated_df() -> pd.DataFrame:
    """x separates the classes except for a tie at x = 0."""
    x = np.array([-3.0, -2.0, -1.0, 0.0, 0.0, 1.0, 2.0, 3.0])
    return pd.DataFrame({"y": [0, 0, 0, 0, 1, 1, 1, 1], "x": x})
