"""
completion_report/make_synthetic_data.py

Creates a synthetic online-course engagement dataset with the same columns as
the real export. Completion is drawn from a known linear log-odds function
(TRUE_LOG_ODDS), so fitted coefficients can be checked against the truth.

Outputs:
  data/online_course_engagement_synthetic.csv
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import numpy as np
import pandas as pd
from scipy.special import expit

from completion_report.data_dictionary import COLUMNS, COURSE_CATEGORIES


DEFAULT_OUTPUT_PATH = Path("data/online_course_engagement_synthetic.csv")

# Generating coefficients on the raw (unscaled) metrics.
# DeviceType has no effect on completion; stepwise selection should drop it.
TRUE_LOG_ODDS: Dict[str, float] = {
    "Intercept": -7.8,
    "TimeSpentOnCourse": 0.03,
    "NumberOfVideosWatched": 0.10,
    "NumberOfQuizzesTaken": 0.15,
    "QuizScores": 0.04,
    "CompletionRate": 0.03,
    "DeviceType": 0.0,
}


def generate_engagement_dataset(
    n_users: int = 9000,
    random_state: int = 42,
    missing_rate: float = 0.0,
) -> pd.DataFrame:
    rng = np.random.default_rng(random_state)

    # --- Course + device
    course_category = rng.choice(COURSE_CATEGORIES, size=n_users)
    device_type = rng.binomial(1, 0.5, size=n_users)

    # --- Engagement metrics, ranges follow the public engagement export
    time_spent = rng.uniform(1, 100, size=n_users)
    videos_watched = rng.integers(0, 21, size=n_users)
    quizzes_taken = rng.integers(0, 11, size=n_users)
    quiz_scores = rng.uniform(50, 100, size=n_users)
    completion_rate = rng.uniform(0, 100, size=n_users)

    linear = (
        TRUE_LOG_ODDS["Intercept"]
        + TRUE_LOG_ODDS["TimeSpentOnCourse"] * time_spent
        + TRUE_LOG_ODDS["NumberOfVideosWatched"] * videos_watched
        + TRUE_LOG_ODDS["NumberOfQuizzesTaken"] * quizzes_taken
        + TRUE_LOG_ODDS["QuizScores"] * quiz_scores
        + TRUE_LOG_ODDS["CompletionRate"] * completion_rate
        + TRUE_LOG_ODDS["DeviceType"] * device_type
    )
    completion = rng.binomial(1, expit(linear))

    df = pd.DataFrame(
        {
            "UserID": np.arange(1, n_users + 1) + 5000,
            "CourseCategory": course_category,
            "TimeSpentOnCourse": np.round(time_spent, 3),
            "NumberOfVideosWatched": videos_watched,
            "NumberOfQuizzesTaken": quizzes_taken,
            "QuizScores": np.round(quiz_scores, 3),
            "CompletionRate": np.round(completion_rate, 3),
            "DeviceType": device_type,
            "CourseCompletion": completion,
        },
        columns=COLUMNS,
    )

    # Blank out engagement cells at random (never the id or target).
    if missing_rate > 0:
        for c in ["TimeSpentOnCourse", "QuizScores", "CompletionRate"]:
            mask = rng.random(n_users) < missing_rate
            df.loc[mask, c] = np.nan

    return df


def main() -> None:
    out_path = DEFAULT_OUTPUT_PATH
    out_path.parent.mkdir(parents=True, exist_ok=True)

    df = generate_engagement_dataset(n_users=9000, random_state=42)
    df.to_csv(out_path, index=False)

    # Print quick quality checks
    print(f"Wrote {len(df)} rows to {out_path}")
    print("Completion rate:", df["CourseCompletion"].mean().round(3))
    print("Columns:", list(df.columns))


if __name__ == "__main__":
    main()
