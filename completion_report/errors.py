"""
completion_report/errors.py

Failure taxonomy for the report pipeline. Every error is terminal for the
stage that raises it; the CLI prints the message and exits non-zero.
"""


class ReportError(Exception):
    """Base class for all pipeline failures."""


class LoadError(ReportError):
    """Input file is missing, unreadable, or does not match the expected layout."""


class NonConvergenceError(ReportError):
    """IRLS hit the iteration cap without meeting the deviance tolerance."""

    def __init__(self, message: str, iterations: int):
        super().__init__(message)
        self.iterations = iterations


class SeparationError(ReportError):
    """The predictors perfectly (or quasi-perfectly) separate the two classes."""


class DegenerateLabelsError(ReportError):
    """Labels contain a single class, so ROC and AUC are undefined."""
