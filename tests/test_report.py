"""
Report Integration Tests

Runs the whole pipeline on a synthetic export and checks the artifacts.
"""

import json

import pytest

from completion_report.make_synthetic_data import generate_engagement_dataset
from completion_report.plots import plot_bar_counts, plot_exploration, plot_roc
from completion_report.evaluation import roc_points
from completion_report.report import ReportConfig, df_to_md_table, main, run_report


@pytest.fixture
def report_csv(tmp_path):
    path = tmp_path / "engagement.csv"
    generate_engagement_dataset(n_users=1000, random_state=21).to_csv(path, index=False)
    return path


class TestRunReport:
    """Tests for run_report."""

    def test_writes_report_and_metrics(self, report_csv, tmp_path):
        """Verify report.md, metrics.json and config.json are written."""
        out_dir = tmp_path / "out"
        artifacts = run_report(ReportConfig(data_path=report_csv, output_dir=out_dir, make_plots=False))

        assert artifacts.report_path.exists()
        metrics = json.loads((out_dir / "metrics.json").read_text())
        config = json.loads((out_dir / "config.json").read_text())

        assert metrics["n_rows"] == 1000
        assert metrics["auc_trapezoid"] > 0.5
        assert metrics["aic"]["stepwise"] <= metrics["aic"]["full"]
        assert config["data_path"] == str(report_csv)
        assert artifacts.figures == []

    def test_report_sections(self, report_csv, tmp_path):
        """Verify the Markdown report carries every table."""
        artifacts = run_report(ReportConfig(data_path=report_csv, output_dir=tmp_path / "out", make_plots=False))
        text = artifacts.report_path.read_text(encoding="utf-8")

        for heading in ["## Summary statistics", "## Stepwise selection (AIC)",
                        "## Model comparison", "## Evaluation"]:
            assert heading in text
        assert artifacts.stepwise.model.formula in text

    def test_comparison_ranks_null_last(self, report_csv, tmp_path):
        """Verify the intercept-only model has the worst AIC."""
        artifacts = run_report(ReportConfig(data_path=report_csv, output_dir=tmp_path / "out", make_plots=False))

        assert artifacts.comparison["model"].iloc[-1] == "intercept only"

    def test_figures_are_rendered(self, report_csv, tmp_path):
        """Verify figures are written and linked from the report."""
        artifacts = run_report(ReportConfig(data_path=report_csv, output_dir=tmp_path / "out"))
        text = artifacts.report_path.read_text(encoding="utf-8")

        assert artifacts.figures
        assert all(p.exists() for p in artifacts.figures)
        assert "figures/roc_curve.png" in text


class TestMain:
    """Tests for the CLI entry point."""

    def test_missing_file_exits_non_zero(self, tmp_path, capsys):
        """Verify a LoadError is printed verbatim with exit status 1."""
        code = main(["--data", str(tmp_path / "nope.csv"), "--output-dir", str(tmp_path / "out")])

        assert code == 1
        assert "LoadError" in capsys.readouterr().err

    def test_success(self, report_csv, tmp_path, capsys):
        """Verify a clean run exits 0 and prints the summary lines."""
        code = main(["--data", str(report_csv), "--output-dir", str(tmp_path / "out"), "--no-plots"])

        assert code == 0
        assert "AUC=" in capsys.readouterr().out


class TestHelpers:
    """Tests for table rendering and plot helpers."""

    def test_md_table(self):
        """Verify Markdown table layout and float formatting."""
        import pandas as pd

        md = df_to_md_table(pd.DataFrame({"a": [1.23456], "b": ["x"]}))

        assert md.splitlines() == ["| a | b |", "| --- | --- |", "| 1.235 | x |"]

    def test_plot_helpers_write_png(self, tmp_path):
        """Verify each plot helper returns an existing PNG."""
        df = generate_engagement_dataset(n_users=200, random_state=1)

        paths = plot_exploration(df, tmp_path)
        paths.append(plot_bar_counts(df, "DeviceType", tmp_path))
        points = roc_points(df["CourseCompletion"], df["QuizScores"])
        paths.append(plot_roc(points, 0.6, tmp_path))

        assert all(p.suffix == ".png" and p.exists() for p in paths)
        assert len(paths) == 5 + 2 + 1 + 1
