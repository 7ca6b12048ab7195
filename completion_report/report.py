"""
completion_report/report.py

Runs the whole analysis once over an engagement export and writes a
human-readable report plus JSON artifacts:

      reports/report.md         (tables + figure links)
      reports/metrics.json      (AICs, AUCs, confusion matrix, selected predictors)
      reports/config.json       (run settings)
      reports/figures/*.png     (histograms, bar charts, ROC curve)

Run (default)
-------------
python -m completion_report.report

Run (custom)
------------
python -m completion_report.report --data data/online_course_engagement.csv --threshold 0.4
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from completion_report.data_dictionary import (
    DATA_DICTIONARY,
    DEFAULT_PREDICTORS,
    PREDICTOR_UNIVERSE,
    TARGET,
)
from completion_report.errors import ReportError
from completion_report.evaluation import DEFAULT_THRESHOLD, Evaluation, evaluate
from completion_report.loader import load_dataset
from completion_report.make_synthetic_data import DEFAULT_OUTPUT_PATH
from completion_report.modeling import FittedModel, coefficient_table, fit_logistic
from completion_report.plots import plot_exploration, plot_roc
from completion_report.selection import StepwiseResult, compare_models, stepwise_aic
from completion_report.summary import DatasetSummary, completion_rate_by_category, summarize


logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = Path("reports")


@dataclass(frozen=True)
class ReportConfig:
    data_path: Path = DEFAULT_OUTPUT_PATH
    output_dir: Path = DEFAULT_OUTPUT_DIR
    threshold: float = DEFAULT_THRESHOLD
    make_plots: bool = True
    target: str = TARGET
    predictors: tuple = tuple(DEFAULT_PREDICTORS)
    universe: tuple = tuple(PREDICTOR_UNIVERSE)

    def as_dict(self) -> Dict:
        d = asdict(self)
        d["data_path"] = str(self.data_path)
        d["output_dir"] = str(self.output_dir)
        d["predictors"] = list(self.predictors)
        d["universe"] = list(self.universe)
        return d


@dataclass(frozen=True)
class ReportArtifacts:
    summary: DatasetSummary
    null_model: FittedModel
    full_model: FittedModel
    stepwise: StepwiseResult
    comparison: pd.DataFrame
    evaluation: Evaluation
    metrics: Dict
    report_path: Path
    figures: List[Path]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Course completion statistical report.")
    parser.add_argument(
        "--data",
        type=str,
        default=str(DEFAULT_OUTPUT_PATH),
        help="Path to the engagement CSV (header row required).",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=str(DEFAULT_OUTPUT_DIR),
        help="Directory for report.md, JSON artifacts and figures.",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_THRESHOLD,
        help="Probability threshold for the confusion matrix.",
    )
    parser.add_argument(
        "--no-plots",
        action="store_true",
        help="Skip rendering figures.",
    )
    return parser.parse_args(argv)


# ------------ formatting

def fmt_float(x: float, d: int = 3) -> str:
    if x is None or not np.isfinite(x):
        return "n/a"
    return f"{float(x):.{d}f}"


def df_to_md_table(df: pd.DataFrame, index: bool = False, digits: int = 3) -> str:
    """Render a DataFrame as a GitHub-style Markdown table."""
    if index:
        df = df.reset_index()
    cols = [str(c) for c in df.columns]

    def cell(v) -> str:
        if isinstance(v, (float, np.floating)):
            return fmt_float(v, digits)
        return str(v)

    header = "| " + " | ".join(cols) + " |"
    sep = "| " + " | ".join(["---"] * len(cols)) + " |"
    rows = ["| " + " | ".join(cell(df.iloc[i, j]) for j in range(len(cols))) + " |"
            for i in range(len(df))]
    return "\n".join([header, sep] + rows)


# ------------ report body

def build_markdown(
    config: ReportConfig,
    summary: DatasetSummary,
    by_category: pd.DataFrame,
    stepwise: StepwiseResult,
    comparison: pd.DataFrame,
    evaluation: Evaluation,
    figures: List[Path],
) -> str:
    model = stepwise.model
    cm = evaluation.confusion
    lines: List[str] = []
    lines.append("# Course Completion Report\n")
    lines.append(f"Source: `{config.data_path}`: **{summary.n_rows:,}** records, "
                 f"**{summary.n_columns}** columns, **{summary.missing_total:,}** missing cells.\n")

    lines.append("## Columns")
    lines.append(df_to_md_table(pd.DataFrame(
        {"column": list(DATA_DICTIONARY), "description": list(DATA_DICTIONARY.values())}
    )))
    lines.append("")

    lines.append("## Summary statistics")
    lines.append(df_to_md_table(summary.numeric, index=True))
    lines.append("")
    for c, counts in summary.categorical.items():
        lines.append(f"**{c}** levels")
        lines.append(df_to_md_table(counts.rename("count").to_frame(), index=True))
        lines.append("")
    if not by_category.empty:
        lines.append("**Completion rate by category**")
        lines.append(df_to_md_table(by_category, index=True))
        lines.append("")

    lines.append("## Stepwise selection (AIC)")
    for s in stepwise.steps:
        move = "start" if s.action == "start" else f"{s.action} {s.predictor}"
        lines.append(f"- {move}: AIC = {fmt_float(s.criterion, 4)}")
    lines.append("")
    lines.append(f"Selected model: `{model.formula}`\n")
    lines.append(df_to_md_table(coefficient_table(model), index=True, digits=4))
    lines.append("")

    lines.append("## Model comparison")
    lines.append(df_to_md_table(comparison))
    lines.append("")

    lines.append("## Evaluation")
    lines.append(f"- AUC (trapezoidal): **{fmt_float(evaluation.auc_trapezoid, 4)}**")
    lines.append(f"- AUC (concordance): **{fmt_float(evaluation.auc_concordance, 4)}**")
    lines.append(f"- Threshold: **{cm.threshold:.2f}**, accuracy {fmt_float(cm.accuracy)}, "
                 f"precision {fmt_float(cm.precision)}, recall {fmt_float(cm.recall)}, "
                 f"specificity {fmt_float(cm.specificity)}")
    lines.append("")
    lines.append(df_to_md_table(pd.DataFrame(
        {"": ["actual 1", "actual 0"], "predicted 1": [cm.tp, cm.fp], "predicted 0": [cm.fn, cm.tn]}
    )))
    lines.append("")

    if figures:
        lines.append("## Figures")
        for p in figures:
            rel = p.relative_to(config.output_dir) if p.is_relative_to(config.output_dir) else p
            lines.append(f"![{p.stem}]({rel.as_posix()})")
        lines.append("")

    return "\n".join(lines).strip() + "\n"


def run_report(config: ReportConfig) -> ReportArtifacts:
    """Load, summarize, plot, fit, select, evaluate, and write the report."""
    config.output_dir.mkdir(parents=True, exist_ok=True)
    fig_dir = config.output_dir / "figures"

    # -----------------------------
    # 1) Load + describe
    # -----------------------------
    dataset = load_dataset(config.data_path)
    df = dataset.frame
    summary = summarize(df, dataset.column_types)
    by_category = completion_rate_by_category(df, target=config.target)

    figures: List[Path] = []
    if config.make_plots:
        figures.extend(plot_exploration(df, fig_dir))

    # -----------------------------
    # 2) Fit + select
    # -----------------------------
    # Every model is fitted on rows complete across the universe so AICs are comparable.
    data = df.dropna(subset=[config.target, *config.universe])
    null_model = fit_logistic(data, config.target, [])
    full_model = fit_logistic(data, config.target, list(config.predictors))
    stepwise = stepwise_aic(full_model, data, list(config.universe))
    comparison = compare_models(
        {"intercept only": null_model, "full": full_model, "stepwise": stepwise.model}
    )

    # -----------------------------
    # 3) Evaluate
    # -----------------------------
    evaluation = evaluate(stepwise.model, data, config.threshold)
    if config.make_plots:
        figures.append(plot_roc(evaluation.roc, evaluation.auc_trapezoid, fig_dir, label="stepwise"))

    metrics = {
        "n_rows": summary.n_rows,
        "n_model_rows": int(len(data)),
        "missing_total": summary.missing_total,
        "positive_rate": float(data[config.target].mean()),
        "selected_predictors": list(stepwise.model.predictors),
        "aic": {row["model"]: float(row["aic"]) for _, row in comparison.iterrows()},
        "bic": {row["model"]: float(row["bic"]) for _, row in comparison.iterrows()},
        "auc_trapezoid": evaluation.auc_trapezoid,
        "auc_concordance": evaluation.auc_concordance,
        "confusion_matrix": evaluation.confusion.as_dict(),
    }

    # -----------------------------
    # 4) Save artifacts
    # -----------------------------
    report_path = config.output_dir / "report.md"
    report_path.write_text(
        build_markdown(config, summary, by_category, stepwise, comparison, evaluation, figures),
        encoding="utf-8",
    )
    (config.output_dir / "metrics.json").write_text(json.dumps(metrics, indent=2))
    (config.output_dir / "config.json").write_text(json.dumps(config.as_dict(), indent=2))
    logger.info("Wrote %s (%d figures)", report_path, len(figures))

    return ReportArtifacts(
        summary=summary,
        null_model=null_model,
        full_model=full_model,
        stepwise=stepwise,
        comparison=comparison,
        evaluation=evaluation,
        metrics=metrics,
        report_path=report_path,
        figures=figures,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = ReportConfig(
        data_path=Path(args.data),
        output_dir=Path(args.output_dir),
        threshold=args.threshold,
        make_plots=not args.no_plots,
    )

    try:
        artifacts = run_report(config)
    except ReportError as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1

    m = artifacts.metrics
    cm = artifacts.evaluation.confusion
    print("Report complete.")
    print(f"Saved report to: {artifacts.report_path.resolve()}")
    print(f"Selected: {artifacts.stepwise.model.formula}")
    print(f"AUC={m['auc_trapezoid']:.3f} (concordance {m['auc_concordance']:.3f}) | AIC={artifacts.stepwise.model.aic:.2f}")
    print(f"Threshold={cm.threshold:.2f} | TP={cm.tp} FP={cm.fp} TN={cm.tn} FN={cm.fn}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
