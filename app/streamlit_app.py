"""
app/streamlit_app.py

Purpose
-------
A Streamlit dashboard over the same pipeline as the report CLI:
  - loads an uploaded engagement CSV (or the synthetic sample)
  - shows summary statistics and exploratory charts
  - fits the full logistic model and runs stepwise AIC selection
  - shows coefficients, the AIC/BIC comparison, the confusion matrix at a
    chosen threshold, and the ROC curve

All statistics come from the completion_report package; this file only renders.
"""

import tempfile
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import streamlit as st

from completion_report.data_dictionary import (
    CATEGORY_COL,
    DATA_DICTIONARY,
    DEFAULT_PREDICTORS,
    ENGAGEMENT_METRICS,
    PREDICTOR_UNIVERSE,
    TARGET,
)
from completion_report.errors import ReportError
from completion_report.evaluation import evaluate
from completion_report.loader import load_dataset
from completion_report.make_synthetic_data import generate_engagement_dataset
from completion_report.modeling import coefficient_table, fit_logistic
from completion_report.selection import compare_models, stepwise_aic
from completion_report.summary import completion_rate_by_category, summarize


# ---------------------------------------------------------------------
# Streamlit page configuration
# ---------------------------------------------------------------------
st.set_page_config(
    page_title="Course Completion Report",
    layout="wide",
)
st.title("📈 Course Completion Report")


# ---------------------------------------------------------------------
# Caching helpers
# ---------------------------------------------------------------------
# Streamlit reruns the script top-to-bottom on many interactions.
# Stepwise selection refits many models, so cache it by data contents.

@st.cache_data
def get_sample() -> pd.DataFrame:
    """Synthetic dataset used when nothing is uploaded."""
    return generate_engagement_dataset(n_users=3000, random_state=42)


@st.cache_data
def load_upload(raw: bytes):
    """Run uploads through the loader so they get the same validation as the CLI."""
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "upload.csv"
        path.write_bytes(raw)
        return load_dataset(path).frame


@st.cache_resource
def fit_models(df: pd.DataFrame):
    data = df.dropna(subset=[TARGET, *PREDICTOR_UNIVERSE])
    null_model = fit_logistic(data, TARGET, [])
    full_model = fit_logistic(data, TARGET, DEFAULT_PREDICTORS)
    stepwise = stepwise_aic(full_model, data, PREDICTOR_UNIVERSE)
    return data, null_model, full_model, stepwise


# ---------------------------------------------------------------------
# Sidebar controls
# ---------------------------------------------------------------------
st.sidebar.header("Controls")

threshold = st.sidebar.slider(
    "Completion threshold",
    min_value=0.0,
    max_value=1.0,
    value=0.50,
    step=0.01,
    help="Predicted probabilities at or above this value count as 'completed'.",
)


# ---------------------------------------------------------------------
# Data input section
# ---------------------------------------------------------------------
st.subheader("Upload engagement CSV")
st.caption(f"Required columns: {list(DATA_DICTIONARY)}")

file = st.file_uploader("Upload a CSV", type="csv")

try:
    if file:
        df = load_upload(file.getvalue())
    else:
        st.info("No file uploaded. Using a synthetic sample of 3,000 users.")
        df = get_sample()
except ReportError as e:
    st.error("Input data failed validation.")
    st.code(str(e))
    st.stop()

if len(df) == 0:
    st.warning("No rows available.")
    st.stop()


# ---------------------------------------------------------------------
# Descriptive statistics
# ---------------------------------------------------------------------
summary = summarize(df)

col1, col2 = st.columns([2, 1])

with col1:
    st.subheader("Summary statistics")
    st.dataframe(summary.numeric, use_container_width=True)
    st.caption(f"{summary.n_rows:,} rows, {summary.missing_total:,} missing cells.")

with col2:
    st.subheader("Completion by category")
    st.dataframe(completion_rate_by_category(df), use_container_width=True)

metric = st.selectbox("Histogram", ENGAGEMENT_METRICS)
fig = plt.figure()
plt.hist(pd.to_numeric(df[metric], errors="coerce").dropna(), bins=30)
plt.title(f"Distribution of {metric}")
plt.xlabel(metric)
plt.ylabel("count")
st.pyplot(fig)

st.bar_chart(df[CATEGORY_COL].value_counts().sort_index())


# ---------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------
try:
    data, null_model, full_model, stepwise = fit_models(df)
except ReportError as e:
    st.error("Model fitting failed.")
    st.code(str(e))
    st.stop()

st.subheader("Stepwise selection (AIC)")
st.write(pd.DataFrame(
    [{"move": s.action, "predictor": s.predictor, "AIC": s.criterion} for s in stepwise.steps]
))
st.caption(f"Selected: {stepwise.model.formula}")
st.dataframe(coefficient_table(stepwise.model), use_container_width=True)

st.subheader("Model comparison")
st.dataframe(
    compare_models({"intercept only": null_model, "full": full_model, "stepwise": stepwise.model}),
    use_container_width=True,
)


# ---------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------
try:
    ev = evaluate(stepwise.model, data, threshold)
except ReportError as e:
    st.error("Evaluation failed.")
    st.code(str(e))
    st.stop()

cm = ev.confusion

col3, col4 = st.columns([1, 1])

with col3:
    st.subheader("Confusion matrix")
    st.table(pd.DataFrame(
        {"predicted 1": [cm.tp, cm.fp], "predicted 0": [cm.fn, cm.tn]},
        index=["actual 1", "actual 0"],
    ))
    st.write(f"Accuracy {cm.accuracy:.3f} · Precision {cm.precision:.3f} · Recall {cm.recall:.3f}")

with col4:
    st.subheader("ROC curve")
    fig2 = plt.figure()
    plt.plot([p.fpr for p in ev.roc], [p.tpr for p in ev.roc], label=f"AUC = {ev.auc_trapezoid:.3f}")
    plt.plot([0, 1], [0, 1], linestyle="--")
    plt.xlabel("False positive rate")
    plt.ylabel("True positive rate")
    plt.legend(loc="lower right")
    st.pyplot(fig2)
    st.caption(f"Concordance AUC: {ev.auc_concordance:.4f}")
