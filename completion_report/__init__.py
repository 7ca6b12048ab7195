"""Course completion report: engagement statistics, logistic regression, stepwise AIC and ROC."""
