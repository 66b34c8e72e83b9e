"""Metrics computation for Monte Carlo coverage studies.

For each scenario and method:
- Bias = E[estimate] - truth
- SE(emp) = std of the estimates across replications
- SE(est) = mean reported standard error
- Ratio = SE(est)/SE(emp) (calibration, target=1.0)
- Coverage = P(truth in CI) (target = 1 - alpha)
- delta_hat = mean estimated perturbation strength
"""

import numpy as np
import pandas as pd


def compute_metrics(df: pd.DataFrame) -> pd.DataFrame:
    """Compute summary metrics by scenario and method."""
    df_clean = df.dropna(subset=["estimate", "se", "bias"])

    agg_dict = {
        "truth": "first",
        "bias": ["mean", "std"],
        "estimate": "std",
        "se": "mean",
        "covered": "mean",
        "rejected": "mean",
        "sim_id": "count",
    }
    group_cols = ["scenario", "method"]
    summary = df_clean.groupby(group_cols).agg(agg_dict).reset_index()
    summary.columns = group_cols + [
        "truth", "bias_mean", "bias_std", "empirical_se", "se_mean",
        "coverage", "rejection_rate", "n_sims",
    ]

    # delta_hat can be inf; average the finite values and count the rest
    finite = df_clean[np.isfinite(df_clean["delta_hat"])]
    delta = finite.groupby(group_cols)["delta_hat"].mean().rename("delta_hat_mean")
    n_inf = (
        df_clean.assign(inf=np.isinf(df_clean["delta_hat"]))
        .groupby(group_cols)["inf"].sum().rename("n_inf_delta")
    )
    summary = summary.merge(delta.reset_index(), on=group_cols, how="left")
    summary = summary.merge(n_inf.reset_index(), on=group_cols, how="left")

    n_failed = (
        df[df["estimate"].isna()].groupby(group_cols)["sim_id"].count().rename("n_failed")
    )
    summary = summary.merge(n_failed.reset_index(), on=group_cols, how="left")
    summary["n_failed"] = summary["n_failed"].fillna(0).astype(int)

    summary["se_ratio"] = summary["se_mean"] / summary["empirical_se"]
    summary["rmse"] = np.sqrt(summary["bias_mean"] ** 2 + summary["empirical_se"] ** 2)
    ci = df_clean.groupby(group_cols)["ci_width"].mean().rename("ci_width")
    summary = summary.merge(ci.reset_index(), on=group_cols, how="left")

    return summary


def print_table(metrics_df: pd.DataFrame, alpha: float = 0.05) -> str:
    """Print formatted coverage table."""
    lines = []
    nominal = 1 - alpha

    for scenario, block in metrics_df.groupby("scenario", sort=False):
        n_sims = int(block["n_sims"].max())
        lines.append("=" * 100)
        lines.append(f"SCENARIO: {scenario} (M={n_sims} simulations, nominal coverage {nominal:.0%})")
        lines.append("=" * 100)
        lines.append("")
        lines.append(
            f"{'Method':<12} {'Truth':>8} {'Bias':>8} {'SE(emp)':>8} {'SE(est)':>8} "
            f"{'Ratio':>6} {'Coverage':>9} {'Reject':>7} {'CI width':>9} {'delta_hat':>10} {'Failed':>7}"
        )
        lines.append("-" * 100)

        for _, row in block.iterrows():
            coverage = row["coverage"]
            marker = " <" if nominal - 0.05 <= coverage <= nominal + 0.04 else ""
            lines.append(
                f"{row['method']:<12} "
                f"{row['truth']:>8.4f} "
                f"{row['bias_mean']:>8.4f} "
                f"{row['empirical_se']:>8.4f} "
                f"{row['se_mean']:>8.4f} "
                f"{row['se_ratio']:>6.2f} "
                f"{coverage:>8.1%} "
                f"{row['rejection_rate']:>6.1%} "
                f"{row['ci_width']:>9.4f} "
                f"{row['delta_hat_mean']:>10.3f} "
                f"{int(row['n_failed']):>7d}"
                f"{marker}"
            )

        lines.append("-" * 100)
        lines.append("Ratio = SE(est)/SE(emp) | Reject = P(p < alpha) under the true null | < = near nominal")
        lines.append("")

    output = "\n".join(lines)
    print(output)
    return output
