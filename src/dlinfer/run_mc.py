#!/usr/bin/env python
"""Monte Carlo coverage study for calibrated inference.

Compares calibrated and naive (sampling-only) intervals on the example
scenarios, where every replicated dataset carries its own distributional
perturbation.

Usage:
    dlinfer-mc --M 200 --scenarios causal background
    dlinfer-mc --M 50 --scenarios causal --N 1000 --delta 1.0 --n-jobs -1
"""

import argparse
import logging
import time
import warnings
from dataclasses import asdict, dataclass, field
from typing import List, Optional

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from tqdm import tqdm

from .calibrate import calibrate_background, calibrate_models, naive_inference, naive_mean
from .dgp import DGPS, get_dgp
from .exceptions import DlinferError
from .logging import create_full_report, format_human_readable, save_report, setup_logging
from .metrics import compute_metrics, print_table

logger = logging.getLogger(__name__)

METHODS = ["calibrated", "naive"]

# Target of each scenario
TARGETS = {
    "causal": "T",
    "background": "Y",
}


# =============================================================================
# Config
# =============================================================================

@dataclass
class Config:
    """Simulation configuration."""
    M: int = 200                   # Monte Carlo replications per scenario
    N: Optional[int] = None        # Sample size (None: scenario default)
    delta: Optional[float] = None  # Perturbation strength (None: scenario default)
    scenarios: List[str] = field(default_factory=lambda: ["causal", "background"])
    alpha: float = 0.05            # 1 - nominal coverage
    seed: int = 42
    n_jobs: int = 1
    log_dir: str = "logs"

    def dgp_kwargs(self) -> dict:
        kwargs = {}
        if self.N is not None:
            kwargs["n"] = self.N
        if self.delta is not None:
            kwargs["delta"] = self.delta
        return kwargs


# =============================================================================
# Run One Simulation
# =============================================================================

def _row(sim_id, scenario, method, result, truth, dgp, alpha) -> dict:
    lower, upper = result.confint(alpha)
    return {
        "sim_id": sim_id,
        "scenario": scenario,
        "method": method,
        "estimate": result.estimate,
        "se": result.std_error,
        "truth": truth,
        "bias": result.estimate - truth,
        "ci_lower": lower,
        "ci_upper": upper,
        "ci_width": upper - lower,
        "covered": bool(lower <= truth <= upper),
        "p_value": result.p_value,
        "rejected": bool(result.p_value < alpha),
        "delta_hat": result.delta_hat,
        "dof": result.dof,
        "delta": dgp.delta,
        "n": dgp.n,
    }


def _failed_row(sim_id, scenario, method, truth, dgp) -> dict:
    return {
        "sim_id": sim_id,
        "scenario": scenario,
        "method": method,
        "estimate": np.nan,
        "se": np.nan,
        "truth": truth,
        "bias": np.nan,
        "ci_lower": np.nan,
        "ci_upper": np.nan,
        "ci_width": np.nan,
        "covered": False,
        "p_value": np.nan,
        "rejected": False,
        "delta_hat": np.nan,
        "dof": np.nan,
        "delta": dgp.delta,
        "n": dgp.n,
    }


def run_one_sim(sim_id: int, scenario: str, config: Config) -> List[dict]:
    """Run one replication of a scenario: one row per method."""
    dgp = get_dgp(scenario, seed=config.seed + sim_id, **config.dgp_kwargs())
    data = dgp.generate()
    truth = data.truth
    target = TARGETS[scenario]

    if scenario == "causal":
        method_funcs = {
            "calibrated": lambda: calibrate_models(data.formulas, data.data, target, null_value=truth),
            "naive": lambda: naive_inference(data.formulas[0], data.data, target, null_value=truth),
        }
    else:
        sample = data.data[target].to_numpy()
        method_funcs = {
            "calibrated": lambda: calibrate_background(sample, data.auxiliary(), null_value=truth, target=target),
            "naive": lambda: naive_mean(sample, null_value=truth, target=target),
        }

    results = []
    for method_name in METHODS:
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", UserWarning)
                result = method_funcs[method_name]()
            results.append(_row(sim_id, scenario, method_name, result, truth, dgp, config.alpha))
        except DlinferError as e:
            logger.warning("%s/%s sim %d failed: %s", scenario, method_name, sim_id, e)
            results.append(_failed_row(sim_id, scenario, method_name, truth, dgp))

    return results


def run_study(config: Config, progress: bool = True) -> pd.DataFrame:
    """Run every scenario of ``config`` and collect the raw rows."""
    all_results = []
    for scenario in config.scenarios:
        if config.n_jobs == 1:
            sims = tqdm(range(config.M), desc=scenario, disable=not progress)
            for sim_id in sims:
                all_results.extend(run_one_sim(sim_id, scenario, config))
        else:
            results_list = Parallel(n_jobs=config.n_jobs, verbose=10 if progress else 0)(
                delayed(run_one_sim)(sim_id, scenario, config)
                for sim_id in range(config.M)
            )
            for results in results_list:
                all_results.extend(results)
    return pd.DataFrame(all_results)


# =============================================================================
# Main
# =============================================================================

def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Monte Carlo coverage study for calibrated inference"
    )
    parser.add_argument("--M", type=int, default=200, help="Replications per scenario")
    parser.add_argument("--N", type=int, default=None, help="Sample size (default: per scenario)")
    parser.add_argument("--delta", type=float, default=None, help="Perturbation strength (default: per scenario)")
    parser.add_argument(
        "--scenarios",
        nargs="+",
        default=["causal", "background"],
        choices=list(DGPS.keys()),
        help="Scenarios to run",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--alpha", type=float, default=0.05, help="1 - nominal coverage")
    parser.add_argument("--output", type=str, default="mc_results.csv", help="Output CSV")
    parser.add_argument("--n-jobs", type=int, default=1, help="Parallel jobs (-1 for all cores)")
    parser.add_argument("--log-dir", type=str, default="logs", help="Directory for run reports")
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    config = Config(
        M=args.M,
        N=args.N,
        delta=args.delta,
        scenarios=args.scenarios,
        alpha=args.alpha,
        seed=args.seed,
        n_jobs=args.n_jobs,
        log_dir=args.log_dir,
    )

    start_time = time.time()

    print("=" * 60)
    print("Calibrated Inference Coverage Study")
    print("=" * 60)
    print(f"M={config.M}, N={config.N or 'default'}, delta={config.delta if config.delta is not None else 'default'}")
    print(f"Scenarios: {config.scenarios}")
    print(f"Methods: {METHODS}")
    print(f"Nominal coverage: {1 - config.alpha:.0%}")
    print(f"Parallel jobs: {config.n_jobs}")
    print("=" * 60)

    df = run_study(config)

    df.to_csv(args.output, index=False)
    print(f"\nRaw results saved to: {args.output}")

    metrics = compute_metrics(df)
    metrics_path = args.output.replace(".csv", ".metrics.csv")
    metrics.to_csv(metrics_path, index=False)
    print(f"Metrics saved to: {metrics_path}")

    print("\n")
    print_table(metrics, alpha=config.alpha)

    end_time = time.time()
    elapsed = end_time - start_time
    n_runs = config.M * len(config.scenarios)
    timing = {
        "total_seconds": elapsed,
        "per_sim_seconds": elapsed / n_runs if n_runs > 0 else 0,
        "start_time": time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime(start_time)),
        "end_time": time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime(end_time)),
    }

    report_json = create_full_report(
        config=asdict(config),
        raw_df=df,
        metrics_df=metrics,
        scenarios=config.scenarios,
        methods=METHODS,
        timing=timing,
    )

    log_path = save_report(report_json, config.log_dir)
    print(f"\nComprehensive report saved to: {log_path}")

    human_report = format_human_readable(report_json)
    human_path = log_path.replace(".log", "_readable.txt")
    with open(human_path, "w") as f:
        f.write(human_report)
    print(f"Human-readable report saved to: {human_path}")

    print(f"\nTotal time: {elapsed:.1f}s")


if __name__ == "__main__":
    main()
