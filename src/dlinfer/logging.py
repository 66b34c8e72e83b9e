"""Console logging and machine-readable run reports for Monte Carlo studies.

Console records go through a rich handler on the package logger. Run reports
are structured JSON logs with configuration, per-scenario coverage metrics, a
calibration scorecard and the raw per-replication results.
"""

import json
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import numpy as np
import pandas as pd
from rich.console import Console
from rich.logging import RichHandler

# stdout is reserved for the result tables
console = Console(stderr=True)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    name: str = "dlinfer",
) -> logging.Logger:
    """Attach a rich console handler (and optionally a file handler) to the
    package logger. Calling it again replaces the handlers.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger


def _safe_float(val: Any) -> Any:
    """Convert numpy types to Python native types for JSON serialization."""
    if isinstance(val, (bool, np.bool_)):
        return bool(val)
    if isinstance(val, np.integer):
        return int(val)
    if isinstance(val, (np.floating, float)):
        val = float(val)
        if math.isnan(val):
            return None
        if math.isinf(val):
            return "inf" if val > 0 else "-inf"
        return val
    if isinstance(val, np.ndarray):
        return val.tolist()
    if isinstance(val, (list, tuple, dict)):
        return val
    if val is None or pd.isna(val):
        return None
    return val


def extract_coverage(metrics_df: pd.DataFrame) -> dict:
    """Extract per-scenario, per-method coverage metrics."""
    result: dict = {}
    for _, row in metrics_df.iterrows():
        result.setdefault(row["scenario"], {})[row["method"]] = {
            "truth": _safe_float(row.get("truth")),
            "bias": _safe_float(row.get("bias_mean")),
            "rmse": _safe_float(row.get("rmse")),
            "empirical_se": _safe_float(row.get("empirical_se")),
            "estimated_se": _safe_float(row.get("se_mean")),
            "se_ratio": _safe_float(row.get("se_ratio")),
            "ci_width": _safe_float(row.get("ci_width")),
            "coverage": _safe_float(row.get("coverage")),
            "rejection_rate": _safe_float(row.get("rejection_rate")),
            "delta_hat_mean": _safe_float(row.get("delta_hat_mean")),
            "n_inf_delta": int(row.get("n_inf_delta", 0) or 0),
            "n_failed": int(row.get("n_failed", 0) or 0),
            "n_sims": int(row.get("n_sims", 0)),
        }
    return result


def compute_scorecard(metrics_df: pd.DataFrame, alpha: float = 0.05) -> dict:
    """Grade calibrated and naive coverage per scenario."""
    nominal = 1 - alpha
    scorecard: dict = {"scenarios": {}, "overall_grade": "FAIL"}

    grades = []
    for scenario, block in metrics_df.groupby("scenario", sort=False):
        entry = {}
        cal = block[block["method"] == "calibrated"]
        naive = block[block["method"] == "naive"]

        if len(cal) > 0:
            row = cal.iloc[0]
            coverage = row.get("coverage", 0)
            if nominal - 0.03 <= coverage <= nominal + 0.03:
                grade = "PASS"
                notes = "Calibrated coverage is near nominal."
            elif coverage >= nominal - 0.10:
                grade = "WARNING"
                notes = "Calibrated coverage is somewhat off nominal."
            else:
                grade = "FAIL"
                notes = "Calibrated coverage well below nominal."
            grades.append(grade)
            entry["calibrated"] = {
                "grade": grade,
                "coverage": _safe_float(coverage),
                "se_ratio": _safe_float(row.get("se_ratio")),
                "notes": notes,
            }

        if len(naive) > 0:
            row = naive.iloc[0]
            coverage = row.get("coverage", 0)
            se_ratio = row.get("se_ratio", 0)
            if coverage < nominal - 0.10:
                grade = "UNDER-COVERS"
                se_underestimate = (1 - se_ratio) * 100 if se_ratio < 1 else 0
                notes = f"Sampling-only SE underestimates the spread by {se_underestimate:.0f}%."
            else:
                grade = "UNEXPECTED"
                notes = "Naive coverage near nominal. Check the perturbation strength."
            entry["naive"] = {
                "grade": grade,
                "coverage": _safe_float(coverage),
                "se_ratio": _safe_float(se_ratio),
                "notes": notes,
            }
        scorecard["scenarios"][scenario] = entry

    if grades:
        if all(g == "PASS" for g in grades):
            scorecard["overall_grade"] = "PASS"
        elif "FAIL" not in grades:
            scorecard["overall_grade"] = "WARNING"
    return scorecard


def create_full_report(
    config: dict,
    raw_df: pd.DataFrame,
    metrics_df: pd.DataFrame,
    scenarios: list = None,
    methods: list = None,
    timing: dict = None,
) -> str:
    """Generate a comprehensive JSON log of one run.

    Args:
        config: Simulation configuration dict
        raw_df: Raw per-replication results DataFrame
        metrics_df: Aggregated metrics DataFrame
        scenarios: List of scenario names
        methods: List of method names
        timing: Timing information dict

    Returns:
        JSON string containing the full report
    """
    raw_records = []
    for _, row in raw_df.iterrows():
        record = {}
        for col in raw_df.columns:
            record[col] = _safe_float(row[col])
        raw_records.append(record)

    alpha = config.get("alpha", 0.05)
    report = {
        "meta": {
            "generated": datetime.now().isoformat(),
            "version": "1.0",
            "framework": "dlinfer calibration coverage study",
        },
        "config": {key: _safe_float(value) for key, value in config.items()},
        "scenarios": scenarios or [],
        "methods": methods or [],
        "coverage": extract_coverage(metrics_df),
        "scorecard": compute_scorecard(metrics_df, alpha),
        "raw_data": raw_records,
        "timing": timing or {},
    }

    return json.dumps(report, indent=2, default=str)


def save_report(report: str, output_dir: str = "logs") -> str:
    """Save report to timestamped log file.

    Args:
        report: JSON string report
        output_dir: Directory to save report

    Returns:
        Path to saved report file
    """
    Path(output_dir).mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = f"{output_dir}/mc_run_{timestamp}.log"
    with open(path, "w") as f:
        f.write(report)
    return path


def format_human_readable(report_json: str) -> str:
    """Format report as human-readable text with JSON sections."""
    report = json.loads(report_json)

    lines = []
    lines.append("=" * 80)
    lines.append("CALIBRATION COVERAGE REPORT")
    lines.append(f"Generated: {report['meta']['generated']}")
    lines.append("=" * 80)
    lines.append("")

    lines.append("## CONFIGURATION")
    lines.append(json.dumps(report["config"], indent=2))
    lines.append("")

    lines.append("## COVERAGE")
    lines.append(json.dumps(report["coverage"], indent=2))
    lines.append("")

    lines.append("## SCORECARD")
    lines.append(json.dumps(report["scorecard"], indent=2))
    lines.append("")

    if report.get("timing"):
        lines.append("## TIMING")
        lines.append(json.dumps(report["timing"], indent=2))
        lines.append("")

    lines.append(f"## RAW DATA: {len(report['raw_data'])} records")
    lines.append("")

    lines.append("=" * 80)
    lines.append("END REPORT")
    lines.append("=" * 80)

    return "\n".join(lines)
