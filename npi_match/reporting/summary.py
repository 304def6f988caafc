"""
Match summary reporting for NPI Match.

Aggregates per-row match results into totals, a match rate and a
breakdown by match method.
"""

import logging
from typing import Any, Dict, Optional
import pandas as pd

logger = logging.getLogger(__name__)


def _percent(count: int, total: int) -> int:
    # Halves round up
    return int(count * 100 / total + 0.5) if total else 0


def summarize_results(results_df: pd.DataFrame,
                      failed_requests: Optional[int] = None) -> Dict[str, Any]:
    """
    Calculate summary statistics for match results.

    Args:
        results_df: DataFrame of match results (output column names)
        failed_requests: Number of registry calls that failed, if known

    Returns:
        Dictionary with summary statistics
    """
    total = len(results_df)
    summary = {
        "total_processed": total,
        "matched": 0,
        "matched_percentage": 0,
        "method_counts": {},
        "method_percentages": {}
    }

    if failed_requests is not None:
        summary["failed_requests"] = failed_requests

    if total == 0:
        return summary

    matched = int(results_df["NPI"].notna().sum())
    methods = results_df["Match Method"].fillna("NO_MATCH")
    method_counts = {method: int(count) for method, count in methods.value_counts(sort=False).items()}

    summary["matched"] = matched
    summary["matched_percentage"] = _percent(matched, total)
    summary["method_counts"] = method_counts
    summary["method_percentages"] = {
        method: _percent(count, total) for method, count in method_counts.items()
    }

    logger.info(f"Matched {matched}/{total} providers ({summary['matched_percentage']}%)")
    return summary


def format_summary(summary: Dict[str, Any]) -> str:
    """Render a summary dictionary as console text."""
    lines = [
        "=" * 50,
        "NPI MATCH SUMMARY",
        "=" * 50,
        f"Total providers processed: {summary['total_processed']:,}",
        f"Providers matched: {summary['matched']:,} ({summary['matched_percentage']}%)",
    ]

    if summary["method_counts"]:
        lines.append("Matching Method Breakdown:")
        for method, count in summary["method_counts"].items():
            lines.append(f"  {method}: {count:,} ({summary['method_percentages'][method]}%)")

    if "failed_requests" in summary:
        lines.append(f"Failed registry requests: {summary['failed_requests']:,}")

    lines.append("=" * 50)
    return "\n".join(lines)
