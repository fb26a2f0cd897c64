# src/policy/threshold.py — v1
"""High-severity threshold gate.

Exceeding the threshold only ever makes a run unstable; it never fails it.
"""

from __future__ import annotations

import logging

from cxscan.core.models import Outcome, ReportSummary, ThresholdPolicy

logger = logging.getLogger(__name__)


def exceeds_threshold(summary: ReportSummary, policy: ThresholdPolicy) -> bool:
    """True iff the policy is enabled and high findings are above the threshold."""
    return policy.enabled and summary.high_count > policy.high_threshold


def evaluate_threshold(summary: ReportSummary, policy: ThresholdPolicy) -> Outcome:
    """Turn a parsed report into a success or unstable outcome."""
    logger.info(
        "Number of high severity vulnerabilities: %d stability threshold: %d",
        summary.high_count, policy.high_threshold,
    )
    if exceeds_threshold(summary, policy):
        reason = (
            f"{summary.high_count} high severity vulnerabilities exceed "
            f"the threshold of {policy.high_threshold}"
        )
        logger.info("Marking run unstable: %s", reason)
        return Outcome.unstable(summary, reason=reason)
    return Outcome.success(summary)
