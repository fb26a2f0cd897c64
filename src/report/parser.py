# src/report/parser.py — v1
"""XML scan report parser.

Turns the server's ``CxXMLResults`` document into an immutable ReportSummary.
Pure: the same bytes always give the same summary. A report with no Query
elements is valid and yields zero counts; anything that does not follow the
layout raises MalformedReport instead of being read as "no findings".

Layout::

    <CxXMLResults ProjectName=".." ScanId=".." DeepLink=".." ...>
      <Query name=".." group=".." Severity="High">
        <Result FileName=".." Line=".." Column=".." NodeId=".."
                Severity="High" FalsePositive="False" state="0" DeepLink=".."/>
      </Query>
    </CxXMLResults>
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from cxscan.core.errors import MalformedReport
from cxscan.core.models import Finding, QuerySummary, ReportSummary, Severity

logger = logging.getLogger(__name__)

ROOT_TAG = "CxXMLResults"

_SEVERITY_LABELS: dict[str, Severity] = {
    "high": "high",
    "medium": "medium",
    "low": "low",
    "information": "info",
    "info": "info",
}


def normalize_severity(label: str | None) -> Severity:
    """Map a report severity label to a bucket. Raises MalformedReport."""
    if label is None or not label.strip():
        raise MalformedReport("Finding without severity")
    severity = _SEVERITY_LABELS.get(label.strip().lower())
    if severity is None:
        raise MalformedReport(f"Unknown severity label: {label!r}")
    return severity


def _optional_int(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_report(xml_bytes: bytes) -> ReportSummary:
    """Parse an XML report body into per-severity counts and findings.

    Each Result is counted exactly once: in its own Severity bucket, else in
    its Query's. False positives are kept as findings but not counted.

    Raises:
        MalformedReport: Unparsable XML, unexpected root, or unknown severity.
    """
    if not xml_bytes or not xml_bytes.strip():
        raise MalformedReport("Empty report")
    try:
        root = ET.fromstring(xml_bytes)
    except ET.ParseError as exc:
        raise MalformedReport(f"Report is not well-formed XML: {exc}") from exc

    if root.tag != ROOT_TAG:
        raise MalformedReport(f"Unexpected report root element <{root.tag}>")

    counts: dict[Severity, int] = {"high": 0, "medium": 0, "low": 0, "info": 0}
    findings: list[Finding] = []
    queries: list[QuerySummary] = []

    for query in root.iter("Query"):
        query_name = query.get("name", "")
        query_group = query.get("group", "")
        query_label = query.get("Severity")
        query_count = 0
        query_severity: Severity | None = (
            normalize_severity(query_label) if query_label is not None else None
        )

        for result in query.iter("Result"):
            label = result.get("Severity", query_label)
            severity = normalize_severity(label)
            false_positive = result.get("FalsePositive", "False").strip().lower() == "true"
            findings.append(
                Finding(
                    query_name=query_name,
                    query_group=query_group,
                    severity=severity,
                    file_name=result.get("FileName", ""),
                    line=_optional_int(result.get("Line")),
                    column=_optional_int(result.get("Column")),
                    node_id=result.get("NodeId", ""),
                    deep_link=result.get("DeepLink", ""),
                    state=result.get("state", ""),
                    false_positive=false_positive,
                )
            )
            if query_severity is None:
                query_severity = severity
            if not false_positive:
                counts[severity] += 1
                query_count += 1

        if query_severity is not None:
            queries.append(
                QuerySummary(
                    name=query_name,
                    group=query_group,
                    severity=query_severity,
                    result_count=query_count,
                )
            )

    summary = ReportSummary(
        high_count=counts["high"],
        medium_count=counts["medium"],
        low_count=counts["low"],
        info_count=counts["info"],
        findings=tuple(findings),
        queries=tuple(queries),
        project_name=root.get("ProjectName", ""),
        scan_id=root.get("ScanId", ""),
        scan_start=root.get("ScanStart", ""),
        deep_link=root.get("DeepLink", ""),
        files_scanned=_optional_int(root.get("FilesScanned")),
        lines_of_code_scanned=_optional_int(root.get("LinesOfCodeScanned")),
    )
    logger.debug(
        "Parsed report: high=%d medium=%d low=%d info=%d (%d findings)",
        summary.high_count, summary.medium_count, summary.low_count,
        summary.info_count, len(summary.findings),
    )
    return summary
