# src/storage/layout.py — v1
"""Per-run artifact layout.

    {build_dir}/cxscan/
        ScanReport.xml
        ScanReport.pdf      (optional)
        scan_result.json
        cxscan.log
"""

from __future__ import annotations

from pathlib import Path

SCAN_DIR = "cxscan"
XML_REPORT = "ScanReport.xml"
PDF_REPORT = "ScanReport.pdf"
RESULT_RECORD = "scan_result.json"


def scan_dir(build_dir: Path) -> Path:
    """Return the scan artifact directory of a build."""
    return build_dir / SCAN_DIR


def ensure_scan_dir(build_dir: Path) -> Path:
    path = scan_dir(build_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


def xml_report_path(run_dir: Path) -> Path:
    return run_dir / XML_REPORT


def pdf_report_path(run_dir: Path) -> Path:
    return run_dir / PDF_REPORT


def result_record_path(run_dir: Path) -> Path:
    return run_dir / RESULT_RECORD
