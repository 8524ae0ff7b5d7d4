"""Report writers for JSON, plain text and standalone HTML outputs."""

from __future__ import annotations

import html
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .analysis_result import UNKNOWN_FILE, AnalysisResult
from .config import OUTPUT_FORMATS
from .config_manager import ConfigError
from .smell_detector import Severity, SmellResult

logger = logging.getLogger(__name__)

SUMMARY_FILE = "summary.json"


def save_result(
    result: AnalysisResult,
    output_dir: Union[str, Path],
    fmt: str = "json",
    include_details: bool = True,
    timestamp: Optional[datetime] = None,
    group_by_severity: bool = False,
) -> Path:
    """Write *result* under a timestamped run directory and return that directory.

    JSON output is always one file per source file; ``group_by_severity``
    only changes how the text and HTML reports are sectioned.
    """
    fmt = fmt.strip().lower()
    if fmt not in OUTPUT_FORMATS:
        raise ConfigError(
            f"Unsupported output format '{fmt}' (expected one of: {', '.join(OUTPUT_FORMATS)})"
        )

    stamp = (timestamp or datetime.now()).strftime("%Y%m%d-%H%M%S")
    run_dir = Path(output_dir) / f"{_slug(result.project.name)}-{stamp}"
    run_dir.mkdir(parents=True, exist_ok=True)

    if fmt == "json":
        _write_json(result, run_dir, include_details)
    elif fmt == "txt":
        text = render_text(result, include_details, group_by_severity)
        (run_dir / "report.txt").write_text(text, encoding="utf-8")
    else:
        page = render_html(result, include_details, group_by_severity)
        (run_dir / "report.html").write_text(page, encoding="utf-8")

    logger.info("Wrote %s report to %s", fmt, run_dir)
    return run_dir


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def _write_json(result: AnalysisResult, run_dir: Path, include_details: bool) -> None:
    used: Dict[str, int] = {}
    index: Dict[str, str] = {}
    for file_name, smells in result.by_file().items():
        stem = _slug(Path(file_name).stem) if file_name != UNKNOWN_FILE else "project"
        count = used.get(stem, 0)
        used[stem] = count + 1
        out_name = f"{stem}.json" if count == 0 else f"{stem}-{count + 1}.json"
        payload = {
            "file": file_name,
            "smells": [smell.to_dict(include_details) for smell in _by_severity(smells)],
        }
        _dump(run_dir / out_name, payload)
        index[file_name] = out_name

    summary = result.summary()
    summary["reports"] = index
    summary["failures_detail"] = [failure.to_dict() for failure in result.failures]
    summary["config"] = result.config.to_document()
    _dump(run_dir / SUMMARY_FILE, summary)


def _dump(path: Path, payload: object) -> None:
    path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

def render_text(result: AnalysisResult, include_details: bool = True, group_by_severity: bool = False) -> str:
    summary = result.summary()
    lines: List[str] = [
        f"Code smell report: {summary['project']}",
        "=" * 60,
        f"Total smells: {summary['total_smells']}",
        f"Files with smells: {summary['files_with_smells']}",
        "",
        "By severity:",
    ]
    for severity, count in summary["by_severity"].items():
        lines.append(f"  {severity:<10} {count}")
    if summary["by_type"]:
        lines.append("")
        lines.append("By type:")
        for name, count in sorted(summary["by_type"].items()):
            lines.append(f"  {name:<28} {count}")

    for heading, smells in _sections(result, group_by_severity):
        lines.append("")
        lines.append(heading)
        lines.append("-" * len(heading))
        for smell in smells:
            lines.append(f"  [{smell.severity.value}] {smell.smell_name} at {smell.location.describe()}")
            if include_details:
                for key, value in smell.details.to_dict().items():
                    lines.append(f"      {key}: {value}")

    if result.failures:
        lines.append("")
        lines.append("Detector failures:")
        for failure in result.failures:
            lines.append(f"  {failure.detector} on {failure.scope}: {failure.error}")
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

def render_html(result: AnalysisResult, include_details: bool = True, group_by_severity: bool = False) -> str:
    summary = result.summary()
    esc = html.escape
    severity_rows = "".join(
        f"<tr><td>{esc(name)}</td><td>{count}</td></tr>"
        for name, count in summary["by_severity"].items()
    )

    sections: List[str] = []
    for heading, smells in _sections(result, group_by_severity):
        items = []
        for smell in smells:
            details = ""
            if include_details:
                details = "<pre>" + esc(json.dumps(smell.details.to_dict(), indent=2, default=str)) + "</pre>"
            items.append(
                f'<li class="{esc(smell.severity.value.lower())}">'
                f"<strong>{esc(smell.smell_name)}</strong> "
                f"<span class=\"badge\">{esc(smell.severity.value)}</span> "
                f"{esc(smell.location.describe())}{details}</li>"
            )
        sections.append(f"<section><h2>{esc(heading)}</h2><ul>{''.join(items)}</ul></section>")

    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>Code smells: {esc(summary['project'])}</title>
  <style>
    body {{ font-family: ui-monospace, SFMono-Regular, Menlo, monospace; margin: 20px; }}
    table {{ border-collapse: collapse; margin-bottom: 18px; }}
    td {{ border: 1px solid #ddd; padding: 4px 10px; }}
    section {{ border: 1px solid #ddd; border-radius: 8px; padding: 10px; margin: 12px 0; }}
    ul {{ list-style: none; padding: 0; margin: 0; }}
    li {{ margin: 6px 0; }}
    .badge {{ border-radius: 4px; padding: 0 6px; background: #eee; }}
    .critical .badge {{ background: #f4b4b4; }}
    .high .badge {{ background: #f7d7a8; }}
    .medium .badge {{ background: #f7f1a8; }}
  </style>
</head>
<body>
  <h1>Code smells: {esc(summary['project'])}</h1>
  <p>{summary['total_smells']} smells in {summary['files_with_smells']} files</p>
  <table>{severity_rows}</table>
  {''.join(sections)}
</body>
</html>
"""


def _by_severity(smells: List[SmellResult]) -> List[SmellResult]:
    return sorted(smells, key=lambda smell: -smell.severity_level)


def _sections(result: AnalysisResult, group_by_severity: bool) -> List[Tuple[str, List[SmellResult]]]:
    """Report sections: one per file, or one per severity (most severe first)."""
    if not group_by_severity:
        return [(name, _by_severity(smells)) for name, smells in result.by_file().items()]
    return [
        (severity.value, result.by_severity(severity))
        for severity in sorted(Severity, key=lambda s: -s.level)
        if result.by_severity(severity)
    ]


def _slug(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", text).strip("_") or "report"
