# hrm_api/services/test_report.py
"""
Offline summariser for Jest-style test results.

Reads `test-results.json`, writes `reports/test-report.json` and
`reports/test-report.html`, and exits 0 only when the run succeeded.
No database, no app context.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import click
from jinja2 import Environment, PackageLoader, select_autoescape

from hrm_api.common.errors import MissingInput, ParseFailure

log = logging.getLogger(__name__)

DEFAULT_INPUT = "test-results.json"
DEFAULT_OUTPUT_DIR = "reports"
HTML_NAME = "test-report.html"
JSON_NAME = "test-report.json"

_env = Environment(
    loader=PackageLoader("hrm_api", "templates"),
    autoescape=select_autoescape(["html"]),
)


def load_results(path: str = DEFAULT_INPUT) -> Dict[str, Any]:
    if not os.path.isfile(path):
        raise MissingInput(f"Could not read test results: {path} not found")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as e:
        raise ParseFailure(f"Could not read test results: {e}")
    if not isinstance(data, dict):
        raise ParseFailure("Could not read test results: top-level JSON value must be an object")
    return data


def _elapsed(perf: Optional[dict]) -> float:
    perf = perf or {}
    start, end = perf.get("start"), perf.get("end")
    if start is None or end is None:
        return 0
    return end - start


def build_report(results: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    suites = results.get("testResults") or []
    details: List[dict] = []
    for suite in suites:
        details.append({
            "name": os.path.basename(suite.get("name") or ""),
            "status": suite.get("status") or "unknown",
            "duration": _elapsed(suite.get("perfStats")),
            "tests": [
                {
                    "name": t.get("fullName") or t.get("title"),
                    "status": t.get("status"),
                    "duration": t.get("duration") or 0,
                    "failureMessages": t.get("failureMessages") or [],
                }
                for t in (suite.get("assertionResults") or [])
            ],
        })

    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    return {
        "summary": {
            "total": results.get("numTotalTests") or 0,
            "passed": results.get("numPassedTests") or 0,
            "failed": results.get("numFailedTests") or 0,
            "pending": results.get("numPendingTests") or 0,
            "duration": sum(_elapsed(s.get("perfStats")) for s in suites),
        },
        "testSuites": {
            "total": results.get("numTotalTestSuites") or 0,
            "passed": results.get("numPassedTestSuites") or 0,
            "failed": results.get("numFailedTestSuites") or 0,
        },
        "success": bool(results.get("success", False)),
        "timestamp": timestamp,
        "details": details,
    }


def render_html(report: Dict[str, Any]) -> str:
    return _env.get_template("reports/test_report.html").render(report=report)


def write_reports(report: Dict[str, Any], out_dir: str = DEFAULT_OUTPUT_DIR) -> Dict[str, str]:
    os.makedirs(out_dir, exist_ok=True)
    html_path = os.path.join(out_dir, HTML_NAME)
    json_path = os.path.join(out_dir, JSON_NAME)
    with open(html_path, "w", encoding="utf-8") as fh:
        fh.write(render_html(report))
    with open(json_path, "w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2)
    log.info("test report written to %s and %s", html_path, json_path)
    return {"html": html_path, "json": json_path}


def exit_code(report: Dict[str, Any]) -> int:
    return 0 if report.get("success") else 1


def console_summary(report: Dict[str, Any], paths: Dict[str, str]) -> List[str]:
    s = report["summary"]
    rule = "=" * 59
    lines = [
        "",
        rule,
        "                 HRM INTEGRATION TEST REPORT",
        rule,
        "",
        f"  Status:     {'PASSED' if report['success'] else 'FAILED'}",
        f"  Total:      {s['total']} tests",
        f"  Passed:     {s['passed']} tests",
        f"  Failed:     {s['failed']} tests",
        f"  Pending:    {s['pending']} tests",
        f"  Duration:   {s['duration'] / 1000:.2f}s",
        "",
        "  Test Suites:",
    ]
    for suite in report["details"]:
        mark = "+" if suite["status"] == "passed" else "x"
        lines.append(f"    {mark} {suite['name']} ({len(suite['tests'])} tests)")
    lines += ["", "  Reports generated:"]
    lines += [f"    - {paths['html']}", f"    - {paths['json']}", "", rule]
    return lines


def generate(input_path: str = DEFAULT_INPUT, out_dir: str = DEFAULT_OUTPUT_DIR) -> Dict[str, Any]:
    """Load, summarise and write. Raises MissingInput / ParseFailure."""
    report = build_report(load_results(input_path))
    paths = write_reports(report, out_dir)
    return {"report": report, "paths": paths, "exit_code": exit_code(report)}


@click.command("test-report")
@click.option("--input", "input_path", default=DEFAULT_INPUT, show_default=True,
              help="Jest JSON results file")
@click.option("--out-dir", default=DEFAULT_OUTPUT_DIR, show_default=True)
@click.pass_context
def test_report_command(ctx, input_path: str, out_dir: str):
    """Render test-results.json into reports/test-report.{html,json}."""
    try:
        result = generate(input_path, out_dir)
    except MissingInput as e:
        click.echo(e.message, err=True)
        ctx.exit(1)
    for line in console_summary(result["report"], result["paths"]):
        click.echo(line)
    ctx.exit(result["exit_code"])
