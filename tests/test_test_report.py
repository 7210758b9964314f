import json
from datetime import datetime, timezone

import pytest
from click.testing import CliRunner

from hrm_api.common.errors import MissingInput, ParseFailure
from hrm_api.services import test_report as tr

RESULTS = {
    "numTotalTests": 10,
    "numPassedTests": 8,
    "numFailedTests": 2,
    "numPendingTests": 0,
    "numTotalTestSuites": 2,
    "numPassedTestSuites": 1,
    "numFailedTestSuites": 1,
    "success": False,
    "testResults": [
        {
            "name": "/work/tests/integration/auth.test.js",
            "status": "passed",
            "perfStats": {"start": 1000, "end": 2500},
            "assertionResults": [
                {"fullName": "auth logs in", "status": "passed", "duration": 12, "failureMessages": []},
            ],
        },
        {
            "name": "/work/tests/integration/employees.test.js",
            "status": "failed",
            "perfStats": {"start": 3000, "end": 3500},
            "assertionResults": [
                {"title": "creates <employee>", "status": "failed", "duration": 7,
                 "failureMessages": ["expected 201 <got> 500"]},
            ],
        },
    ],
}


@pytest.fixture
def results_file(tmp_path):
    p = tmp_path / "test-results.json"
    p.write_text(json.dumps(RESULTS), encoding="utf-8")
    return p


def test_build_report_summary():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    report = tr.build_report(RESULTS, now=now)

    assert report["summary"] == {"total": 10, "passed": 8, "failed": 2, "pending": 0, "duration": 2000}
    assert report["testSuites"] == {"total": 2, "passed": 1, "failed": 1}
    assert report["success"] is False
    assert report["timestamp"] == now.isoformat()
    assert [d["name"] for d in report["details"]] == ["auth.test.js", "employees.test.js"]
    assert report["details"][1]["tests"][0]["name"] == "creates <employee>"
    assert tr.exit_code(report) == 1


def test_missing_fields_default_to_zero():
    report = tr.build_report({"success": True})
    assert report["summary"]["total"] == 0
    assert report["details"] == []
    assert tr.exit_code(report) == 0


def test_html_escapes_and_flags_failure():
    html = tr.render_html(tr.build_report(RESULTS))
    assert "Some Tests Failed" in html
    assert "expected 201 &lt;got&gt; 500" in html
    assert "employees.test.js" in html


def test_generate_writes_both_files(results_file, tmp_path):
    out = tmp_path / "reports"
    result = tr.generate(str(results_file), str(out))

    assert result["exit_code"] == 1
    assert (out / "test-report.html").exists()
    saved = json.loads((out / "test-report.json").read_text(encoding="utf-8"))
    assert saved["summary"]["failed"] == 2
    assert saved["success"] is False


def test_missing_input(tmp_path):
    with pytest.raises(MissingInput):
        tr.load_results(str(tmp_path / "nope.json"))


@pytest.mark.parametrize("body", ["{not json", "[1, 2]"])
def test_unparsable_input(tmp_path, body):
    p = tmp_path / "test-results.json"
    p.write_text(body, encoding="utf-8")
    with pytest.raises(ParseFailure):
        tr.load_results(str(p))


def test_cli_exit_code_mirrors_success(results_file, tmp_path):
    runner = CliRunner()
    res = runner.invoke(tr.test_report_command,
                        ["--input", str(results_file), "--out-dir", str(tmp_path / "r")])
    assert res.exit_code == 1
    assert "Status:     FAILED" in res.output

    ok_file = tmp_path / "ok.json"
    ok_file.write_text(json.dumps(dict(RESULTS, success=True, numFailedTests=0)), encoding="utf-8")
    res = runner.invoke(tr.test_report_command, ["--input", str(ok_file), "--out-dir", str(tmp_path / "r")])
    assert res.exit_code == 0
    assert "Status:     PASSED" in res.output


def test_cli_missing_input_exits_1(tmp_path):
    res = CliRunner().invoke(tr.test_report_command, ["--input", str(tmp_path / "nope.json")])
    assert res.exit_code == 1
    assert not (tmp_path / "reports").exists()
