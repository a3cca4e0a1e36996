"""Tests for reporter module."""
import io
import os
# Disable colors before importing reporter (evaluated at import time)
os.environ["LTGEN_NO_COLORS"] = "1"

from reporter import DELIMITER, Tally, format_case_report, print_case_status, report_tally, write_case_report
from syn.checker import STAGE_BUILD, CheckResult


def make_result(retcode=0, name="case0", stderr="", stage="run") -> CheckResult:
    return CheckResult(
        project_name=name,
        project_path=f"/ws/{name}",
        checker="miri",
        retcode=retcode,
        stderr=stderr,
        reproduce=f"cd /ws/{name} && cargo miri run",
        stage=stage,
    )


class TestTally:
    """Test result counting."""

    def test_counts_each_outcome(self):
        tally = Tally()
        tally.record_all(
            [
                make_result(0),
                make_result(0),
                make_result(1),
                make_result(None),
                make_result(101, stage=STAGE_BUILD),
            ]
        )
        assert tally == Tally(total=5, clean=2, failed=1, interrupted=1, build_failed=1)

    def test_empty(self):
        tally = Tally()
        tally.record_all([])
        assert tally.total == 0


class TestCaseReport:
    """Test the per-case report blocks."""

    def test_blocks_are_delimited(self):
        text = format_case_report([make_result(0, "case0"), make_result(1, "case0", stderr="dangling pointer")])
        lines = text.splitlines()
        assert lines[0] == DELIMITER
        assert lines[-1] == DELIMITER
        assert text.count(DELIMITER) == 4
        assert "dangling pointer" in text
        assert "reproduce: cd /ws/case0 && cargo miri run" in text

    def test_report_file_is_appended(self, tmp_path):
        path = tmp_path / "miri_report.txt"
        write_case_report(path, [make_result(0, "case0")])
        write_case_report(path, [make_result(1, "case1")])
        text = path.read_text()
        assert text.index("project: case0") < text.index("project: case1")

    def test_nothing_to_write(self, tmp_path):
        path = tmp_path / "miri_report.txt"
        write_case_report(path, [])
        assert not path.exists()


class TestConsoleOutput:
    """Test status lines and the final summary."""

    def test_status_lines(self):
        out = io.StringIO()
        print_case_status(make_result(0, "case0"), out)
        print_case_status(make_result(1, "case1"), out)
        print_case_status(make_result(None, "case2"), out)
        text = out.getvalue()
        assert "case0 [miri]: " in text and "ok" in text
        assert "FAILED (1)" in text
        assert "interrupted" in text

    def test_summary(self):
        out = io.StringIO()
        report_tally(Tally(total=3, clean=1, failed=2), out)
        text = out.getvalue()
        assert "Checker summary" in text
        assert "total runs:   3" in text
