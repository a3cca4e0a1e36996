"""
Checker report files and the end-of-run tally.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, TextIO, Union

from syn.checker import CheckResult

REPORT_FILE_NAME = "miri_report.txt"
DELIMITER = "=" * 40

_USE_COLOR = not os.environ.get("LTGEN_NO_COLORS")


class _C:
    """ANSI color codes."""

    RESET = "\033[0m" if _USE_COLOR else ""
    BOLD = "\033[1m" if _USE_COLOR else ""
    RED = "\033[31m" if _USE_COLOR else ""
    GREEN = "\033[32m" if _USE_COLOR else ""
    YELLOW = "\033[33m" if _USE_COLOR else ""
    MAGENTA = "\033[35m" if _USE_COLOR else ""


@dataclass
class Tally:
    total: int = 0
    clean: int = 0
    failed: int = 0
    interrupted: int = 0
    build_failed: int = 0

    def record(self, result: CheckResult) -> None:
        self.total += 1
        if result.interrupted:
            self.interrupted += 1
        elif result.compile_failed:
            self.build_failed += 1
        elif result.success:
            self.clean += 1
        else:
            self.failed += 1

    def record_all(self, results: List[CheckResult]) -> None:
        for result in results:
            self.record(result)


def format_case_report(results: List[CheckResult]) -> str:
    """One delimited block per checker result."""
    blocks = []
    for result in results:
        blocks.append(DELIMITER)
        blocks.append(result.brief())
        blocks.append(DELIMITER)
    return "\n".join(blocks) + "\n"


def write_case_report(path: Union[str, Path], results: List[CheckResult]) -> None:
    """Append the case's results to the shared report file."""
    if not results:
        return
    with open(path, "a", encoding="utf-8") as f:
        f.write(format_case_report(results))


def _status_color(result: CheckResult) -> str:
    if result.interrupted:
        return _C.MAGENTA
    if result.compile_failed:
        return _C.YELLOW
    if result.success:
        return _C.GREEN
    return f"{_C.BOLD}{_C.RED}"


def print_case_status(result: CheckResult, out: Optional[TextIO] = None) -> None:
    out = out or sys.stdout
    if result.interrupted:
        status = "interrupted"
    elif result.compile_failed:
        status = "build failed"
    elif result.success:
        status = "ok"
    else:
        status = f"FAILED ({result.retcode})"
    out.write(f"{result.project_name} [{result.checker}]: {_status_color(result)}{status}{_C.RESET}\n")


def report_tally(tally: Tally, out: Optional[TextIO] = None) -> None:
    out = out or sys.stdout
    out.write(f"\n{_C.BOLD}Checker summary{_C.RESET}\n")
    out.write(f"  total runs:   {tally.total}\n")
    out.write(f"  clean:        {_C.GREEN}{tally.clean}{_C.RESET}\n")
    out.write(f"  failed:       {_C.RED}{tally.failed}{_C.RESET}\n")
    out.write(f"  build failed: {_C.YELLOW}{tally.build_failed}{_C.RESET}\n")
    out.write(f"  interrupted:  {_C.MAGENTA}{tally.interrupted}{_C.RESET}\n")
