"""
Dynamic checkers run on synthesized packages.

A checker is anything with `run(project) -> CheckResult`. The cargo-based
checkers first build with `cargo check` (a failure there is a compile
failure), then run the tool with a timeout; a step that produces no exit
code (timeout) is reported as interrupted, never raised.
"""

import os
import shutil
import subprocess
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from core.utils import debug, error
from syn.project import RsProject, WorkspaceError

STAGE_RUN = "run"
STAGE_BUILD = "build"


@dataclass
class CheckResult:
    project_name: str
    project_path: str
    checker: str
    retcode: Optional[int]
    stdout: str = ""
    stderr: str = ""
    elapsed: float = 0.0
    reproduce: str = ""
    stage: str = STAGE_RUN

    @property
    def interrupted(self) -> bool:
        return self.retcode is None

    @property
    def success(self) -> bool:
        return self.retcode == 0

    @property
    def compile_failed(self) -> bool:
        return self.stage == STAGE_BUILD

    def brief(self) -> str:
        status = "interrupted" if self.interrupted else str(self.retcode)
        lines = [
            f"project: {self.project_name} ({self.checker})",
            f"reproduce: {self.reproduce}",
            f"retcode: {status}",
            f"elapsed: {self.elapsed:.2f}s",
        ]
        if self.stage == STAGE_BUILD:
            lines.append("stage: build failed")
        if not self.success:
            lines.append("stdout:")
            lines.append(self.stdout.rstrip())
            lines.append("stderr:")
            lines.append(self.stderr.rstrip())
        return "\n".join(lines)


class Checker(ABC):
    """Runs a synthesized package and reports how it exited."""

    name: str = "checker"

    @abstractmethod
    def run(self, project: RsProject) -> CheckResult:
        pass

    def is_available(self) -> bool:
        return True


def _decode(output: Union[bytes, str, None]) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


class CargoChecker(Checker):
    """Abstract base for checkers driven through cargo."""

    cli_command = "cargo"

    def __init__(self, timeout: int = 120):
        self._timeout = timeout

    @property
    @abstractmethod
    def args(self) -> List[str]:
        """Command line, e.g. ['cargo', 'miri', 'run']."""
        pass

    @property
    @abstractmethod
    def env(self) -> Dict[str, str]:
        """Extra environment for the run."""
        pass

    @property
    def check_args(self) -> List[str]:
        """Pre-build command; a failure here is a compile failure."""
        return ["cargo", "check"]

    def is_available(self) -> bool:
        return shutil.which(self.cli_command) is not None

    def reproduce_str(self, project: RsProject) -> str:
        env = " ".join(f'{k}="{v}"' if " " in v else f"{k}={v}" for k, v in self.env.items())
        return f"cd {project.path} && {env} {' '.join(self.args)}"

    def _invoke(self, args: List[str], project: RsProject, result: CheckResult) -> None:
        """Run `args` in the project, filling `result`; retcode stays None on timeout."""
        try:
            proc = subprocess.run(
                args,
                cwd=project.path,
                env={**os.environ, **self.env},
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
            result.retcode = proc.returncode
            result.stdout = proc.stdout
            result.stderr = proc.stderr
        except subprocess.TimeoutExpired as e:
            result.retcode = None
            result.stdout = _decode(e.stdout)
            result.stderr = _decode(e.stderr)
            error(f"{project.name}: `{' '.join(args)}` timed out after {self._timeout}s, execution interrupted")
        except OSError as e:
            raise WorkspaceError(f"cannot run {' '.join(args)}: {e}") from e

    def run(self, project: RsProject) -> CheckResult:
        result = CheckResult(
            project_name=project.name,
            project_path=str(project.path),
            checker=self.name,
            retcode=None,
            reproduce=self.reproduce_str(project),
        )
        start = time.monotonic()
        self._invoke(self.check_args, project, result)
        if result.success:
            self._invoke(self.args, project, result)
        elif not result.interrupted:
            result.stage = STAGE_BUILD
            error(f"{project.name}: `{' '.join(self.check_args)}` failed with {result.retcode}, compile fail")
        result.elapsed = time.monotonic() - start
        debug(f"{project.name}: {self.name} exited with {result.retcode} in {result.elapsed:.2f}s")
        return result


class MiriChecker(CargoChecker):
    name = "miri"

    @property
    def args(self) -> List[str]:
        return ["cargo", "miri", "run"]

    @property
    def env(self) -> Dict[str, str]:
        return {
            "MIRIFLAGS": "-Zmiri-ignore-leaks -Zmiri-disable-stacked-borrows",
            "RUSTFLAGS": "-Awarnings",
            "RUST_BACKTRACE": "1",
        }


class AsanChecker(CargoChecker):
    name = "asan"

    @property
    def args(self) -> List[str]:
        return ["cargo", "+nightly", "run"]

    @property
    def check_args(self) -> List[str]:
        return ["cargo", "+nightly", "check"]

    @property
    def env(self) -> Dict[str, str]:
        return {
            "RUSTFLAGS": "-Awarnings -Zsanitizer=address",
            "RUST_BACKTRACE": "1",
        }


_CHECKERS = {"miri": MiriChecker, "asan": AsanChecker}


def make_checkers(names: List[str], timeout: int = 120) -> List[Checker]:
    return [_CHECKERS[name](timeout) for name in names]
