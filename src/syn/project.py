"""
Throwaway cargo packages that depend on the library under test.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from core.utils import debug, warn
from templates import render


class WorkspaceError(Exception):
    """Workspace or package cannot be created; fatal for the whole run."""

    pass


@dataclass
class RsProject:
    name: str
    path: Path

    @property
    def main_rs(self) -> Path:
        return self.path / "src" / "main.rs"

    def write_main(self, code: str) -> None:
        try:
            self.main_rs.write_text(code, encoding="utf-8")
        except OSError as e:
            raise WorkspaceError(f"cannot write {self.main_rs}: {e}") from e

    def clear_artifact(self) -> None:
        target = self.path / "target"
        if not target.exists():
            return
        try:
            shutil.rmtree(target)
        except OSError as e:
            warn(f"cannot remove {target}: {e}")


def prepare_workspace(path: Union[str, Path], clean: bool) -> Path:
    """Create the workspace directory, wiping it first when `clean`."""
    workspace = Path(path)
    try:
        if clean and workspace.exists():
            debug(f"Removing existing workspace {workspace}")
            shutil.rmtree(workspace)
        workspace.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WorkspaceError(f"cannot prepare workspace {workspace}: {e}") from e
    return workspace


class CargoProjectBuilder:
    def __init__(self, crate_name: str, crate_path: Union[str, Path], workspace: Union[str, Path]):
        self.crate_name = crate_name
        self.crate_path = Path(crate_path).resolve()
        self.workspace = Path(workspace)

    def build_project(self, name: str) -> RsProject:
        path = self.workspace / name
        if path.exists():
            raise WorkspaceError(f"project {path} already exists (use override to replace the workspace)")
        manifest = render(
            "Cargo.toml.j2",
            name=name,
            dep_name=self.crate_name,
            dep_path=self.crate_path.as_posix(),
        )
        try:
            (path / "src").mkdir(parents=True)
            (path / "Cargo.toml").write_text(manifest, encoding="utf-8")
        except OSError as e:
            raise WorkspaceError(f"cannot create project {path}: {e}") from e
        debug(f"Created project {path}")
        return RsProject(name, path)
