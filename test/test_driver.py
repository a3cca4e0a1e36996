"""Tests for the run loop and the command line entry point."""

import json
import subprocess

import pytest

from alias.facts import AliasMap
from core.config import LtGenConfig
from core.rng import ScriptedRandom
from main import main, run_testgen
from syn.checker import MiriChecker
from syn.project import WorkspaceError
from test_utils import FakeChecker, widget_catalog


WIDGET_PROGRAM = """use mylib::*;
fn main() {
    let v1: u32 = 42;
    let v2: mylib::Widget = mylib::make(v1);
}
"""


def _config(tmp_path, **kwargs):
    return LtGenConfig(workspace=str(tmp_path / "ws"), **kwargs)


class TestRunTestgen:
    """Test the generate/synthesize/check loop."""

    def test_empty_cases(self, tmp_path):
        """A zero statement ceiling still produces compilable, empty cases"""
        checker = FakeChecker()
        config = _config(tmp_path, max_complexity=0, max_run=2)
        tally = run_testgen(config, widget_catalog(), AliasMap(), ScriptedRandom(), [checker])

        assert [p.name for p in checker.runs] == ["case0", "case1"]
        assert checker.programs == ["use mylib::*;\nfn main() {\n}\n"] * 2
        assert tally.total == 2
        assert tally.clean == 2

    def test_artifacts(self, tmp_path):
        config = _config(tmp_path, max_complexity=2, max_run=1)
        run_testgen(config, widget_catalog(), AliasMap(), ScriptedRandom(), [FakeChecker()])

        ws = tmp_path / "ws"
        for name in ("api_graph.dot", "api_graph.json", "alias_file.txt", "miri_report.txt"):
            assert (ws / name).is_file(), name
        assert (ws / "case0" / "region_graph.dot").is_file()
        assert (ws / "case0" / "Cargo.toml").is_file()
        assert (ws / "case0" / "src" / "main.rs").read_text() == WIDGET_PROGRAM
        assert not (ws / "case1").exists()

    def test_failures_are_reported(self, tmp_path):
        checker = FakeChecker(retcode=1, stderr="error: Undefined Behavior: pointer to freed memory")
        config = _config(tmp_path, max_complexity=2, max_run=1)
        tally = run_testgen(config, widget_catalog(), AliasMap(), ScriptedRandom(), [checker])

        assert tally.failed == 1
        report = (tmp_path / "ws" / "miri_report.txt").read_text()
        assert "pointer to freed memory" in report

    def test_timeouts_are_counted(self, tmp_path):
        config = _config(tmp_path, max_complexity=0, max_run=2)
        tally = run_testgen(config, widget_catalog(), AliasMap(), ScriptedRandom(), [FakeChecker(retcode=None)])
        assert tally.interrupted == 2
        assert tally.clean == 0

    def test_timeout_logged_once(self, tmp_path, monkeypatch, capsys):
        def fake_run(args, **kwargs):
            if "check" in args:
                return subprocess.CompletedProcess(args, 0, stdout="", stderr="")
            raise subprocess.TimeoutExpired(args, kwargs["timeout"])

        monkeypatch.setattr(subprocess, "run", fake_run)
        config = _config(tmp_path, max_complexity=0, max_run=1)
        tally = run_testgen(config, widget_catalog(), AliasMap(), ScriptedRandom(), [MiriChecker(timeout=1)])

        assert tally.interrupted == 1
        assert capsys.readouterr().err.count("execution interrupted") == 1

    def test_existing_case_without_override(self, tmp_path):
        config = _config(tmp_path, max_complexity=0, max_run=1)
        run_testgen(config, widget_catalog(), AliasMap(), ScriptedRandom(), [])
        with pytest.raises(WorkspaceError):
            run_testgen(config, widget_catalog(), AliasMap(), ScriptedRandom(), [])

    def test_override_replaces_workspace(self, tmp_path):
        config = _config(tmp_path, max_complexity=0, max_run=1)
        run_testgen(config, widget_catalog(), AliasMap(), ScriptedRandom(), [])
        config.override = True
        tally = run_testgen(config, widget_catalog(), AliasMap(), ScriptedRandom(), [FakeChecker()])
        assert tally.total == 1

    def test_debug_mode_checks_syntax(self, tmp_path):
        config = _config(tmp_path, max_complexity=2, max_run=5, mode="debug")
        config.validate()
        checker = FakeChecker()
        run_testgen(config, widget_catalog(), AliasMap(), ScriptedRandom(), [checker])
        assert checker.programs == [WIDGET_PROGRAM]


CATALOG = {
    "crate": {"name": "mylib", "path": "mylib"},
    "apis": [{"path": "mylib::make", "inputs": ["u32"], "output": "mylib::Widget"}],
    "adts": [{"path": "mylib::Widget", "fields": [{"name": "id", "ty": "u32", "pub": False}]}],
}


class TestMain:
    """Test the command line entry point."""

    def _write_inputs(self, tmp_path, catalog=CATALOG):
        catalog_path = tmp_path / "catalog.json"
        catalog_path.write_text(json.dumps(catalog))
        config_path = tmp_path / "empty.toml"
        config_path.write_text("")
        return catalog_path, config_path

    def test_dry_run(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        catalog_path, config_path = self._write_inputs(tmp_path)
        ws = tmp_path / "ws"
        argv = [str(catalog_path), "-c", str(config_path), "-w", str(ws), "--max-run", "1", "--dry-run", "--seed", "3"]
        assert main(argv) == 0
        manifest = (ws / "case0" / "Cargo.toml").read_text()
        # Crate paths are relative to the catalog
        assert (tmp_path / "mylib").resolve().as_posix() in manifest
        assert not (ws / "miri_report.txt").exists()

    def test_alias_file_next_to_catalog(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        catalog_path, config_path = self._write_inputs(tmp_path)
        (tmp_path / "alias.json").write_text(json.dumps({"mylib::make": []}))
        ws = tmp_path / "ws"
        argv = [str(catalog_path), "-c", str(config_path), "-w", str(ws), "--max-run", "1", "--dry-run"]
        assert main(argv) == 0
        assert "mylib::make" in (ws / "alias_file.txt").read_text()

    def test_missing_catalog(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        _, config_path = self._write_inputs(tmp_path)
        assert main([str(tmp_path / "nope.json"), "-c", str(config_path), "--dry-run"]) == 1

    def test_bad_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        catalog_path, config_path = self._write_inputs(tmp_path)
        config_path.write_text("colour = true\n")
        assert main([str(catalog_path), "-c", str(config_path), "--dry-run"]) == 1

    def test_bad_alias_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        catalog_path, config_path = self._write_inputs(tmp_path)
        (tmp_path / "alias.json").write_text("{not json")
        assert main([str(catalog_path), "-c", str(config_path), "--dry-run"]) == 1

    def test_wrongly_shaped_inputs(self, tmp_path, monkeypatch):
        """Well-formed JSON/TOML of the wrong shape is a setup error, not a traceback"""
        monkeypatch.chdir(tmp_path)
        catalog_path, config_path = self._write_inputs(tmp_path, catalog=[CATALOG])
        assert main([str(catalog_path), "-c", str(config_path), "--dry-run"]) == 1

        catalog_path, config_path = self._write_inputs(tmp_path)
        (tmp_path / "alias.json").write_text(json.dumps([{"left": 0, "right": 1}]))
        assert main([str(catalog_path), "-c", str(config_path), "--dry-run"]) == 1

        (tmp_path / "alias.json").unlink()
        config_path.write_text('max_complexity = "5"\n')
        assert main([str(catalog_path), "-c", str(config_path), "--dry-run"]) == 1
