"""Tests for configuration loading and precedence."""

import pytest

from core.config import CONFIG_FILE_NAME, ConfigError, LtGenConfig, find_config_file, load_config


def _write_config(directory, text):
    path = directory / CONFIG_FILE_NAME
    path.write_text(text)
    return path


class TestDefaults:
    """Test the built-in defaults."""

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config()
        assert config.max_complexity == 20
        assert config.max_run == 0
        assert config.mode == "nodebug"
        assert config.checkers == ["miri"]
        assert config.api_graph.pub_only
        assert not config.api_graph.include_unsafe

    def test_debug_forces_single_run(self):
        config = LtGenConfig(mode="debug", max_run=10)
        config.validate()
        assert config.max_run == 1


class TestConfigFile:
    """Test .ltgenconfig parsing."""

    def test_values_and_graph_table(self, tmp_path):
        path = _write_config(
            tmp_path,
            'max_complexity = 8\nworkspace = "out"\ncheckers = ["miri", "asan"]\n\n'
            "[api_graph]\ninclude_unsafe = true\n",
        )
        config = load_config(path)
        assert config.max_complexity == 8
        assert config.workspace == "out"
        assert config.checkers == ["miri", "asan"]
        assert config.api_graph.include_unsafe

    def test_found_in_parent_directory(self, tmp_path):
        path = _write_config(tmp_path, "max_run = 3\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == path.resolve()

    def test_unknown_option(self, tmp_path):
        path = _write_config(tmp_path, "max_depth = 3\n")
        with pytest.raises(ConfigError, match="unknown option 'max_depth'"):
            load_config(path)

    def test_unknown_graph_option(self, tmp_path):
        path = _write_config(tmp_path, "[api_graph]\nfoo = true\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_toml(self, tmp_path):
        path = _write_config(tmp_path, "max_run = = 3\n")
        with pytest.raises(ConfigError, match="invalid TOML"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        with pytest.raises(ConfigError, match="unknown mode"):
            load_config(_write_config(tmp_path, 'mode = "loud"\n'))
        with pytest.raises(ConfigError, match="unknown checker"):
            load_config(_write_config(tmp_path, 'checkers = ["valgrind"]\n'))
        with pytest.raises(ConfigError, match="must not be negative"):
            load_config(_write_config(tmp_path, "max_complexity = -1\n"))

    def test_wrong_value_types(self, tmp_path):
        with pytest.raises(ConfigError, match="'max_complexity' must be int"):
            load_config(_write_config(tmp_path, 'max_complexity = "5"\n'))
        with pytest.raises(ConfigError, match="'max_run' must be int"):
            load_config(_write_config(tmp_path, "max_run = true\n"))
        with pytest.raises(ConfigError, match="'checkers' must be list"):
            load_config(_write_config(tmp_path, 'checkers = "miri"\n'))
        with pytest.raises(ConfigError, match="api_graph.pub_only"):
            load_config(_write_config(tmp_path, '[api_graph]\npub_only = "yes"\n'))

    def test_non_string_checker(self, tmp_path):
        with pytest.raises(ConfigError, match="unknown checker"):
            load_config(_write_config(tmp_path, "checkers = [1]\n"))


class TestPrecedence:
    """Test file < environment < command line."""

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = _write_config(tmp_path, "max_complexity = 8\nseed = 1\n")
        monkeypatch.setenv("LTGEN_MAX_COMPLEXITY", "12")
        monkeypatch.setenv("LTGEN_SEED", "99")
        config = load_config(path)
        assert config.max_complexity == 12
        assert config.seed == 99

    def test_bad_environment_value(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LTGEN_MAX_RUN", "many")
        with pytest.raises(ConfigError, match="LTGEN_MAX_RUN"):
            load_config(_write_config(tmp_path, ""))

    def test_command_line_wins(self, tmp_path, monkeypatch):
        path = _write_config(tmp_path, "max_complexity = 8\n")
        monkeypatch.setenv("LTGEN_MAX_COMPLEXITY", "12")
        config = load_config(path, {"max_complexity": 3, "workspace": None})
        assert config.max_complexity == 3
        # None means "not given"
        assert config.workspace == "testgen"

    def test_debug_mode_from_command_line(self, tmp_path):
        config = load_config(_write_config(tmp_path, "max_run = 5\n"), {"mode": "debug"})
        assert config.is_debug
        assert config.max_run == 1
