"""
Generator configuration.

Settings come from a `.ltgenconfig` TOML file (searched from the current
directory upwards), then LTGEN_* environment variables, then CLI flags.
"""

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.utils import debug, warn

CONFIG_FILE_NAME = ".ltgenconfig"

MODES = ("debug", "nodebug")
CHECKERS = ("miri", "asan")
INPUT_GENS = ("silly", "random")


class ConfigError(Exception):
    """Raised when the configuration cannot be resolved."""

    pass


@dataclass
class ApiGraphConfig:
    """Which catalog entries become dependency graph nodes."""

    pub_only: bool = True
    include_unsafe: bool = False
    include_drop: bool = False
    resolve_generic: bool = True
    ignore_const_generic: bool = True


@dataclass
class LtGenConfig:
    max_complexity: int = 20  # statements per case
    max_iteration: int = 1000  # generation loop guard
    max_run: int = 0  # 0 = unbounded
    mode: str = "nodebug"
    override: bool = False
    workspace: str = "testgen"
    seed: Optional[int] = None
    timeout: int = 120  # seconds per checker invocation
    checkers: List[str] = field(default_factory=lambda: ["miri"])
    resolve_free_generics: bool = False
    input_gen: str = "silly"
    api_graph: ApiGraphConfig = field(default_factory=ApiGraphConfig)

    @property
    def is_debug(self) -> bool:
        return self.mode == "debug"

    def validate(self) -> None:
        if self.mode not in MODES:
            raise ConfigError(f"unknown mode '{self.mode}' (expected one of {', '.join(MODES)})")
        for name in ("max_complexity", "max_iteration", "max_run", "timeout"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        unknown = [c for c in self.checkers if c not in CHECKERS]
        if unknown:
            raise ConfigError(f"unknown checker(s): {', '.join(str(c) for c in unknown)}")
        if self.input_gen not in INPUT_GENS:
            raise ConfigError(f"unknown input_gen '{self.input_gen}'")
        # Debug runs are a single inspectable case
        if self.is_debug:
            self.max_run = 1


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Look for `.ltgenconfig` in `start` and each of its parents."""
    current = (start or Path.cwd()).resolve()
    for directory in [current, *current.parents]:
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


_OPTION_TYPES = {
    "max_complexity": int,
    "max_iteration": int,
    "max_run": int,
    "mode": str,
    "override": bool,
    "workspace": str,
    "seed": int,
    "timeout": int,
    "checkers": list,
    "resolve_free_generics": bool,
    "input_gen": str,
}


def _check_type(origin: str, key: str, value: Any, expected: type) -> None:
    # bool is an int subclass; `max_run = true` is still a mistake
    if isinstance(value, expected) and not (expected is int and isinstance(value, bool)):
        return
    raise ConfigError(f"{origin}: option '{key}' must be {expected.__name__}, got {value!r}")


def _apply(config: LtGenConfig, values: Dict[str, Any], origin: str) -> None:
    for key, value in values.items():
        if key == "api_graph":
            if not isinstance(value, dict):
                raise ConfigError(f"{origin}: [api_graph] must be a table")
            graph_known = {f.name for f in fields(ApiGraphConfig)}
            for gkey, gvalue in value.items():
                if gkey not in graph_known:
                    raise ConfigError(f"{origin}: unknown api_graph option '{gkey}'")
                _check_type(origin, f"api_graph.{gkey}", gvalue, bool)
                setattr(config.api_graph, gkey, gvalue)
            continue
        if key not in _OPTION_TYPES:
            raise ConfigError(f"{origin}: unknown option '{key}'")
        _check_type(origin, key, value, _OPTION_TYPES[key])
        setattr(config, key, value)


_ENV_OVERRIDES = {
    "LTGEN_MAX_COMPLEXITY": ("max_complexity", int),
    "LTGEN_MAX_RUN": ("max_run", int),
    "LTGEN_MODE": ("mode", str),
    "LTGEN_SEED": ("seed", int),
    "LTGEN_WORKSPACE": ("workspace", str),
}


def load_config(path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None) -> LtGenConfig:
    """
    Resolve the configuration.

    A missing config file falls back to defaults; a malformed one raises
    ConfigError.
    """
    config = LtGenConfig()

    config_path = path if path is not None else find_config_file()
    if config_path is None:
        warn(f"No {CONFIG_FILE_NAME} found, using default configuration")
    else:
        try:
            with open(config_path, "rb") as f:
                values = tomllib.load(f)
        except OSError as e:
            raise ConfigError(f"cannot read {config_path}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"invalid TOML in {config_path}: {e}") from e
        debug(f"Loaded config from {config_path}")
        _apply(config, values, str(config_path))

    for env_name, (key, conv) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or raw == "":
            continue
        try:
            setattr(config, key, conv(raw))
        except ValueError as e:
            raise ConfigError(f"{env_name}={raw!r}: {e}") from e

    if overrides:
        _apply(config, {k: v for k, v in overrides.items() if v is not None}, "command line")

    config.validate()
    return config
