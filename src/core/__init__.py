from core.config import ApiGraphConfig, ConfigError, LtGenConfig, load_config
from core.rng import RandomSource, ScriptedRandom, SeededRandom
from core.utils import trace, debug, info, warn, error

__all__ = [
    "ApiGraphConfig",
    "ConfigError",
    "LtGenConfig",
    "load_config",
    "RandomSource",
    "ScriptedRandom",
    "SeededRandom",
    "trace",
    "debug",
    "info",
    "warn",
    "error",
]
