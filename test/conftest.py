import sys
from pathlib import Path

import pytest


# Ensure the project `src` directory is on sys.path so tests can import
# modules like `rty`, `testgen`, `syn`, etc.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep LTGEN_* variables from the developer's shell out of the tests."""
    for name in ("LTGEN_MAX_COMPLEXITY", "LTGEN_MAX_RUN", "LTGEN_MODE", "LTGEN_SEED", "LTGEN_WORKSPACE"):
        monkeypatch.delenv(name, raising=False)
    yield
