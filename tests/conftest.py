import pathlib
import sys

import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import mintgate`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))


@pytest.fixture(autouse=True)
def _reset_settings():
    """Runtime settings are a process-wide singleton; isolate each test."""
    from mintgate.config import get_config_manager

    get_config_manager().reset()
    yield
    get_config_manager().reset()
