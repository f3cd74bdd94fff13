import logging
import os
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import boxoffice`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from boxoffice.chain import DevChain  # noqa: E402
from boxoffice.config import ConfigManager  # noqa: E402
from boxoffice.deploy import deploy_ticketing  # noqa: E402
from boxoffice.fixtures import FixtureLoader  # noqa: E402
from boxoffice.observability import ROOT_LOGGER_NAME  # noqa: E402


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless BOXOFFICE_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    run_slow = _env_flag('BOXOFFICE_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set BOXOFFICE_RUN_SLOW=1 to enable'))


@pytest.fixture(autouse=True)
def _isolated_runtime(monkeypatch):
    """Default configuration and no leftover log handlers for every test."""
    for name in list(os.environ):
        if name.startswith("BOXOFFICE_") and name != "BOXOFFICE_RUN_SLOW":
            monkeypatch.delenv(name)
    ConfigManager().reset()
    yield
    ConfigManager().reset()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        if getattr(handler, "_boxoffice", False):
            root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


@pytest.fixture
def chain() -> DevChain:
    return DevChain()


@pytest.fixture
def load_fixture(chain: DevChain) -> FixtureLoader:
    return FixtureLoader(chain)


@pytest.fixture
def deployment(chain: DevChain):
    return deploy_ticketing(chain)
