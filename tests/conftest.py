# pytest configuration hooks.
#
# Policy: No skipped tests. If something cannot run in this environment, use
# xfail with a clear reason instead.

from __future__ import annotations

import os
from pathlib import Path
import pytest

# Register pytest-bdd step definitions as a pytest plugin so fixtures are discoverable.
pytest_plugins = ["tests.bdd.steps"]

_SKIP_COUNT = 0


def pytest_configure() -> None:
    # Never pick up a developer's real ~/.config/gelato/config.toml.
    if "GELATO_CONFIG_PATH" not in os.environ:
        path = Path(__file__).resolve().parents[1] / ".gelato-test-config.toml"
        os.environ["GELATO_CONFIG_PATH"] = str(path)


@pytest.fixture(autouse=True)
def _clean_config(monkeypatch: pytest.MonkeyPatch):
    from gelato.core import config as config_core

    for key in (
        "GELATO_STRICT_CORRECT_THRESHOLD",
        "GELATO_LENIENT_ACCEPT_THRESHOLD",
        "GELATO_TRANSCRIBE_BACKEND",
    ):
        monkeypatch.delenv(key, raising=False)
    config_core.reset_config_cache()
    yield
    config_core.reset_config_cache()


def pytest_runtest_logreport(report: pytest.TestReport) -> None:
    global _SKIP_COUNT
    if report.when == "setup" and report.outcome == "skipped":
        _SKIP_COUNT += 1


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    if _SKIP_COUNT > 0:
        pytest.exit(f"Skipped tests are not allowed (skipped={_SKIP_COUNT}).", returncode=2)
