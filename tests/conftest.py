"""Pytest fixtures for ledger scenario tests.

Scenarios run against FakeLedgerClient unless --run-external is given, in
which case they talk to the configured network with operator credentials
from the environment.
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterator

import pytest
from dotenv import load_dotenv

from src.config import get_validated_config, load_config
from src.config_schema import AppConfig
from src.ledger.client import LedgerClient
from src.ledger.context import ScenarioContext
from tests.testing_utils import FakeLedgerClient

# Operator credentials for --run-external
load_dotenv()


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "feature(name): mark test as belonging to a feature. "
        "Usage: @pytest.mark.feature('token') or @pytest.mark.feature('topic')"
    )
    config.addinivalue_line(
        "markers",
        "external: mark test as requiring external services (real network calls)"
    )


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add custom command-line options."""
    parser.addoption(
        "--run-external",
        action="store_true",
        default=False,
        help="Run tests marked as external and run scenarios against the real network",
    )
    parser.addoption(
        "--ledger-feature",
        action="store",
        type=str,
        default=None,
        help="Run tests for a specific feature (e.g., --ledger-feature token)",
    )
    parser.addoption(
        "--ledger-config",
        action="store",
        type=str,
        default=None,
        help="Config file for the suite (default: config/config.yaml)",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Filter tests based on command-line options."""
    # Handle --run-external
    if not config.getoption("--run-external"):
        skip_external = pytest.mark.skip(reason="need --run-external option to run")
        for item in items:
            if "external" in item.keywords:
                item.add_marker(skip_external)

    # Handle --ledger-feature NAME
    feature_filter = config.getoption("--ledger-feature")
    if feature_filter is not None:
        selected = []
        deselected = []
        for item in items:
            marker = item.get_closest_marker("feature")
            if marker is not None:
                feature_name = marker.args[0] if marker.args else ""
                if feature_name == feature_filter:
                    selected.append(item)
                    continue
            deselected.append(item)
        config.hook.pytest_deselected(items=deselected)
        items[:] = selected


@pytest.fixture(scope="session")
def app_config(pytestconfig: pytest.Config) -> AppConfig:
    """Validated suite configuration.

    Reuses whatever run.py already loaded (including --network overrides);
    otherwise loads config/config.yaml.
    """
    config_path = pytestconfig.getoption("--ledger-config")
    if config_path:
        load_config(config_path)
    return get_validated_config()


@pytest.fixture
def fake_client() -> FakeLedgerClient:
    """Fresh in-memory ledger with a funded operator."""
    return FakeLedgerClient()


@pytest.fixture
def ledger_client(
    pytestconfig: pytest.Config, app_config: AppConfig
) -> Iterator[LedgerClient]:
    """Client the scenarios run against.

    FakeLedgerClient by default; a HederaClient for the configured network
    with --run-external.
    """
    if not pytestconfig.getoption("--run-external"):
        yield FakeLedgerClient()
        return

    from src.ledger.hedera_client import HederaClient

    client = HederaClient.from_config(app_config)
    try:
        yield client
    finally:
        client.close()


@pytest.fixture
def runner() -> Iterator[asyncio.Runner]:
    """Event loop shared by every step of one scenario.

    Steps are synchronous; each one drives its coroutine to completion on
    this runner so that callbacks and tasks stay on a single loop.
    """
    with asyncio.Runner() as scenario_runner:
        yield scenario_runner


@pytest.fixture
def context(request: pytest.FixtureRequest) -> ScenarioContext:
    """Per-scenario state; never shared between scenarios."""
    return ScenarioContext(name=request.node.name)


@pytest.fixture
def run(runner: asyncio.Runner) -> Any:
    """Shorthand for runner.run(coroutine)."""
    return runner.run
