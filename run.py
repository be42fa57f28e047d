#!/usr/bin/env python3
"""
Ledger scenarios - Main runner script

Usage:
    python run.py                      # Run every scenario against the in-memory ledger
    python run.py --feature token      # Only the token service scenarios
    python run.py --run-external       # Run against the configured network (needs .env)
    python run.py --network previewnet --run-external
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pytest
from dotenv import load_dotenv

from src.config import get_validated_config, load_config, set_config_value
from src.ledger.logger import configure_logging

# Load environment variables
load_dotenv()

FEATURES_DIR: Path = Path(__file__).parent / "tests" / "features"


def build_pytest_args(args: argparse.Namespace, extra: list[str]) -> list[str]:
    """Translate runner options into pytest arguments."""
    pytest_args: list[str] = [str(FEATURES_DIR)]
    if args.feature:
        pytest_args += ["--ledger-feature", args.feature]
    if args.run_external:
        pytest_args.append("--run-external")
    if args.quiet:
        pytest_args.append("-q")
    return pytest_args + extra


def main() -> int:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Run the ledger behaviour scenarios"
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="Path to config file"
    )
    parser.add_argument(
        "--network",
        choices=["testnet", "previewnet", "mainnet", "solo"],
        help="Override network.name from the config",
    )
    parser.add_argument(
        "--feature",
        choices=["token", "topic"],
        help="Only run scenarios for one feature",
    )
    parser.add_argument(
        "--run-external",
        action="store_true",
        help="Run against the real network instead of the in-memory ledger",
    )
    parser.add_argument("--quiet", action="store_true", help="Less pytest output")
    args, extra = parser.parse_known_args()

    load_config(args.config)
    if args.network:
        set_config_value("network.name", args.network)
    configure_logging(get_validated_config().logging)

    return int(pytest.main(build_pytest_args(args, extra)))


if __name__ == "__main__":
    sys.exit(main())
