"""Ledger scenario source package.

This package contains the scenario harness components:
- config: Configuration loading and operator credentials
- ledger: Transfers, topic subscriptions, scenario context and the ledger client seam
"""

from __future__ import annotations

__all__: list[str] = []
