"""Account creation and balance queries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from .client import LedgerClient, ensure_success
from .errors import ErrorCode, TransactionFailed, ValidationError
from .logger import log_event

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKEN_ASSOCIATIONS = 10


@dataclass(frozen=True)
class Account:
    """A ledger account together with the key that controls it."""

    account_id: str
    private_key: Any

    def __str__(self) -> str:
        return self.account_id


def operator_account(client: LedgerClient) -> Account:
    """The client's operator as an Account (fee payer and default treasury)."""
    return Account(account_id=client.operator_account_id, private_key=client.operator_key)


async def create_account(
    client: LedgerClient,
    initial_balance: int | Decimal,
    max_token_associations: int = DEFAULT_MAX_TOKEN_ASSOCIATIONS,
) -> Account:
    """Create an account funded with initial_balance hbar under a fresh ED25519 key.

    Raises:
        TransactionFailed: Non-success receipt, or a receipt without an account id.
    """
    private_key = client.generate_key()
    receipt = await client.create_account(
        private_key, Decimal(initial_balance), max_token_associations
    )
    ensure_success(receipt, action="account create")
    if receipt.account_id is None:
        raise TransactionFailed(
            receipt.status,
            action="account create (no account id in receipt)",
            code=ErrorCode.MISSING_RECEIPT_FIELD,
        )
    log_event(
        logger,
        "account_created",
        account_id=receipt.account_id,
        initial_balance=str(initial_balance),
    )
    return Account(account_id=receipt.account_id, private_key=private_key)


async def get_hbar_balance(client: LedgerClient, account_id: str) -> Decimal:
    balance = await client.get_account_balance(account_id)
    return balance.hbars


async def verify_account_balance(
    client: LedgerClient,
    account_id: str,
    minimum: int | Decimal | None = None,
) -> Decimal:
    """Return the hbar balance, checking it is strictly above minimum when given.

    Raises:
        ValidationError: Balance is not greater than minimum.
    """
    balance = await get_hbar_balance(client, account_id)
    if minimum is not None and not balance > Decimal(minimum):
        raise ValidationError(
            f"Account balance ({balance}) is not greater than {minimum} HBAR",
            code=ErrorCode.INSUFFICIENT_BALANCE,
            account_id=account_id,
        )
    return balance


async def get_token_balance(client: LedgerClient, account_id: str, token_id: str) -> int:
    """Units of token_id held by account_id; 0 if the account holds none."""
    balance = await client.get_account_balance(account_id)
    return balance.tokens.get(token_id, 0)
