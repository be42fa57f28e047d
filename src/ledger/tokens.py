"""Fungible token creation, minting and queries.

Two supply policies:
- Mintable: infinite supply, the treasury key doubles as the supply key.
- Fixed: finite supply capped at the initial supply, and no supply key,
  so every mint attempt is rejected by the ledger.
"""

from __future__ import annotations

import logging

from .accounts import Account
from .client import LedgerClient, Receipt, TokenInfo, TokenSpec, ensure_success
from .errors import ErrorCode, TransactionFailed, ValidationError
from .logger import log_event

logger = logging.getLogger(__name__)


def _check_token_fields(name: str, symbol: str, decimals: int, initial_supply: int) -> None:
    if not name or not symbol:
        raise ValidationError("Token name and symbol are required", code=ErrorCode.INVALID_ARGUMENT)
    if decimals < 0:
        raise ValidationError(
            f"Token decimals must be non-negative, got {decimals}",
            code=ErrorCode.INVALID_ARGUMENT,
        )
    if initial_supply < 0:
        raise ValidationError(
            f"Initial supply must be non-negative, got {initial_supply}",
            code=ErrorCode.INVALID_AMOUNT,
        )


async def _create_token(client: LedgerClient, spec: TokenSpec, treasury: Account) -> str:
    receipt = await client.create_token(spec, signers=[treasury.private_key])
    ensure_success(receipt, action=f"token create {spec.symbol}")
    if receipt.token_id is None:
        raise TransactionFailed(
            receipt.status,
            action="token create (no token id in receipt)",
            code=ErrorCode.MISSING_RECEIPT_FIELD,
        )
    log_event(
        logger,
        "token_created",
        token_id=receipt.token_id,
        name=spec.name,
        symbol=spec.symbol,
        initial_supply=spec.initial_supply,
        fixed_supply=spec.supply_key is None,
    )
    return receipt.token_id


async def create_mintable_token(
    client: LedgerClient,
    name: str,
    symbol: str,
    decimals: int,
    initial_supply: int,
    treasury: Account,
) -> str:
    """Create an infinite-supply token whose supply key is the treasury's key."""
    _check_token_fields(name, symbol, decimals, initial_supply)
    spec = TokenSpec(
        name=name,
        symbol=symbol,
        decimals=decimals,
        initial_supply=initial_supply,
        treasury_account_id=treasury.account_id,
        supply_key=treasury.private_key,
    )
    return await _create_token(client, spec, treasury)


async def create_fixed_supply_token(
    client: LedgerClient,
    name: str,
    symbol: str,
    decimals: int,
    supply: int,
    treasury: Account,
) -> str:
    """Create a token whose total supply can never change."""
    _check_token_fields(name, symbol, decimals, supply)
    spec = TokenSpec(
        name=name,
        symbol=symbol,
        decimals=decimals,
        initial_supply=supply,
        treasury_account_id=treasury.account_id,
        admin_key=treasury.private_key,
        max_supply=supply,
    )
    return await _create_token(client, spec, treasury)


async def mint_tokens(client: LedgerClient, token_id: str, amount: int, supply_key: object) -> Receipt:
    """Mint amount additional units into the treasury.

    Raises:
        TransactionFailed: The ledger refused the mint (e.g. fixed supply).
    """
    if amount <= 0:
        raise ValidationError(
            f"Mint amount must be positive, got {amount}", code=ErrorCode.INVALID_AMOUNT
        )
    receipt = await client.mint_token(token_id, amount, signers=[supply_key])
    log_event(logger, "token_mint", token_id=token_id, amount=amount, status=receipt.status)
    return ensure_success(receipt, action=f"mint of {amount} {token_id}")


async def get_token_info(client: LedgerClient, token_id: str) -> TokenInfo:
    return await client.get_token_info(token_id)
