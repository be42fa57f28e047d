"""LedgerClient backed by the Hiero/Hedera Python SDK.

The SDK is synchronous: execute() blocks until the receipt is available and
topic subscriptions run on SDK-owned threads. Each blocking call is pushed
onto a worker thread with asyncio.to_thread so scenario code suspends
cooperatively instead of blocking the event loop.

Ledger-rejected transactions (precheck or receipt status) come back as a
Receipt carrying the status name; transport errors propagate unchanged.

Usage:
    client = HederaClient.from_config(get_validated_config())
    try:
        account = await create_account(client, 10)
    finally:
        client.close()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Sequence

from hiero_sdk_python import (
    AccountCreateTransaction,
    AccountId,
    Client,
    CryptoGetAccountBalanceQuery,
    Hbar,
    Network,
    PrivateKey,
    ResponseCode,
    TokenCreateTransaction,
    TokenId,
    TokenInfoQuery,
    TokenMintTransaction,
    TopicCreateTransaction,
    TopicId,
    TopicMessageQuery,
    TopicMessageSubmitTransaction,
    TransactionId,
    TransferTransaction,
)
from hiero_sdk_python.exceptions import PrecheckError, ReceiptStatusError
from hiero_sdk_python.tokens.supply_type import SupplyType
from hiero_sdk_python.tokens.token_type import TokenType
from hiero_sdk_python.transaction.transaction import Transaction

from ..config import get_operator_credentials
from ..config_schema import AppConfig
from .client import (
    AccountBalance,
    ErrorCallback,
    MessageCallback,
    Receipt,
    TokenInfo,
    TokenSpec,
    TopicMessage,
)

logger = logging.getLogger(__name__)

TINYBARS_PER_HBAR = Decimal(100_000_000)


def _status_name(status: Any) -> str:
    return ResponseCode(int(status)).name


def _id_or_none(value: Any) -> str | None:
    return str(value) if value is not None else None


def _timestamp_to_datetime(timestamp: Any) -> datetime:
    """Convert an SDK/protobuf Timestamp (seconds + nanos) to an aware datetime."""
    seconds = Decimal(timestamp.seconds) + Decimal(timestamp.nanos) / Decimal(1_000_000_000)
    return datetime.fromtimestamp(float(seconds), tz=timezone.utc)


def _public(key: Any) -> Any:
    return key.public_key() if isinstance(key, PrivateKey) else key


def _parse_private_key(raw: str, key_type: str) -> PrivateKey:
    if key_type == "ecdsa":
        return PrivateKey.from_string_ecdsa(raw)
    return PrivateKey.from_string_ed25519(raw)


class _HederaSubscription:
    """Adapts the SDK's subscription handle to SubscriptionHandle."""

    def __init__(self, handle: Any) -> None:
        self._handle = handle

    def unsubscribe(self) -> None:
        self._handle.cancel()


class HederaClient:
    """LedgerClient talking to a Hedera network through hiero-sdk-python."""

    def __init__(self, sdk_client: Client, operator_id: AccountId, operator_key: PrivateKey) -> None:
        self._client = sdk_client
        self._operator_id = operator_id
        self._operator_key = operator_key

    @classmethod
    def from_config(cls, config: AppConfig) -> "HederaClient":
        """Build a client for config.network with operator credentials from the environment.

        Raises:
            ConfigurationError: Operator credentials are missing.
        """
        credentials = get_operator_credentials(config)
        operator_id = AccountId.from_string(credentials.account_id)
        operator_key = _parse_private_key(credentials.private_key, credentials.key_type)

        sdk_client = Client(Network(network=config.network.name))
        sdk_client.set_operator(operator_id, operator_key)
        logger.info("Connected to %s as operator %s", config.network.name, operator_id)
        return cls(sdk_client, operator_id, operator_key)

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    @property
    def operator_account_id(self) -> str:
        return str(self._operator_id)

    @property
    def operator_key(self) -> PrivateKey:
        return self._operator_key

    def generate_key(self) -> PrivateKey:
        return PrivateKey.generate_ed25519()

    def threshold_key(self, keys: Sequence[Any], threshold: int) -> Any:
        from hiero_sdk_python.crypto.key_list import KeyList

        return KeyList([_public(key) for key in keys], threshold=threshold)

    # ------------------------------------------------------------------
    # Blocking helpers (run on worker threads)
    # ------------------------------------------------------------------

    def _execute(self, transaction: Any, signers: Sequence[Any] = ()) -> tuple[Any, Receipt]:
        """Freeze, sign, execute and wait for the receipt.

        execute() only adds the operator signature when the operator pays,
        so every key passed in is signed with here, the operator's included.
        """
        transaction.freeze_with(self._client)
        for key in signers:
            transaction.sign(key)
        transaction_id = _id_or_none(transaction.transaction_id)
        try:
            receipt = transaction.execute(self._client)
        except (PrecheckError, ReceiptStatusError) as exc:
            status = _status_name(exc.status)
            logger.warning("Transaction %s rejected with %s", transaction_id, status)
            return transaction, Receipt(status=status, transaction_id=transaction_id)

        return transaction, Receipt(
            status=_status_name(receipt.status),
            transaction_id=transaction_id,
            account_id=_id_or_none(getattr(receipt, "account_id", None)),
            token_id=_id_or_none(getattr(receipt, "token_id", None)),
            topic_id=_id_or_none(getattr(receipt, "topic_id", None)),
        )

    async def _submit(self, transaction: Any, signers: Sequence[Any] = ()) -> Receipt:
        _, receipt = await asyncio.to_thread(self._execute, transaction, signers)
        return receipt

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def create_account(
        self,
        key: Any,
        initial_balance: Decimal,
        max_token_associations: int,
    ) -> Receipt:
        transaction = (
            AccountCreateTransaction()
            .set_key(_public(key))
            .set_initial_balance(Hbar(initial_balance))
            .set_max_automatic_token_associations(max_token_associations)
        )
        return await self._submit(transaction)

    async def get_account_balance(self, account_id: str) -> AccountBalance:
        query = CryptoGetAccountBalanceQuery(account_id=AccountId.from_string(account_id))
        balance = await asyncio.to_thread(query.execute, self._client)
        tokens = {str(token_id): int(amount) for token_id, amount in (balance.token_balances or {}).items()}
        return AccountBalance(
            hbars=Decimal(balance.hbars.to_tinybars()) / TINYBARS_PER_HBAR,
            tokens=tokens,
        )

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    async def create_token(self, spec: TokenSpec, signers: Sequence[Any]) -> Receipt:
        transaction = (
            TokenCreateTransaction()
            .set_token_name(spec.name)
            .set_token_symbol(spec.symbol)
            .set_decimals(spec.decimals)
            .set_initial_supply(spec.initial_supply)
            .set_treasury_account_id(AccountId.from_string(spec.treasury_account_id))
            .set_token_type(TokenType.FUNGIBLE_COMMON)
        )
        if spec.max_supply is not None:
            transaction.set_supply_type(SupplyType.FINITE).set_max_supply(spec.max_supply)
        else:
            transaction.set_supply_type(SupplyType.INFINITE)
        if spec.supply_key is not None:
            transaction.set_supply_key(spec.supply_key)
        if spec.admin_key is not None:
            transaction.set_admin_key(spec.admin_key)
        return await self._submit(transaction, signers)

    async def mint_token(self, token_id: str, amount: int, signers: Sequence[Any]) -> Receipt:
        transaction = (
            TokenMintTransaction()
            .set_token_id(TokenId.from_string(token_id))
            .set_amount(amount)
        )
        return await self._submit(transaction, signers)

    async def get_token_info(self, token_id: str) -> TokenInfo:
        query = TokenInfoQuery().set_token_id(TokenId.from_string(token_id))
        info = await asyncio.to_thread(query.execute, self._client)
        return TokenInfo(
            token_id=token_id,
            name=info.name,
            symbol=info.symbol,
            decimals=int(info.decimals),
            total_supply=int(info.total_supply),
            treasury_account_id=_id_or_none(info.treasury),
            max_supply=int(info.max_supply) if info.max_supply else None,
        )

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def freeze_transfer(
        self,
        token_id: str,
        legs: Sequence[tuple[str, int]],
        payer_account_id: str | None = None,
    ) -> bytes:
        token = TokenId.from_string(token_id)
        transaction = TransferTransaction()
        for account_id, amount in legs:
            transaction.add_token_transfer(token, AccountId.from_string(account_id), amount)
        # The account named in the transaction id pays the fee
        payer = AccountId.from_string(payer_account_id) if payer_account_id else self._operator_id
        transaction.set_transaction_id(TransactionId.generate(payer))
        transaction.freeze_with(self._client)
        return transaction.to_bytes()

    def sign_transfer(self, frozen: bytes, key: Any) -> bytes:
        transaction = Transaction.from_bytes(frozen)
        transaction.sign(key)
        return transaction.to_bytes()

    def transfer_signed_by(self, frozen: bytes, key: Any) -> bool:
        return Transaction.from_bytes(frozen).is_signed_by(_public(key))

    async def execute_transfer(self, frozen: bytes) -> Receipt:
        return await self._submit(Transaction.from_bytes(frozen))

    # ------------------------------------------------------------------
    # Topics
    # ------------------------------------------------------------------

    async def create_topic(self, memo: str, submit_key: Any) -> Receipt:
        transaction = TopicCreateTransaction().set_memo(memo).set_submit_key(_public(submit_key))
        return await self._submit(transaction)

    async def publish_message(
        self,
        topic_id: str,
        message: str,
        signers: Sequence[Any] = (),
    ) -> tuple[Receipt, datetime]:
        transaction = (
            TopicMessageSubmitTransaction()
            .set_topic_id(TopicId.from_string(topic_id))
            .set_message(message)
        )
        submitted, receipt = await asyncio.to_thread(self._execute, transaction, signers)
        return receipt, _timestamp_to_datetime(submitted.transaction_id.valid_start)

    def subscribe(
        self,
        topic_id: str,
        start_time: datetime,
        on_message: MessageCallback,
        on_error: ErrorCallback,
    ) -> _HederaSubscription:
        def deliver(message: Any) -> None:
            on_message(
                TopicMessage(
                    contents=bytes(message.contents),
                    consensus_timestamp=message.consensus_timestamp,
                    sequence_number=int(message.sequence_number or 0),
                )
            )

        query = TopicMessageQuery(
            topic_id=TopicId.from_string(topic_id),
            start_time=start_time,
        )
        handle = query.subscribe(self._client, on_message=deliver, on_error=on_error)
        return _HederaSubscription(handle)
