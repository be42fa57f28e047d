"""The seam between scenario code and a ledger network.

Services in this package never touch the SDK directly. They receive a
LedgerClient (constructed once, passed explicitly) and exchange the plain
records below with it. HederaClient implements the protocol against a real
network; tests use an in-memory fake.

Identifiers (accounts, tokens, topics) cross the seam as strings in
shard.realm.num form. Keys are opaque: whatever generate_key() returns is
what the client expects back when signing. Transfers cross it as frozen
transaction bytes, so only signatures travel between parties, never keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Protocol, Sequence, runtime_checkable

from .errors import TransactionFailed

STATUS_SUCCESS = "SUCCESS"


@dataclass(frozen=True)
class Receipt:
    """Terminal outcome of a submitted transaction."""

    status: str
    transaction_id: str | None = None
    account_id: str | None = None
    token_id: str | None = None
    topic_id: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS


@dataclass(frozen=True)
class AccountBalance:
    """Native balance (in hbar) plus token balances keyed by token id."""

    hbars: Decimal
    tokens: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class TokenSpec:
    """Everything needed to create a fungible token.

    supply_key=None makes the supply fixed: nothing can ever mint.
    """

    name: str
    symbol: str
    decimals: int
    initial_supply: int
    treasury_account_id: str
    supply_key: Any = None
    admin_key: Any = None
    max_supply: int | None = None


@dataclass(frozen=True)
class TokenInfo:
    token_id: str
    name: str
    symbol: str
    decimals: int
    total_supply: int
    treasury_account_id: str | None
    max_supply: int | None = None


@dataclass(frozen=True)
class TopicMessage:
    """One message read back from a topic stream."""

    contents: bytes
    consensus_timestamp: datetime
    sequence_number: int = 0

    def text(self) -> str:
        return self.contents.decode("utf-8", errors="replace")


MessageCallback = Callable[[TopicMessage], None]
ErrorCallback = Callable[[BaseException], None]


@runtime_checkable
class SubscriptionHandle(Protocol):
    """A live topic subscription. unsubscribe() stops message delivery."""

    def unsubscribe(self) -> None:
        ...


@runtime_checkable
class LedgerClient(Protocol):
    """Operations the scenarios need from a ledger network.

    Every coroutine suspends until the network answers; transaction
    methods return the receipt rather than raising on non-success status
    so callers decide what a failure means.
    """

    @property
    def operator_account_id(self) -> str:
        """Account that pays fees and signs by default."""
        ...

    @property
    def operator_key(self) -> Any:
        """Private key of the operator account."""
        ...

    def generate_key(self) -> Any:
        """Return a fresh ED25519 private key."""
        ...

    def threshold_key(self, keys: Sequence[Any], threshold: int) -> Any:
        """Return an M-of-N key list built from the public halves of keys."""
        ...

    async def create_account(
        self,
        key: Any,
        initial_balance: Decimal,
        max_token_associations: int,
    ) -> Receipt:
        ...

    async def get_account_balance(self, account_id: str) -> AccountBalance:
        ...

    async def create_token(self, spec: TokenSpec, signers: Sequence[Any]) -> Receipt:
        ...

    async def mint_token(self, token_id: str, amount: int, signers: Sequence[Any]) -> Receipt:
        ...

    async def get_token_info(self, token_id: str) -> TokenInfo:
        ...

    def freeze_transfer(
        self,
        token_id: str,
        legs: Sequence[tuple[str, int]],
        payer_account_id: str | None = None,
    ) -> bytes:
        """Build and freeze a token transfer, returning its unsigned transaction bytes.

        The fee payer is fixed here. payer_account_id shifts the fee off the
        operator and becomes part of the body every signature covers.
        """
        ...

    def sign_transfer(self, frozen: bytes, key: Any) -> bytes:
        """Return frozen with key's signature added. Signing twice is a no-op."""
        ...

    def transfer_signed_by(self, frozen: bytes, key: Any) -> bool:
        ...

    async def execute_transfer(self, frozen: bytes) -> Receipt:
        """Submit signed transfer bytes as they are; nothing is signed on the way out
        except the operator's signature when the operator is the payer."""
        ...

    async def create_topic(self, memo: str, submit_key: Any) -> Receipt:
        ...

    async def publish_message(
        self,
        topic_id: str,
        message: str,
        signers: Sequence[Any] = (),
    ) -> tuple[Receipt, datetime]:
        """Publish and return the receipt plus the transaction's valid-start time."""
        ...

    def subscribe(
        self,
        topic_id: str,
        start_time: datetime,
        on_message: MessageCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle:
        """Stream messages at or after start_time.

        Callbacks may fire on a thread other than the caller's.
        """
        ...


def ensure_success(receipt: Receipt, action: str) -> Receipt:
    """Return the receipt, or raise TransactionFailed for any other status."""
    if not receipt.succeeded:
        raise TransactionFailed(
            receipt.status, action=action, transaction_id=receipt.transaction_id
        )
    return receipt
