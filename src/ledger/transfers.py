"""Multi-party fungible token transfers.

A transfer is built, frozen, signed, then submitted exactly once:

    BUILDING --freeze()--> FROZEN --submit_transfer()--> SUBMITTED

Building validates the transfer descriptor: at least two legs, integer
deltas (negative = debit, positive = credit) and a zero sum. Freezing asks
the client for the transaction bytes, with the fee payer fixed at that
point. From then on the pending transfer only holds those bytes and the
signatures added to them; keys are used to sign and then let go.

Every participant whose balance goes down must sign. Signatures can be
gathered by different parties at different times and the frozen transfer
handed to yet another party to submit and pay the fee:

    pending = create_token_transfer(
        client, token_id, second.account_id, first.account_id, 10,
        payer_account_id=first.account_id,
    )
    pending.sign(second.private_key)                          # debited party signs
    await submit_transfer(client, pending, first.private_key)  # payer submits
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from .client import LedgerClient, Receipt, ensure_success
from .errors import AlreadySubmittedError, ErrorCode, ValidationError
from .logger import log_event

logger = logging.getLogger(__name__)


class TransferState(str, Enum):
    BUILDING = "building"
    FROZEN = "frozen"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class TransferLeg:
    """One participant's signed change in token balance."""

    account_id: str
    amount: int

    @property
    def is_debit(self) -> bool:
        return self.amount < 0


LegLike = TransferLeg | tuple[str, int]


def _to_leg(leg: LegLike) -> TransferLeg:
    if isinstance(leg, TransferLeg):
        account_id, amount = leg.account_id, leg.amount
    else:
        account_id, amount = leg
    # bool is an int subclass; True is not an amount
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(
            f"Transfer amount for {account_id} must be an integer, got {amount!r}",
            code=ErrorCode.INVALID_AMOUNT,
            account_id=account_id,
        )
    if not account_id:
        raise ValidationError("Transfer leg has no account id", code=ErrorCode.INVALID_ARGUMENT)
    return TransferLeg(account_id=str(account_id), amount=amount)


class PendingTransfer:
    """An unsubmitted, possibly partially-signed token transfer."""

    def __init__(self, token_id: str) -> None:
        self.token_id = token_id
        self.state = TransferState.BUILDING
        self.payer_account_id: str | None = None
        self._legs: list[TransferLeg] = []
        self._client: LedgerClient | None = None
        self._frozen: bytes | None = None

    @property
    def legs(self) -> tuple[TransferLeg, ...]:
        return tuple(self._legs)

    @property
    def transaction_bytes(self) -> bytes:
        """The frozen transaction with every signature gathered so far."""
        if self._frozen is None:
            raise ValidationError(
                "Transfer has not been frozen yet", code=ErrorCode.NOT_FROZEN
            )
        return self._frozen

    @property
    def debited_accounts(self) -> list[str]:
        """Participants who must sign before the ledger accepts the transfer."""
        return [leg.account_id for leg in self._legs if leg.is_debit]

    @property
    def net_amount(self) -> int:
        return sum(leg.amount for leg in self._legs)

    def add_leg(self, account_id: str, amount: int) -> "PendingTransfer":
        if self.state is not TransferState.BUILDING:
            raise ValidationError(
                f"Cannot add a leg to a {self.state.value} transfer",
                code=ErrorCode.ALREADY_FROZEN,
            )
        self._legs.append(_to_leg((account_id, amount)))
        return self

    def freeze(
        self, client: LedgerClient, payer_account_id: str | None = None
    ) -> "PendingTransfer":
        """Validate the descriptor, lock the legs and the fee payer.

        Raises:
            ValidationError: Fewer than two legs, or deltas that don't sum to zero.
        """
        if self.state is not TransferState.BUILDING:
            raise ValidationError(
                f"Transfer is already {self.state.value}", code=ErrorCode.ALREADY_FROZEN
            )
        if len(self._legs) < 2:
            raise ValidationError(
                f"A transfer needs at least two participants, got {len(self._legs)}",
                code=ErrorCode.INVALID_ARGUMENT,
            )
        total = self.net_amount
        if total != 0:
            raise ValidationError(
                f"Transfer amounts must sum to zero, got {total}",
                code=ErrorCode.NON_ZERO_SUM,
                sum=total,
            )
        self._frozen = client.freeze_transfer(
            self.token_id,
            [(leg.account_id, leg.amount) for leg in self._legs],
            payer_account_id=payer_account_id,
        )
        self._client = client
        self.payer_account_id = payer_account_id
        self.state = TransferState.FROZEN
        return self

    def sign(self, key: Any) -> "PendingTransfer":
        """Add key's signature. Only frozen, unsubmitted transfers can be signed."""
        if self.state is TransferState.BUILDING:
            raise ValidationError(
                "Transfer must be frozen before it is signed", code=ErrorCode.NOT_FROZEN
            )
        if self.state is TransferState.SUBMITTED:
            raise AlreadySubmittedError("Transfer was already submitted; it cannot be re-signed")
        assert self._client is not None
        self._frozen = self._client.sign_transfer(self.transaction_bytes, key)
        return self

    def is_signed_by(self, key: Any) -> bool:
        if self._client is None or self._frozen is None:
            return False
        return self._client.transfer_signed_by(self._frozen, key)

    def mark_submitted(self) -> None:
        if self.state is TransferState.SUBMITTED:
            raise AlreadySubmittedError(
                f"Transfer of {self.token_id} was already submitted"
            )
        if self.state is not TransferState.FROZEN:
            raise ValidationError(
                "Transfer must be frozen before it is submitted", code=ErrorCode.NOT_FROZEN
            )
        self.state = TransferState.SUBMITTED

    def __repr__(self) -> str:
        legs = ", ".join(f"{leg.account_id}:{leg.amount:+d}" for leg in self._legs)
        return f"PendingTransfer({self.token_id}, [{legs}], {self.state.value})"


def build_transfer(
    client: LedgerClient,
    token_id: str,
    legs: Iterable[LegLike],
    payer_account_id: str | None = None,
) -> PendingTransfer:
    """Register every leg, validate the zero sum, and freeze with the given payer.

    Raises:
        ValidationError: On non-integer amounts, fewer than two legs or a
            non-zero sum. No transfer is produced.
    """
    pending = PendingTransfer(token_id)
    for leg in legs:
        leg = _to_leg(leg)
        pending.add_leg(leg.account_id, leg.amount)
    return pending.freeze(client, payer_account_id=payer_account_id)


def create_token_transfer(
    client: LedgerClient,
    token_id: str,
    from_account_id: str,
    to_account_id: str,
    amount: int,
    payer_account_id: str | None = None,
) -> PendingTransfer:
    """Frozen two-party transfer of amount units."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError(
            f"Transfer amount must be a positive integer, got {amount!r}",
            code=ErrorCode.INVALID_AMOUNT,
        )
    return build_transfer(
        client,
        token_id,
        [(from_account_id, -amount), (to_account_id, amount)],
        payer_account_id=payer_account_id,
    )


async def submit_transfer(
    client: LedgerClient,
    pending: PendingTransfer,
    submitter_key: Any,
) -> Receipt:
    """Sign with the submitting party's key, execute, and await the receipt.

    The pending transfer is consumed even if the network call fails, so a
    second submission always raises AlreadySubmittedError.

    Raises:
        AlreadySubmittedError: The transfer was submitted before.
        TransactionFailed: The ledger returned a non-success status.
    """
    if pending.state is TransferState.SUBMITTED:
        raise AlreadySubmittedError(f"Transfer of {pending.token_id} was already submitted")
    pending.sign(submitter_key)
    pending.mark_submitted()

    receipt = await client.execute_transfer(pending.transaction_bytes)
    log_event(
        logger,
        "transfer_submitted",
        token_id=pending.token_id,
        legs=[(leg.account_id, leg.amount) for leg in pending.legs],
        payer=pending.payer_account_id or client.operator_account_id,
        status=receipt.status,
        transaction_id=receipt.transaction_id,
    )
    return ensure_success(receipt, action=f"transfer of {pending.token_id}")
