"""Tests for multi-party token transfers: building, signing and submission."""

from __future__ import annotations

from decimal import Decimal

import pytest
import pytest_asyncio

from src.ledger.accounts import Account, create_account, get_hbar_balance, get_token_balance
from src.ledger.errors import AlreadySubmittedError, ErrorCode, TransactionFailed, ValidationError
from src.ledger.tokens import create_mintable_token
from src.ledger.transfers import (
    PendingTransfer,
    TransferLeg,
    TransferState,
    build_transfer,
    create_token_transfer,
    submit_transfer,
)
from tests.testing_utils import FakeKey, FakeLedgerClient

TOKEN = "0.0.5005"


class TestBuildTransfer:
    """Descriptor validation happens before anything is produced."""

    def test_two_party_transfer_is_frozen(self, fake_client: FakeLedgerClient) -> None:
        pending = create_token_transfer(fake_client, TOKEN, "0.0.1", "0.0.2", 10)
        assert pending.state is TransferState.FROZEN
        assert pending.legs == (TransferLeg("0.0.1", -10), TransferLeg("0.0.2", 10))
        assert pending.debited_accounts == ["0.0.1"]

    def test_four_party_transfer(self, fake_client: FakeLedgerClient) -> None:
        pending = build_transfer(
            fake_client, TOKEN, [("0.0.1", -10), ("0.0.2", -5), ("0.0.3", 9), ("0.0.4", 6)]
        )
        assert pending.net_amount == 0
        assert pending.debited_accounts == ["0.0.1", "0.0.2"]

    def test_non_zero_sum_rejected(self, fake_client: FakeLedgerClient) -> None:
        """Legs that don't net to zero never produce a transfer."""
        with pytest.raises(ValidationError) as exc_info:
            build_transfer(fake_client, TOKEN, [("0.0.1", -10), ("0.0.2", 9)])
        assert exc_info.value.code is ErrorCode.NON_ZERO_SUM
        assert "sum to zero" in str(exc_info.value)

    def test_single_leg_rejected(self, fake_client: FakeLedgerClient) -> None:
        with pytest.raises(ValidationError):
            build_transfer(fake_client, TOKEN, [("0.0.1", 0)])

    @pytest.mark.parametrize("amount", [1.5, "10", True, None])
    def test_non_integer_amount_rejected(self, fake_client: FakeLedgerClient, amount: object) -> None:
        with pytest.raises(ValidationError) as exc_info:
            build_transfer(fake_client, TOKEN, [("0.0.1", amount), ("0.0.2", 10)])
        assert exc_info.value.code is ErrorCode.INVALID_AMOUNT

    @pytest.mark.parametrize("amount", [0, -5])
    def test_two_party_amount_must_be_positive(self, fake_client: FakeLedgerClient, amount: int) -> None:
        with pytest.raises(ValidationError):
            create_token_transfer(fake_client, TOKEN, "0.0.1", "0.0.2", amount)

    def test_accepts_transfer_legs(self, fake_client: FakeLedgerClient) -> None:
        pending = build_transfer(fake_client, TOKEN, [TransferLeg("0.0.1", -3), TransferLeg("0.0.2", 3)])
        assert pending.net_amount == 0

    def test_payer_fixed_at_freeze(self, fake_client: FakeLedgerClient) -> None:
        pending = create_token_transfer(
            fake_client, TOKEN, "0.0.1", "0.0.2", 1, payer_account_id="0.0.2"
        )
        assert pending.payer_account_id == "0.0.2"
        assert b"0.0.2@" in pending.transaction_bytes


class TestPendingTransfer:
    """Lifecycle: BUILDING -> FROZEN -> SUBMITTED."""

    def test_cannot_sign_before_freeze(self) -> None:
        pending = PendingTransfer(TOKEN).add_leg("0.0.1", -1).add_leg("0.0.2", 1)
        with pytest.raises(ValidationError) as exc_info:
            pending.sign(FakeKey("a"))
        assert exc_info.value.code is ErrorCode.NOT_FROZEN

    def test_no_bytes_before_freeze(self) -> None:
        pending = PendingTransfer(TOKEN).add_leg("0.0.1", -1).add_leg("0.0.2", 1)
        with pytest.raises(ValidationError):
            pending.transaction_bytes
        assert not pending.is_signed_by(FakeKey("a"))

    def test_cannot_add_leg_after_freeze(self, fake_client: FakeLedgerClient) -> None:
        pending = create_token_transfer(fake_client, TOKEN, "0.0.1", "0.0.2", 1)
        with pytest.raises(ValidationError) as exc_info:
            pending.add_leg("0.0.3", 0)
        assert exc_info.value.code is ErrorCode.ALREADY_FROZEN

    def test_signing_adds_signatures_not_keys(self, fake_client: FakeLedgerClient) -> None:
        """The transfer handed between parties carries signed bytes only."""
        pending = create_token_transfer(fake_client, TOKEN, "0.0.1", "0.0.2", 1)
        unsigned = pending.transaction_bytes
        first, second = FakeKey("a"), FakeKey("b")

        pending.sign(first).sign(second)

        assert pending.transaction_bytes != unsigned
        assert pending.is_signed_by(first)
        assert pending.is_signed_by(second)
        assert not pending.is_signed_by(FakeKey("c"))
        assert first not in vars(pending).values()
        assert second not in vars(pending).values()

    def test_signing_twice_is_a_no_op(self, fake_client: FakeLedgerClient) -> None:
        pending = create_token_transfer(fake_client, TOKEN, "0.0.1", "0.0.2", 1)
        key = FakeKey("a")
        once = pending.sign(key).transaction_bytes
        assert pending.sign(key).transaction_bytes == once

    def test_cannot_sign_after_submission(self, fake_client: FakeLedgerClient) -> None:
        pending = create_token_transfer(fake_client, TOKEN, "0.0.1", "0.0.2", 1)
        pending.mark_submitted()
        with pytest.raises(AlreadySubmittedError):
            pending.sign(FakeKey("a"))

    def test_repr_shows_legs(self, fake_client: FakeLedgerClient) -> None:
        pending = create_token_transfer(fake_client, TOKEN, "0.0.1", "0.0.2", 7)
        assert "0.0.1:-7" in repr(pending)
        assert "frozen" in repr(pending)


@pytest_asyncio.fixture
async def funded(fake_client: FakeLedgerClient) -> tuple[str, list[Account]]:
    """A treasury token and four accounts, the first two holding 100 units each."""
    treasury = Account(fake_client.operator_account_id, fake_client.operator_key)
    token_id = await create_mintable_token(fake_client, "Test Token", "HTT", 2, 1000, treasury)
    accounts = [await create_account(fake_client, 10) for _ in range(4)]
    for account in accounts[:2]:
        pending = create_token_transfer(fake_client, token_id, treasury.account_id, account.account_id, 100)
        await submit_transfer(fake_client, pending, treasury.private_key)
    return token_id, accounts


class TestSubmitTransfer:
    """Submission against the in-memory ledger."""

    @pytest.mark.asyncio
    async def test_two_party_transfer_moves_tokens(
        self, fake_client: FakeLedgerClient, funded: tuple[str, list[Account]]
    ) -> None:
        token_id, (first, second, _, _) = funded
        pending = create_token_transfer(fake_client, token_id, first.account_id, second.account_id, 10)

        receipt = await submit_transfer(fake_client, pending, first.private_key)

        assert receipt.succeeded
        assert await get_token_balance(fake_client, first.account_id, token_id) == 90
        assert await get_token_balance(fake_client, second.account_id, token_id) == 110

    @pytest.mark.asyncio
    async def test_four_party_transfer_credits_exactly(
        self, fake_client: FakeLedgerClient, funded: tuple[str, list[Account]]
    ) -> None:
        """Third and fourth accounts end at prior balance plus their credit."""
        token_id, (first, second, third, fourth) = funded
        pending = build_transfer(
            fake_client,
            token_id,
            [
                (first.account_id, -10),
                (second.account_id, -5),
                (third.account_id, 9),
                (fourth.account_id, 6),
            ],
        )
        pending.sign(second.private_key)

        await submit_transfer(fake_client, pending, first.private_key)

        assert await get_token_balance(fake_client, first.account_id, token_id) == 90
        assert await get_token_balance(fake_client, second.account_id, token_id) == 95
        assert await get_token_balance(fake_client, third.account_id, token_id) == 9
        assert await get_token_balance(fake_client, fourth.account_id, token_id) == 6

    @pytest.mark.asyncio
    async def test_missing_debtor_signature_fails(
        self, fake_client: FakeLedgerClient, funded: tuple[str, list[Account]]
    ) -> None:
        """Without the second account's signature nothing moves."""
        token_id, (first, second, third, _) = funded
        pending = build_transfer(
            fake_client,
            token_id,
            [(first.account_id, -10), (second.account_id, -5), (third.account_id, 15)],
        )

        with pytest.raises(TransactionFailed) as exc_info:
            await submit_transfer(fake_client, pending, first.private_key)

        assert exc_info.value.status == "INVALID_SIGNATURE"
        assert await get_token_balance(fake_client, first.account_id, token_id) == 100
        assert await get_token_balance(fake_client, third.account_id, token_id) == 0

    @pytest.mark.asyncio
    async def test_recipient_pays_fee(
        self, fake_client: FakeLedgerClient, funded: tuple[str, list[Account]]
    ) -> None:
        """Debtor signs, recipient submits; only the recipient's hbar goes down."""
        token_id, (first, second, _, _) = funded
        first_before = await get_hbar_balance(fake_client, first.account_id)
        second_before = await get_hbar_balance(fake_client, second.account_id)

        pending = create_token_transfer(
            fake_client, token_id, second.account_id, first.account_id, 10,
            payer_account_id=first.account_id,
        )
        pending.sign(second.private_key)
        await submit_transfer(fake_client, pending, first.private_key)

        assert await get_hbar_balance(fake_client, first.account_id) < first_before
        assert await get_hbar_balance(fake_client, second.account_id) == second_before
        assert fake_client.transfers[-1][2] == first.account_id

    @pytest.mark.asyncio
    async def test_payer_must_sign(
        self, fake_client: FakeLedgerClient, funded: tuple[str, list[Account]]
    ) -> None:
        token_id, (first, second, _, _) = funded
        pending = create_token_transfer(
            fake_client, token_id, first.account_id, second.account_id, 1,
            payer_account_id=second.account_id,
        )

        with pytest.raises(TransactionFailed) as exc_info:
            await submit_transfer(fake_client, pending, first.private_key)
        assert exc_info.value.status == "INVALID_SIGNATURE"

    @pytest.mark.asyncio
    async def test_operator_debit_with_another_payer(
        self, fake_client: FakeLedgerClient, funded: tuple[str, list[Account]]
    ) -> None:
        """The operator only signs implicitly when it pays; otherwise it signs like any debtor."""
        token_id, (first, _, _, _) = funded
        operator = fake_client.operator_account_id

        unsigned = create_token_transfer(
            fake_client, token_id, operator, first.account_id, 5, payer_account_id=first.account_id
        )
        with pytest.raises(TransactionFailed) as exc_info:
            await submit_transfer(fake_client, unsigned, first.private_key)
        assert exc_info.value.status == "INVALID_SIGNATURE"

        signed = create_token_transfer(
            fake_client, token_id, operator, first.account_id, 5, payer_account_id=first.account_id
        )
        signed.sign(fake_client.operator_key)
        await submit_transfer(fake_client, signed, first.private_key)

        assert await get_token_balance(fake_client, first.account_id, token_id) == 105
        assert fake_client.transfers[-1][2] == first.account_id

    @pytest.mark.asyncio
    async def test_insufficient_token_balance(
        self, fake_client: FakeLedgerClient, funded: tuple[str, list[Account]]
    ) -> None:
        token_id, (first, _, third, _) = funded
        pending = create_token_transfer(fake_client, token_id, first.account_id, third.account_id, 101)

        with pytest.raises(TransactionFailed) as exc_info:
            await submit_transfer(fake_client, pending, first.private_key)
        assert exc_info.value.status == "INSUFFICIENT_TOKEN_BALANCE"

    @pytest.mark.asyncio
    async def test_second_submission_rejected(
        self, fake_client: FakeLedgerClient, funded: tuple[str, list[Account]]
    ) -> None:
        token_id, (first, second, _, _) = funded
        pending = create_token_transfer(fake_client, token_id, first.account_id, second.account_id, 10)
        await submit_transfer(fake_client, pending, first.private_key)

        with pytest.raises(AlreadySubmittedError):
            await submit_transfer(fake_client, pending, first.private_key)
        assert await get_token_balance(fake_client, second.account_id, token_id) == 110

    @pytest.mark.asyncio
    async def test_transfer_consumed_when_network_fails(
        self, fake_client: FakeLedgerClient, funded: tuple[str, list[Account]]
    ) -> None:
        """A transport error still consumes the pending transfer."""
        token_id, (first, second, _, _) = funded
        pending = create_token_transfer(fake_client, token_id, first.account_id, second.account_id, 10)
        fake_client.transfer_error = ConnectionError("node unreachable")

        with pytest.raises(ConnectionError):
            await submit_transfer(fake_client, pending, first.private_key)

        assert pending.state is TransferState.SUBMITTED
        with pytest.raises(AlreadySubmittedError):
            await submit_transfer(fake_client, pending, first.private_key)

    @pytest.mark.asyncio
    async def test_fee_charged_to_operator_by_default(
        self, fake_client: FakeLedgerClient, funded: tuple[str, list[Account]]
    ) -> None:
        token_id, (first, second, _, _) = funded
        operator_before = fake_client.accounts[fake_client.operator_account_id].hbars
        pending = create_token_transfer(fake_client, token_id, first.account_id, second.account_id, 1)

        await submit_transfer(fake_client, pending, first.private_key)

        assert fake_client.accounts[fake_client.operator_account_id].hbars < operator_before
        assert fake_client.accounts[first.account_id].hbars == Decimal(10)
