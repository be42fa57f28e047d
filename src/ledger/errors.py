"""Error taxonomy for ledger scenarios.

Every failure raised by this package is a HarnessError carrying a
machine-readable code, a category and optional details, so a failed
scenario reports the same shape whether the cause was a bad transfer
descriptor, a rejected transaction or a silent topic.

Nothing here retries. An error halts the scenario that raised it.

Usage:
    from src.ledger.errors import TransactionFailed

    if receipt.status != "SUCCESS":
        raise TransactionFailed(receipt.status, action="mint")
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Categories for error classification.

    - VALIDATION: Local precondition violated before anything hit the network
    - PRECONDITION: A step ran without the state an earlier step should leave
    - LEDGER: The network answered with a non-success status
    - SUBSCRIPTION: Waiting on a topic stream failed
    - CONFIGURATION: Missing or invalid settings
    """

    VALIDATION = "validation"
    PRECONDITION = "precondition"
    LEDGER = "ledger"
    SUBSCRIPTION = "subscription"
    CONFIGURATION = "configuration"


class ErrorCode(str, Enum):
    """Specific error codes for programmatic handling."""

    # Validation errors
    INVALID_ARGUMENT = "invalid_argument"
    INVALID_AMOUNT = "invalid_amount"
    NON_ZERO_SUM = "non_zero_sum"
    NOT_FROZEN = "not_frozen"
    ALREADY_FROZEN = "already_frozen"
    ALREADY_SUBMITTED = "already_submitted"
    INSUFFICIENT_BALANCE = "insufficient_balance"

    # Precondition errors
    MISSING_CONTEXT = "missing_context"

    # Ledger errors
    TRANSACTION_FAILED = "transaction_failed"
    MISSING_RECEIPT_FIELD = "missing_receipt_field"

    # Subscription errors
    TIMEOUT = "timeout"
    STREAM_ERROR = "stream_error"

    # Configuration errors
    NOT_CONFIGURED = "not_configured"


class HarnessError(Exception):
    """Base class for every error raised by the ledger package."""

    code: ErrorCode = ErrorCode.INVALID_ARGUMENT
    category: ErrorCategory = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        **details: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details: dict[str, Any] = dict(details)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for reporting."""
        result: dict[str, Any] = {
            "error": self.message,
            "code": self.code.value,
            "category": self.category.value,
        }
        if self.details:
            result["details"] = {k: str(v) for k, v in self.details.items()}
        return result


class ValidationError(HarnessError):
    """A local precondition was violated (e.g. transfer amounts don't net to zero)."""

    category = ErrorCategory.VALIDATION


class PreconditionError(ValidationError):
    """A step needs scenario state that no earlier step provided."""

    code = ErrorCode.MISSING_CONTEXT
    category = ErrorCategory.PRECONDITION

    def __init__(self, missing: list[str] | tuple[str, ...], step: str | None = None) -> None:
        names = ", ".join(missing)
        message = f"Scenario context is missing required value(s): {names}"
        if step:
            message = f"{step}: {message}"
        super().__init__(message, missing=list(missing))
        self.missing = list(missing)


class AlreadySubmittedError(ValidationError):
    """A pending transaction was handed to the network a second time."""

    code = ErrorCode.ALREADY_SUBMITTED


class TransactionFailed(HarnessError):
    """The ledger returned a terminal non-success status.

    This is a business failure (balance, supply, signature rules), as
    opposed to a transport failure, which propagates unchanged.
    """

    code = ErrorCode.TRANSACTION_FAILED
    category = ErrorCategory.LEDGER

    def __init__(self, status: str, action: str = "transaction", **details: Any) -> None:
        super().__init__(f"{action} failed with status {status}", status=status, **details)
        self.status = status
        self.action = action


class SubscriptionTimeout(HarnessError):
    """No matching message arrived within the subscription window."""

    code = ErrorCode.TIMEOUT
    category = ErrorCategory.SUBSCRIPTION


class StreamError(HarnessError):
    """The topic message stream failed underneath the waiter."""

    code = ErrorCode.STREAM_ERROR
    category = ErrorCategory.SUBSCRIPTION

    def __init__(self, cause: BaseException, topic_id: str | None = None) -> None:
        super().__init__(f"Topic stream failed: {cause}", topic_id=topic_id)
        self.cause = cause


class ConfigurationError(HarnessError):
    """Required settings are missing or unusable."""

    code = ErrorCode.NOT_CONFIGURED
    category = ErrorCategory.CONFIGURATION
