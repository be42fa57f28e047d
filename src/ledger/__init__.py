"""Ledger services used by the behaviour scenarios.

HederaClient lives in src.ledger.hedera_client and is imported on demand,
so everything here works without a network or the SDK installed.
"""

from .accounts import (
    Account,
    create_account,
    get_hbar_balance,
    get_token_balance,
    operator_account,
    verify_account_balance,
)
from .client import (
    AccountBalance,
    LedgerClient,
    Receipt,
    SubscriptionHandle,
    TokenInfo,
    TokenSpec,
    TopicMessage,
    ensure_success,
)
from .context import ScenarioContext
from .errors import (
    AlreadySubmittedError,
    ConfigurationError,
    ErrorCategory,
    ErrorCode,
    HarnessError,
    PreconditionError,
    StreamError,
    SubscriptionTimeout,
    TransactionFailed,
    ValidationError,
)
from .subscription import SubscriptionState, TopicSubscription, open_subscription, wait_for_message
from .tokens import create_fixed_supply_token, create_mintable_token, get_token_info, mint_tokens
from .topics import create_topic, make_threshold_key, publish_message
from .transfers import (
    PendingTransfer,
    TransferLeg,
    TransferState,
    build_transfer,
    create_token_transfer,
    submit_transfer,
)

__all__ = [
    # Accounts
    "Account",
    "create_account",
    "get_hbar_balance",
    "get_token_balance",
    "operator_account",
    "verify_account_balance",
    # Client seam
    "AccountBalance",
    "LedgerClient",
    "Receipt",
    "SubscriptionHandle",
    "TokenInfo",
    "TokenSpec",
    "TopicMessage",
    "ensure_success",
    # Scenario state
    "ScenarioContext",
    # Errors
    "AlreadySubmittedError",
    "ConfigurationError",
    "ErrorCategory",
    "ErrorCode",
    "HarnessError",
    "PreconditionError",
    "StreamError",
    "SubscriptionTimeout",
    "TransactionFailed",
    "ValidationError",
    # Subscriptions
    "SubscriptionState",
    "TopicSubscription",
    "open_subscription",
    "wait_for_message",
    # Tokens and topics
    "create_fixed_supply_token",
    "create_mintable_token",
    "get_token_info",
    "mint_tokens",
    "create_topic",
    "make_threshold_key",
    "publish_message",
    # Transfers
    "PendingTransfer",
    "TransferLeg",
    "TransferState",
    "build_transfer",
    "create_token_transfer",
    "submit_transfer",
]
