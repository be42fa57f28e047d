"""Consensus topics: creation, threshold submit keys and publishing."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Sequence

from .client import LedgerClient, ensure_success
from .errors import ErrorCode, TransactionFailed, ValidationError
from .logger import log_event

logger = logging.getLogger(__name__)


def make_threshold_key(client: LedgerClient, keys: Sequence[Any], threshold: int) -> Any:
    """An M-of-N key list over the public halves of keys.

    Raises:
        ValidationError: threshold is not between 1 and len(keys).
    """
    if not keys:
        raise ValidationError("A threshold key needs at least one key", code=ErrorCode.INVALID_ARGUMENT)
    if not 1 <= threshold <= len(keys):
        raise ValidationError(
            f"Threshold must be between 1 and {len(keys)}, got {threshold}",
            code=ErrorCode.INVALID_ARGUMENT,
        )
    logger.info("Threshold key %d/%d created", threshold, len(keys))
    return client.threshold_key(keys, threshold)


async def create_topic(client: LedgerClient, memo: str, submit_key: Any) -> str:
    """Create a topic only holders of submit_key can publish to; returns its id."""
    receipt = await client.create_topic(memo, submit_key)
    ensure_success(receipt, action="topic create")
    if receipt.topic_id is None:
        raise TransactionFailed(
            receipt.status,
            action="topic create (no topic id in receipt)",
            code=ErrorCode.MISSING_RECEIPT_FIELD,
        )
    log_event(logger, "topic_created", topic_id=receipt.topic_id, memo=memo)
    return receipt.topic_id


async def publish_message(
    client: LedgerClient,
    topic_id: str,
    message: str,
    signers: Sequence[Any] = (),
) -> datetime:
    """Publish message and return its valid-start time, the replay cursor for waiters."""
    receipt, valid_start = await client.publish_message(topic_id, message, signers)
    log_event(
        logger,
        "topic_message_published",
        topic_id=topic_id,
        status=receipt.status,
        valid_start=valid_start.isoformat(),
    )
    ensure_success(receipt, action=f"publish to topic {topic_id}")
    return valid_start
