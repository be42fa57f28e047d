"""Wait for a specific message on a topic stream.

The SDK delivers topic messages through callbacks on its own threads. This
module funnels those callbacks (messages and stream errors alike) into one
asyncio queue, and races that queue against a single deadline:

    IDLE --subscribe--> SUBSCRIBED --+--> MATCHED     (expected payload seen)
                                     +--> TIMED_OUT   (window elapsed)
                                     +--> STREAM_ERROR (transport failed)

The deadline covers the whole wait, not each message. Non-matching
messages are logged and the wait continues. Whatever the outcome, the
SDK subscription is released exactly once, from a finally block.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import AsyncIterator

from .client import LedgerClient, SubscriptionHandle, TopicMessage
from .errors import StreamError, SubscriptionTimeout
from .logger import log_event

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class SubscriptionState(str, Enum):
    IDLE = "idle"
    SUBSCRIBED = "subscribed"
    MATCHED = "matched"
    TIMED_OUT = "timed_out"
    STREAM_ERROR = "stream_error"


class TopicSubscription:
    """One open topic stream feeding an asyncio queue.

    Callbacks may arrive on any thread; they are marshalled onto the
    owning loop. Deliveries after close() are dropped.
    """

    def __init__(self, client: LedgerClient, topic_id: str, start_time: datetime) -> None:
        self.client = client
        self.topic_id = topic_id
        self.start_time = start_time
        self.state = SubscriptionState.IDLE
        self.unsubscribe_calls = 0
        self._handle: SubscriptionHandle | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._inbox: asyncio.Queue[TopicMessage | StreamError] = asyncio.Queue()
        self._closed = False

    def open(self) -> None:
        self._loop = asyncio.get_running_loop()
        try:
            self._handle = self.client.subscribe(
                self.topic_id, self.start_time, self._on_message, self._on_error
            )
        except Exception as exc:
            self.state = SubscriptionState.STREAM_ERROR
            raise StreamError(exc, topic_id=self.topic_id) from exc
        self.state = SubscriptionState.SUBSCRIBED
        logger.debug("Subscribed to topic %s from %s", self.topic_id, self.start_time)

    def _deliver(self, item: TopicMessage | StreamError) -> None:
        if self._closed or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._inbox.put_nowait, item)
        except RuntimeError:
            # Loop already closed; the waiter has finished
            logger.debug("Dropped late delivery on topic %s", self.topic_id)

    def _on_message(self, message: TopicMessage) -> None:
        self._deliver(message)

    def _on_error(self, error: BaseException) -> None:
        self._deliver(StreamError(error, topic_id=self.topic_id))

    async def next_message(self) -> TopicMessage:
        """Return the next message, or raise the stream's error."""
        item = await self._inbox.get()
        if isinstance(item, StreamError):
            raise item
        return item

    def close(self) -> None:
        """Release the SDK subscription. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._handle is not None:
            self.unsubscribe_calls += 1
            self._handle.unsubscribe()
            logger.debug("Unsubscribed from topic %s (%s)", self.topic_id, self.state.value)


@asynccontextmanager
async def open_subscription(
    client: LedgerClient,
    topic_id: str,
    start_time: datetime,
) -> AsyncIterator[TopicSubscription]:
    """Subscribe for the duration of the block; unsubscribe on every exit path."""
    subscription = TopicSubscription(client, topic_id, start_time)
    subscription.open()
    try:
        yield subscription
    finally:
        subscription.close()


async def _first_match(subscription: TopicSubscription, expected: bytes) -> TopicMessage:
    while True:
        message = await subscription.next_message()
        log_event(
            logger,
            "topic_message_received",
            topic_id=subscription.topic_id,
            consensus_timestamp=message.consensus_timestamp.isoformat(),
            sequence_number=message.sequence_number,
            message=message.text(),
        )
        if message.contents == expected:
            return message


async def wait_for_message(
    client: LedgerClient,
    topic_id: str,
    expected: str | bytes,
    start_time: datetime | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> str:
    """Resolve with the first message whose payload equals expected exactly.

    Args:
        client: Ledger client to subscribe through.
        topic_id: Topic to watch.
        expected: Payload to match; str is compared as UTF-8 bytes.
        start_time: Replay cursor; messages before it are never seen.
            Defaults to now.
        timeout: Seconds for the whole wait.

    Raises:
        SubscriptionTimeout: No matching message within timeout.
        StreamError: The stream failed before a match.
    """
    expected_bytes = expected.encode("utf-8") if isinstance(expected, str) else expected
    cursor = start_time or datetime.now(timezone.utc)

    async with open_subscription(client, topic_id, cursor) as subscription:
        try:
            message = await asyncio.wait_for(
                _first_match(subscription, expected_bytes), timeout=timeout
            )
        except asyncio.TimeoutError:
            subscription.state = SubscriptionState.TIMED_OUT
            raise SubscriptionTimeout(
                f"Timeout waiting for message on topic {topic_id} after {timeout}s",
                topic_id=topic_id,
                timeout=timeout,
            ) from None
        except StreamError:
            subscription.state = SubscriptionState.STREAM_ERROR
            raise
        subscription.state = SubscriptionState.MATCHED

    logger.info("Received expected message on topic %s: %s", topic_id, message.text())
    return message.text()
