"""
Head poller feeding WebSocket subscriptions.

The chain client offers no push channel, so new blocks are discovered by
polling the head. Every block between the last seen head and the current
one is pushed to ``newHeads`` subscribers, and its events to ``logs``
subscribers.
"""

import asyncio
from typing import Optional

from ..chain.base import ChainQuery
from ..constants import HEAD_POLL_INTERVAL_MS, MAX_LOGS_PER_QUERY
from ..logger import get_logger
from ..translate.hexutil import wait
from .formatters import format_head, format_logs, index_block_logs
from .websocket import SubscriptionType, WebSocketManager

logger = get_logger(__name__)


class HeadPoller:
    """Polls the chain head and publishes new blocks and their logs."""

    def __init__(
        self,
        chain: ChainQuery,
        ws_manager: WebSocketManager,
        interval_ms: int = HEAD_POLL_INTERVAL_MS,
        max_logs: int = MAX_LOGS_PER_QUERY,
    ):
        self.chain = chain
        self.ws_manager = ws_manager
        self.interval_ms = interval_ms
        self.max_logs = max_logs

        self.last_number: Optional[int] = None
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Head poller started (interval=%dms)", self.interval_ms)

    async def stop(self):
        if not self._running:
            return
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Head poller stopped")

    async def _loop(self):
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error polling chain head: {e}")
            await wait(self.interval_ms)

    async def poll_once(self) -> int:
        """
        Check the head once and publish whatever is new.

        The first poll only records the head; nothing before it is replayed.
        A head lower than the last seen one (chain reorganisation) resets the
        marker without publishing.

        Returns:
            Number of new blocks published
        """
        head = await self.chain.get_head()
        number = int(head["number"])

        if self.last_number is None or number < self.last_number:
            self.last_number = number
            return 0
        if number == self.last_number:
            return 0

        published = 0
        for n in range(self.last_number + 1, number + 1):
            block = await self.chain.get_block(n)
            if not block:
                logger.warning("Block %d vanished while polling", n)
                self.last_number = n
                continue

            # Everything for block n is fetched before anything is sent, so a
            # failure retries n on the next poll without repeating earlier blocks.
            logs = []
            if self.ws_manager.has_subscribers(SubscriptionType.LOGS):
                logs = await self._block_logs(block)

            if self.ws_manager.has_subscribers(SubscriptionType.NEW_HEADS):
                await self.ws_manager.publish(SubscriptionType.NEW_HEADS, format_head(block))
            for log in logs:
                await self.ws_manager.publish(SubscriptionType.LOGS, log)

            self.last_number = n
            published += 1

        return published

    async def _block_logs(self, block) -> list:
        """Every log of one block, paged by ``max_logs``."""
        number = int(block["number"])
        # Subscribers filter on their own criteria, so fetch everything once.
        events = []
        while True:
            page = await self.chain.filter_events([], number, number, len(events), self.max_logs)
            events.extend(page)
            if len(page) < self.max_logs:
                break
        positions = {block["id"]: index_block_logs(await self.chain.get_block_receipts(block["id"]))}
        return format_logs(events, positions)
