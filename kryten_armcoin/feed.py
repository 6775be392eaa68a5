"""Overlay feed publisher.

The overlay shows a rolling list of notable events (wins, payouts, market
changes). Recent entries are kept in memory and mirrored to a kryten KV
bucket the overlay reads from.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Any

from .utils import now_utc

if TYPE_CHECKING:
    from kryten import KrytenClient

    from .config import FeedConfig


class FeedPublisher:
    """Bounded feed of overlay entries backed by NATS KV."""

    def __init__(
        self,
        config: FeedConfig,
        client: KrytenClient | None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._logger = logger or logging.getLogger("armcoin.feed")
        self._entries: deque[dict[str, Any]] = deque(maxlen=config.max_entries)
        self.published_total: int = 0

    async def start(self) -> None:
        """Make sure the KV bucket exists."""
        if self._client is None:
            return
        await self._client.get_or_create_kv_store(
            self._config.bucket,
            description="kryten-armcoin overlay feed",
        )

    def recent(self) -> list[dict[str, Any]]:
        return list(self._entries)

    async def feed(self, message: str) -> None:
        """Append one entry and push the recent list to the overlay."""
        entry = {"message": message, "timestamp": now_utc().isoformat()}
        self._entries.append(entry)
        self.published_total += 1
        if self._client is None:
            self._logger.info("[Feed] %s", message)
            return
        await self._client.kv_put(
            self._config.bucket,
            self._config.key,
            list(self._entries),
            as_json=True,
        )
