"""Twitch chatter-list client — async HTTP wrapper.

One GET per call, no caching: every payout needs a fresh audience.
All tests mock the HTTP layer — never call the real endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import aiohttp

from .utils import normalize_username

if TYPE_CHECKING:
    from .config import TwitchConfig


@dataclass(frozen=True)
class ChatterSnapshot:
    """Viewers, moderators and VIPs present at fetch time."""

    viewers: list[str] = field(default_factory=list)
    moderators: list[str] = field(default_factory=list)
    vips: list[str] = field(default_factory=list)

    def recipients(self) -> list[str]:
        """All categories merged, first occurrence wins, case-insensitive."""
        seen: set[str] = set()
        merged: list[str] = []
        for name in [*self.vips, *self.viewers, *self.moderators]:
            key = normalize_username(name)
            if not key or key in seen:
                continue
            seen.add(key)
            merged.append(name)
        return merged


class TwitchChattersClient:
    """Fetches the current chatter list for the configured channel."""

    def __init__(self, config: TwitchConfig, logger: logging.Logger) -> None:
        self._config = config
        self._logger = logger
        self._session: aiohttp.ClientSession | None = None

    async def start(self) -> None:
        """Create the HTTP session."""
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self._config.timeout_seconds),
        )

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    def chatters_url(self, channel: str | None = None) -> str:
        name = channel or self._config.channel_name
        base = self._config.api_base_url.rstrip("/")
        return f"{base}/group/user/{name}/chatters"

    async def fetch(self, channel: str | None = None) -> ChatterSnapshot:
        """Fetch the chatter snapshot. HTTP and network errors propagate."""
        if not self._session:
            raise RuntimeError("TwitchChattersClient not started")

        url = self.chatters_url(channel)
        async with self._session.get(url) as resp:
            resp.raise_for_status()
            data = await resp.json()

        snapshot = self._parse_chatters(data)
        self._logger.debug(
            "Fetched chatters: %d viewers, %d mods, %d vips",
            len(snapshot.viewers), len(snapshot.moderators), len(snapshot.vips),
        )
        return snapshot

    @staticmethod
    def _parse_chatters(data: dict) -> ChatterSnapshot:
        chatters = data.get("chatters") if isinstance(data, dict) else None
        if not isinstance(chatters, dict):
            chatters = {}
        return ChatterSnapshot(
            viewers=list(chatters.get("viewers") or []),
            moderators=list(chatters.get("moderators") or []),
            vips=list(chatters.get("vips") or []),
        )
