"""Outbound chat replies, with a silent mode for dry runs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kryten import KrytenClient

    from .config import ArmCoinConfig


class ChatSender:
    """Sends replies through kryten-py, or logs them in silent mode."""

    def __init__(
        self,
        config: ArmCoinConfig,
        client: KrytenClient | None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._silent = config.bot.silent_mode
        self._bot_username = config.bot.username
        self._logger = logger or logging.getLogger("armcoin.chat")

    @property
    def silent(self) -> bool:
        return self._silent

    async def say(self, channel: str, message: str) -> None:
        """Post ``message`` to public chat. Transport errors propagate."""
        if self._silent:
            self._logger.info("[Silent Mode] %s: %s", self._bot_username, message)
            return
        if self._client is None:
            self._logger.warning("say: client is None, dropping: %s", message[:80])
            return
        self._logger.debug("say → channel=%s msg=%s", channel, message[:80])
        await self._client.send_chat(channel, message)
