"""Chat bot service — turns transport events into registry updates and commands.

Flow per message: drop self-echoes → register the sender on first sight →
parse → dispatch. Each message runs as its own task so a slow handler
(e.g. a chatter fetch) never holds up unrelated chatters.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .parser import parse_command
from .utils import normalize_username

if TYPE_CHECKING:
    from .commands import CommandRouter
    from .config import ArmCoinConfig
    from .notifier import OutcomeNotifier
    from .payout import PayoutCoordinator
    from .registry import ParticipantRegistry


@dataclass(frozen=True)
class ChatMessage:
    """One inbound chat line, as delivered by the transport."""

    channel: str
    username: str
    text: str
    is_self: bool = False


class ChatBotService:
    """Owns the participant registry and wires chat events to the router."""

    def __init__(
        self,
        config: ArmCoinConfig,
        registry: ParticipantRegistry,
        router: CommandRouter,
        payout: PayoutCoordinator,
        notifier: OutcomeNotifier,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._registry = registry
        self._router = router
        self._payout = payout
        self._notifier = notifier
        self._logger = logger or logging.getLogger("armcoin.bot")
        self._ignored_users: set[str] = {normalize_username(u) for u in config.ignored_users}
        self._bot_username = normalize_username(config.bot.username)
        self._tasks: set[asyncio.Task] = set()

    @property
    def registry(self) -> ParticipantRegistry:
        return self._registry

    @property
    def router(self) -> CommandRouter:
        return self._router

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def is_self(self, username: str) -> bool:
        return normalize_username(username) == self._bot_username

    # ── Presence ─────────────────────────────────────────────

    async def handle_join(self, channel: str, username: str) -> None:
        if normalize_username(username) in self._ignored_users:
            return
        await self._registry.ensure_registered(username)

    async def handle_part(self, channel: str, username: str) -> None:
        self._logger.info("%s left...", username)

    # ── Messages ─────────────────────────────────────────────

    async def handle_message(self, message: ChatMessage) -> bool:
        """Process one message. Returns True if a command handler ran."""
        if message.is_self:
            return False
        username = message.username
        if not username or normalize_username(username) in self._ignored_users:
            return False

        await self._registry.ensure_registered(username)

        command = parse_command(message.text)
        if command is None:
            return False
        return await self._router.dispatch(command, message.channel, username)

    def submit_message(self, message: ChatMessage) -> asyncio.Task:
        """Schedule ``handle_message`` as an independent task."""
        task = asyncio.create_task(self._run_message(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_message(self, message: ChatMessage) -> None:
        try:
            await self.handle_message(message)
        except asyncio.CancelledError:
            raise
        except Exception:
            self._logger.exception(
                "Message handler error for %s: %r", message.username, message.text[:80],
            )

    # ── Subscriptions ────────────────────────────────────────

    async def handle_subscription(self, channel: str, username: str) -> None:
        """Reward a subscriber and everyone in chat, then announce it."""
        await self._registry.ensure_registered(username)
        result = await self._payout.subscription_payout(username)
        await self._notifier.payout_summary(
            channel, username,
            bonus=result.bonus,
            count=result.recipient_count,
            amount=self._config.payout.subscription_amount,
        )

    # ── Lifecycle ────────────────────────────────────────────

    async def wait_idle(self) -> None:
        """Wait for every message task scheduled so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel in-flight message tasks."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
