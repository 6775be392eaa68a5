"""Outcome notifier — renders chat replies and overlay feed entries.

Every wager game has a template table keyed by WagerState. The table is
checked against the enum at construction, so a new state without templates
fails at startup instead of being silently skipped.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .economy import WagerResult, WagerState
from .market import MarketState

if TYPE_CHECKING:
    from pydantic import BaseModel

    from .chat_sender import ChatSender
    from .config import ArmCoinConfig
    from .feed import FeedPublisher

WAGER_GAMES = ("allin", "gacha")


def build_wager_table(templates: BaseModel) -> dict[WagerState, tuple[str, str]]:
    """Map each WagerState to its (chat, feed) template pair."""
    table: dict[WagerState, tuple[str, str]] = {}
    for state in WagerState:
        chat = getattr(templates, f"{state.value}_chat", None)
        feed = getattr(templates, f"{state.value}_feed", None)
        if not chat or not feed:
            raise ValueError(f"Missing templates for wager state '{state.value}'")
        table[state] = (chat, feed)
    return table


class OutcomeNotifier:
    """Turns operation results into one chat reply and/or one feed entry."""

    def __init__(
        self,
        config: ArmCoinConfig,
        chat: ChatSender,
        feed: FeedPublisher,
        logger: logging.Logger | None = None,
    ) -> None:
        self._messages = config.messages
        self._currency = config.currency.name
        self._chat = chat
        self._feed = feed
        self._logger = logger or logging.getLogger("armcoin.notifier")
        self._wager_tables = {
            game: build_wager_table(getattr(config.messages, game))
            for game in WAGER_GAMES
        }

    def _format(self, template: str, **variables: Any) -> str:
        return template.format(currency=self._currency, **variables)

    # ── Wagers ───────────────────────────────────────────────

    def render_wager(self, game: str, username: str, result: WagerResult) -> tuple[str, str]:
        """Return the (chat, feed) text for one wager result."""
        chat_template, feed_template = self._wager_tables[game][result.state]
        variables = {
            "user": username,
            "bet": result.bet,
            "win": result.win,
            "balance": result.balance,
        }
        return self._format(chat_template, **variables), self._format(feed_template, **variables)

    async def notify_wager(
        self, channel: str, username: str, game: str, result: WagerResult,
    ) -> None:
        chat_text, feed_text = self.render_wager(game, username, result)
        await self._chat.say(channel, chat_text)
        await self._feed.feed(feed_text)

    async def insufficient_funds(self, channel: str, username: str) -> None:
        await self._chat.say(channel, self._format(self._messages.insufficient_funds, user=username))

    # ── Balance & grants ─────────────────────────────────────

    async def balance(self, channel: str, username: str, balance: int) -> None:
        await self._chat.say(
            channel, self._format(self._messages.balance, user=username, balance=balance),
        )

    async def no_coins(self, channel: str, username: str) -> None:
        await self._chat.say(channel, self._format(self._messages.no_coins, user=username))

    async def give(
        self, channel: str, username: str, target: str, amount: int, balance: int,
    ) -> None:
        await self._chat.say(
            channel,
            self._format(
                self._messages.give,
                user=username, target=target, amount=amount, balance=balance,
            ),
        )

    async def reply(self, channel: str, text: str) -> None:
        """Plain informational reply (no template)."""
        await self._chat.say(channel, text)

    # ── Feed-only announcements ──────────────────────────────

    async def market(self, state: MarketState) -> None:
        template = (
            self._messages.market_open_feed
            if state is MarketState.OPEN
            else self._messages.market_close_feed
        )
        await self._feed.feed(self._format(template))

    async def payout(self, count: int, amount: int, attributed_to: str) -> None:
        await self._feed.feed(
            self._format(self._messages.payout_feed, count=count, amount=amount, user=attributed_to),
        )

    async def subscription(self, username: str, amount: int) -> None:
        await self._feed.feed(
            self._format(self._messages.subscription_feed, user=username, amount=amount),
        )

    async def payout_summary(
        self, channel: str, username: str, bonus: int, count: int, amount: int,
    ) -> None:
        await self._chat.say(
            channel,
            self._format(
                self._messages.payout_summary,
                user=username, bonus=bonus, count=count, amount=amount,
            ),
        )
