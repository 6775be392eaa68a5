"""Chat command router — maps ``!name`` to a handler coroutine.

Handlers receive (channel, username, args) and report through the
OutcomeNotifier. Unknown names are ignored. Economic failures are turned
into replies (or silence) here; storage, transport and HTTP errors
propagate to the caller.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING, Awaitable, Callable

from .economy import EconomyError, InsufficientBalanceError, PlayerNotFoundError
from .market import MarketState
from .parser import Command, parse_give_args, parse_wager_amount

if TYPE_CHECKING:
    from .chatters import TwitchChattersClient
    from .config import ArmCoinConfig
    from .database import PlayerDatabase
    from .economy import CoinEconomy
    from .market import MarketSetting
    from .notifier import OutcomeNotifier
    from .payout import PayoutCoordinator

Handler = Callable[..., Awaitable[None]]

# Accepted but not implemented yet
PLACEHOLDER_COMMANDS = (
    "!auction",
    "!botstat",
    "!draw",
    "!income",
    "!kick",
    "!raffle",
    "!reset",
    "!sentry",
    "!thanos",
    "!time",
)

_MARKET_ARGS = {"open": MarketState.OPEN, "close": MarketState.CLOSED}


class CommandRouter:
    """Static name → handler dispatch for chat commands."""

    def __init__(
        self,
        config: ArmCoinConfig,
        database: PlayerDatabase,
        economy: CoinEconomy,
        market: MarketSetting,
        payout: PayoutCoordinator,
        chatters: TwitchChattersClient,
        notifier: OutcomeNotifier,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._db = database
        self._economy = economy
        self._market = market
        self._payout = payout
        self._chatters = chatters
        self._notifier = notifier
        self._logger = logger or logging.getLogger("armcoin.commands")

        self.commands_processed: int = 0
        self.wagers_total: int = 0

        self._command_map: dict[str, Handler] = {
            "!github": self._cmd_github,
            "!fetch": self._cmd_fetch,
            "!coin": self._cmd_coin,
            "!give": self._cmd_give,
            "!allin": self._cmd_allin,
            "!gacha": self._cmd_gacha,
            "!payday": self._cmd_payday,
            "!payout": self._cmd_payout,
            "!market": self._cmd_market,
        }
        for name in PLACEHOLDER_COMMANDS:
            self._command_map[name] = partial(self._cmd_placeholder, name)

    @property
    def commands(self) -> list[str]:
        return sorted(self._command_map)

    async def dispatch(self, command: Command, channel: str, username: str) -> bool:
        """Run the handler for ``command``. Returns False for unknown names."""
        handler = self._command_map.get(command.name)
        if handler is None:
            self._logger.debug("Ignoring unknown command %s from %s", command.name, username)
            return False
        await handler(channel, username, command.args)
        self.commands_processed += 1
        return True

    # ══════════════════════════════════════════════════════════
    #  Informational
    # ══════════════════════════════════════════════════════════

    async def _cmd_github(self, channel: str, username: str, args: tuple[str, ...]) -> None:
        await self._notifier.reply(channel, self._config.bot.github_url)

    async def _cmd_fetch(self, channel: str, username: str, args: tuple[str, ...]) -> None:
        """Log the current chatter list (precursor to payouts)."""
        snapshot = await self._chatters.fetch()
        self._logger.info(
            "Chatters: %d viewers, %d mods, %d vips (%d unique)",
            len(snapshot.viewers), len(snapshot.moderators), len(snapshot.vips),
            len(snapshot.recipients()),
        )

    async def _cmd_placeholder(
        self, name: str, channel: str, username: str, args: tuple[str, ...],
    ) -> None:
        self._logger.debug("%s from %s: not implemented yet", name, username)

    # ══════════════════════════════════════════════════════════
    #  Balance & grants
    # ══════════════════════════════════════════════════════════

    async def _cmd_coin(self, channel: str, username: str, args: tuple[str, ...]) -> None:
        try:
            balance = await self._economy.coin(username)
        except PlayerNotFoundError:
            await self._notifier.no_coins(channel, username)
            return
        await self._notifier.balance(channel, username, balance)

    async def _cmd_give(self, channel: str, username: str, args: tuple[str, ...]) -> None:
        parsed = parse_give_args(args)
        if parsed is None:
            self._logger.warning("!give from %s ignored: malformed args %r", username, args)
            return
        target, amount = parsed
        try:
            balance = await self._economy.give_coin(target, amount)
        except EconomyError as exc:
            self._logger.warning("!give from %s to %s failed: %s", username, target, exc)
            return
        await self._notifier.give(channel, username, target, amount, balance)

    # ══════════════════════════════════════════════════════════
    #  Wagers
    # ══════════════════════════════════════════════════════════

    async def _cmd_allin(self, channel: str, username: str, args: tuple[str, ...]) -> None:
        try:
            result = await self._economy.allin(username)
        except InsufficientBalanceError:
            await self._notifier.insufficient_funds(channel, username)
            return
        except EconomyError as exc:
            self._logger.warning("!allin from %s failed: %s", username, exc)
            return
        self.wagers_total += 1
        await self._notifier.notify_wager(channel, username, "allin", result)

    async def _cmd_gacha(self, channel: str, username: str, args: tuple[str, ...]) -> None:
        amount = parse_wager_amount(args, default=self._config.wager.default_gacha_amount)
        try:
            result = await self._economy.gacha(username, amount)
        except InsufficientBalanceError:
            await self._notifier.insufficient_funds(channel, username)
            return
        except EconomyError as exc:
            self._logger.warning("!gacha from %s failed: %s", username, exc)
            return
        self.wagers_total += 1
        await self._notifier.notify_wager(channel, username, "gacha", result)

    # ══════════════════════════════════════════════════════════
    #  Payouts
    # ══════════════════════════════════════════════════════════

    async def _cmd_payday(self, channel: str, username: str, args: tuple[str, ...]) -> None:
        """Admin: pay everyone in chat."""
        if not await self._db.is_admin(username):
            self._logger.debug("!payday from non-admin %s ignored", username)
            return
        await self._payout.run_payout(self._config.payout.payday_amount, username)

    async def _cmd_payout(self, channel: str, username: str, args: tuple[str, ...]) -> None:
        """Dev mode: simulate a subscription by the caller."""
        if not self._config.bot.dev_mode:
            return
        result = await self._payout.subscription_payout(username)
        await self._notifier.payout_summary(
            channel, username,
            bonus=result.bonus,
            count=result.recipient_count,
            amount=self._config.payout.subscription_amount,
        )

    # ══════════════════════════════════════════════════════════
    #  Market
    # ══════════════════════════════════════════════════════════

    async def _cmd_market(self, channel: str, username: str, args: tuple[str, ...]) -> None:
        state = _MARKET_ARGS.get(args[0]) if args else None
        if state is None:
            return
        await self._market.set_state(state)
        await self._notifier.market(state)
