"""Batched payouts to everyone currently in chat."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .chatters import TwitchChattersClient
    from .config import ArmCoinConfig
    from .economy import CoinEconomy
    from .notifier import OutcomeNotifier


@dataclass(frozen=True)
class PayoutResult:
    recipient_count: int
    recipients: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SubscriptionPayout:
    balance: int
    bonus: int
    recipient_count: int


class PayoutCoordinator:
    """Computes the payout audience and issues one grant per recipient."""

    def __init__(
        self,
        config: ArmCoinConfig,
        economy: CoinEconomy,
        chatters: TwitchChattersClient,
        notifier: OutcomeNotifier,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._economy = economy
        self._chatters = chatters
        self._notifier = notifier
        self._logger = logger or logging.getLogger("armcoin.payout")
        self.payouts_total: int = 0

    async def run_payout(self, amount: int, attributed_to: str) -> PayoutResult:
        """Grant ``amount`` to every unique chatter. Failures propagate."""
        snapshot = await self._chatters.fetch()
        recipients = snapshot.recipients()
        if recipients:
            await self._economy.give_coin_to_list(recipients, amount)
        await self._notifier.payout(len(recipients), amount, attributed_to)
        self.payouts_total += 1
        self._logger.info(
            "Payout of %d to %d chatters (triggered by %s)",
            amount, len(recipients), attributed_to,
        )
        return PayoutResult(recipient_count=len(recipients), recipients=recipients)

    async def subscription_payout(self, username: str) -> SubscriptionPayout:
        """Reward a subscriber, then pay everyone in chat on their behalf."""
        cfg = self._config.payout
        balance = await self._economy.give_coin(username, cfg.subscription_bonus)
        await self._notifier.subscription(username, cfg.subscription_bonus)
        result = await self.run_payout(cfg.subscription_amount, username)
        return SubscriptionPayout(
            balance=balance,
            bonus=cfg.subscription_bonus,
            recipient_count=result.recipient_count,
        )
