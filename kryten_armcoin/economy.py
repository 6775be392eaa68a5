"""Coin economy — balance queries, grants and wagers.

Every wager debits the bet first, rolls once, and credits the prize on a
win. Errors are raised as EconomyError subclasses; callers decide what the
user sees.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from .database import PlayerDatabase

if TYPE_CHECKING:
    from .config import ArmCoinConfig

# Largest value a SQLite INTEGER column can hold
MAX_AMOUNT = 2**63 - 1


# ═══════════════════════════════════════════════════════════════
#  Errors
# ═══════════════════════════════════════════════════════════════


class EconomyError(Exception):
    """Base class for failed economic operations."""


class InsufficientBalanceError(EconomyError):
    def __init__(self, username: str, needed: int, balance: int) -> None:
        super().__init__(f"{username} needs {needed} but has {balance}")
        self.username = username
        self.needed = needed
        self.balance = balance


class PlayerNotFoundError(EconomyError):
    def __init__(self, username: str) -> None:
        super().__init__(f"Unknown player: {username}")
        self.username = username


class InvalidAmountError(EconomyError):
    def __init__(self, amount: int) -> None:
        super().__init__(f"Invalid amount: {amount}")
        self.amount = amount


# ═══════════════════════════════════════════════════════════════
#  Data types
# ═══════════════════════════════════════════════════════════════


class WagerState(Enum):
    WIN_JACKPOT = "win_jackpot"
    WIN = "win"
    LOSE = "lose"


@dataclass(frozen=True)
class WagerResult:
    """Outcome of a single wager. ``win`` is 0 for a loss."""

    state: WagerState
    bet: int
    balance: int
    win: int = 0


# ═══════════════════════════════════════════════════════════════
#  Engine
# ═══════════════════════════════════════════════════════════════


class CoinEconomy:
    """Economic operations on top of the player store."""

    def __init__(
        self,
        config: ArmCoinConfig,
        database: PlayerDatabase,
        logger: logging.Logger,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config
        self._db = database
        self._logger = logger
        self._rng = rng or random.Random()

    # ── Queries & grants ─────────────────────────────────────

    async def coin(self, username: str) -> int:
        """Return the player's balance. Raises PlayerNotFoundError."""
        balance = await self._db.get_balance(username)
        if balance is None:
            raise PlayerNotFoundError(username)
        return balance

    async def give_coin(self, username: str, amount: int) -> int:
        """Grant coins to one player. Returns the resulting balance."""
        if amount < 0 or amount > MAX_AMOUNT:
            raise InvalidAmountError(amount)
        return await self._db.credit(username, amount, tx_type="grant")

    async def give_coin_to_list(self, usernames: Iterable[str], amount: int) -> int:
        """Grant coins to every player in one batch. Returns the count."""
        if amount < 0 or amount > MAX_AMOUNT:
            raise InvalidAmountError(amount)
        return await self._db.credit_many(usernames, amount, tx_type="payout")

    # ── Wagers ───────────────────────────────────────────────

    async def allin(self, username: str) -> WagerResult:
        """Wager the player's entire balance."""
        balance = await self._db.get_balance(username) or 0
        if balance <= 0:
            raise InsufficientBalanceError(username, 1, balance)
        return await self._wager(username, balance, "allin")

    async def gacha(self, username: str, amount: int | None = None) -> WagerResult:
        """Wager a chosen amount (default from config)."""
        bet = self._config.wager.default_gacha_amount if amount is None else amount
        if bet <= 0:
            raise InvalidAmountError(bet)
        if bet > MAX_AMOUNT:
            balance = await self._db.get_balance(username) or 0
            raise InsufficientBalanceError(username, bet, balance)
        return await self._wager(username, bet, "gacha")

    def _roll(self) -> WagerState:
        cfg = self._config.wager
        roll = self._rng.random()
        if roll < cfg.jackpot_rate:
            return WagerState.WIN_JACKPOT
        if roll < cfg.jackpot_rate + cfg.win_rate:
            return WagerState.WIN
        return WagerState.LOSE

    async def _wager(self, username: str, bet: int, game: str) -> WagerResult:
        balance = await self._db.debit(username, bet, tx_type=game, reason="bet")
        if balance is None:
            current = await self._db.get_balance(username) or 0
            raise InsufficientBalanceError(username, bet, current)

        state = self._roll()
        if state is WagerState.LOSE:
            return WagerResult(state=state, bet=bet, balance=balance)

        cfg = self._config.wager
        multiplier = cfg.jackpot_multiplier if state is WagerState.WIN_JACKPOT else cfg.win_multiplier
        win = bet * multiplier
        balance = await self._db.credit(username, win, tx_type=game, reason=state.value)
        self._logger.debug("%s %s: bet=%d win=%d balance=%d", username, state.value, bet, win, balance)
        return WagerResult(state=state, bet=bet, balance=balance, win=win)
