"""Market open/close setting, persisted in the settings table."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .database import PlayerDatabase

MARKET_SETTING_KEY = "market_state"


class MarketState(Enum):
    OPEN = "open"
    CLOSED = "close"


class MarketSetting:
    """Cached view of the market flag; writes go straight to storage."""

    def __init__(self, database: PlayerDatabase, logger: logging.Logger | None = None) -> None:
        self._db = database
        self._logger = logger or logging.getLogger("armcoin.market")
        self._state = MarketState.CLOSED

    @property
    def state(self) -> MarketState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is MarketState.OPEN

    async def load(self) -> MarketState:
        stored = await self._db.get_setting(MARKET_SETTING_KEY, MarketState.CLOSED.value)
        try:
            self._state = MarketState(stored)
        except ValueError:
            self._logger.warning("Unknown stored market state %r, using closed", stored)
            self._state = MarketState.CLOSED
        return self._state

    async def set_state(self, state: MarketState) -> None:
        await self._db.set_setting(MARKET_SETTING_KEY, state.value)
        self._state = state
        self._logger.info("Market is now %s", state.name.lower())
