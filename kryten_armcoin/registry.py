"""In-memory registry of known chat participants.

Keeps a set of normalized usernames so each new chatter triggers exactly one
player-creation call. Warm-started from the player store on service start.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .utils import normalize_username

if TYPE_CHECKING:
    from .database import PlayerDatabase


class ParticipantRegistry:
    """Process-scoped cache of chatters already mirrored to storage."""

    def __init__(self, database: PlayerDatabase, logger: logging.Logger | None = None) -> None:
        self._db = database
        self._logger = logger or logging.getLogger("armcoin.registry")
        self._known: set[str] = set()

    def __contains__(self, username: str) -> bool:
        return normalize_username(username) in self._known

    def __len__(self) -> int:
        return len(self._known)

    async def load(self) -> int:
        """Pre-populate from every username in storage. Returns the count."""
        usernames = await self._db.find_all_usernames()
        self._known.update(normalize_username(u) for u in usernames)
        self._logger.info("Registry warm start: %d known participants", len(self._known))
        return len(self._known)

    async def ensure_registered(self, username: str) -> bool:
        """Create the player on first sight. Returns True if a creation call was made.

        The membership check and insert happen before the first await, so two
        events for the same new user can never both see it as absent.
        """
        key = normalize_username(username)
        if not key or key in self._known:
            return False
        self._known.add(key)
        try:
            await self._db.create_player(username)
        except Exception:
            self._known.discard(key)
            raise
        self._logger.debug("Registered new participant %s", key)
        return True
