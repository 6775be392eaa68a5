"""SQLite player store for kryten-armcoin.

Each public method is async and wraps a synchronous inner function via
asyncio.run_in_executor(None, _sync). A new connection is created per call
(WAL mode, 30s busy timeout, Row factory).
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Iterable


class PlayerDatabase:
    """SQLite-backed persistence for players, transactions and settings."""

    def __init__(self, db_path: str, logger: logging.Logger) -> None:
        self._db_path = db_path
        self._logger = logger

    def _get_connection(self) -> sqlite3.Connection:
        """Create a new SQLite connection with standard settings."""
        conn = sqlite3.connect(self._db_path, timeout=30)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=30000")
        conn.row_factory = sqlite3.Row
        return conn

    # ══════════════════════════════════════════════════════════
    #  Initialization
    # ══════════════════════════════════════════════════════════

    async def initialize(self) -> None:
        """Create all tables and indexes. Idempotent."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._create_tables)

    def _create_tables(self) -> None:
        conn = self._get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS players (
                    username TEXT NOT NULL UNIQUE,
                    display_name TEXT,
                    coins INTEGER DEFAULT 0,
                    is_admin BOOLEAN DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL,
                    amount INTEGER NOT NULL,
                    type TEXT NOT NULL,
                    reason TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_username "
                "ON transactions(username)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_type "
                "ON transactions(type)"
            )

            conn.commit()
            self._logger.info("Database tables created/verified")
        finally:
            conn.close()

    # ══════════════════════════════════════════════════════════
    #  Player Operations
    # ══════════════════════════════════════════════════════════

    async def create_player(self, username: str) -> bool:
        """Insert a player with defaults. Returns False if it already existed."""
        loop = asyncio.get_running_loop()

        def _sync() -> bool:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO players (username, display_name) VALUES (?, ?)",
                    (username.lower(), username),
                )
                conn.commit()
                return cursor.rowcount > 0
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    async def get_player(self, username: str) -> dict | None:
        """Return player row as dict, or None if not exists."""
        loop = asyncio.get_running_loop()

        def _sync() -> dict | None:
            conn = self._get_connection()
            try:
                row = conn.execute(
                    "SELECT * FROM players WHERE username = ?",
                    (username.lower(),),
                ).fetchone()
                return dict(row) if row else None
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    async def find_all_usernames(self) -> list[str]:
        """Return every stored username (already lowercased)."""
        loop = asyncio.get_running_loop()

        def _sync() -> list[str]:
            conn = self._get_connection()
            try:
                rows = conn.execute("SELECT username FROM players").fetchall()
                return [r["username"] for r in rows]
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    async def is_admin(self, username: str) -> bool:
        player = await self.get_player(username)
        return bool(player and player["is_admin"])

    async def set_admin(self, username: str, is_admin: bool = True) -> None:
        """Flag a player as administrator, creating the row if needed."""
        loop = asyncio.get_running_loop()

        def _sync() -> None:
            conn = self._get_connection()
            try:
                conn.execute(
                    "INSERT OR IGNORE INTO players (username, display_name) VALUES (?, ?)",
                    (username.lower(), username),
                )
                conn.execute(
                    "UPDATE players SET is_admin = ?, updated_at = CURRENT_TIMESTAMP "
                    "WHERE username = ?",
                    (1 if is_admin else 0, username.lower()),
                )
                conn.commit()
            finally:
                conn.close()

        await loop.run_in_executor(None, _sync)

    # ══════════════════════════════════════════════════════════
    #  Balance Operations
    # ══════════════════════════════════════════════════════════

    async def get_balance(self, username: str) -> int | None:
        """Return coin balance, or None if the player doesn't exist."""
        loop = asyncio.get_running_loop()

        def _sync() -> int | None:
            conn = self._get_connection()
            try:
                row = conn.execute(
                    "SELECT coins FROM players WHERE username = ?",
                    (username.lower(),),
                ).fetchone()
                return row["coins"] if row else None
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    @staticmethod
    def _credit_in(
        conn: sqlite3.Connection, username: str, amount: int, tx_type: str, reason: str | None,
    ) -> None:
        key = username.lower()
        conn.execute(
            "INSERT OR IGNORE INTO players (username, display_name) VALUES (?, ?)",
            (key, username),
        )
        conn.execute(
            "UPDATE players SET coins = coins + ?, updated_at = CURRENT_TIMESTAMP "
            "WHERE username = ?",
            (amount, key),
        )
        conn.execute(
            "INSERT INTO transactions (username, amount, type, reason) VALUES (?, ?, ?, ?)",
            (key, amount, tx_type, reason),
        )

    async def credit(
        self,
        username: str,
        amount: int,
        tx_type: str,
        reason: str | None = None,
    ) -> int:
        """Atomically credit coins and log the transaction.
        Creates the player if not exists. Returns new balance."""
        loop = asyncio.get_running_loop()

        def _sync() -> int:
            conn = self._get_connection()
            try:
                self._credit_in(conn, username, amount, tx_type, reason)
                conn.commit()
                row = conn.execute(
                    "SELECT coins FROM players WHERE username = ?",
                    (username.lower(),),
                ).fetchone()
                return row["coins"]
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    async def credit_many(
        self,
        usernames: Iterable[str],
        amount: int,
        tx_type: str,
        reason: str | None = None,
    ) -> int:
        """Credit every username in one transaction. All or nothing.
        Returns the number of players credited."""
        names = list(usernames)
        loop = asyncio.get_running_loop()

        def _sync() -> int:
            conn = self._get_connection()
            try:
                for name in names:
                    self._credit_in(conn, name, amount, tx_type, reason)
                conn.commit()
                return len(names)
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    async def debit(
        self,
        username: str,
        amount: int,
        tx_type: str,
        reason: str | None = None,
    ) -> int | None:
        """Atomically debit coins and log the transaction.
        Returns new balance on success, None on insufficient funds."""
        loop = asyncio.get_running_loop()

        def _sync() -> int | None:
            conn = self._get_connection()
            try:
                key = username.lower()
                cursor = conn.execute(
                    "UPDATE players SET coins = coins - ?, updated_at = CURRENT_TIMESTAMP "
                    "WHERE username = ? AND coins >= ?",
                    (amount, key, amount),
                )
                if cursor.rowcount == 0:
                    conn.rollback()
                    return None  # Insufficient funds or player doesn't exist
                conn.execute(
                    "INSERT INTO transactions (username, amount, type, reason) VALUES (?, ?, ?, ?)",
                    (key, -amount, tx_type, reason),
                )
                conn.commit()
                row = conn.execute(
                    "SELECT coins FROM players WHERE username = ?",
                    (key,),
                ).fetchone()
                return row["coins"]
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    # ══════════════════════════════════════════════════════════
    #  Settings
    # ══════════════════════════════════════════════════════════

    async def get_setting(self, key: str, default: str | None = None) -> str | None:
        loop = asyncio.get_running_loop()

        def _sync() -> str | None:
            conn = self._get_connection()
            try:
                row = conn.execute(
                    "SELECT value FROM settings WHERE key = ?", (key,),
                ).fetchone()
                return row["value"] if row else default
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    async def set_setting(self, key: str, value: str) -> None:
        loop = asyncio.get_running_loop()

        def _sync() -> None:
            conn = self._get_connection()
            try:
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                    "updated_at = CURRENT_TIMESTAMP",
                    (key, value),
                )
                conn.commit()
            finally:
                conn.close()

        await loop.run_in_executor(None, _sync)

    # ══════════════════════════════════════════════════════════
    #  Aggregates (metrics)
    # ══════════════════════════════════════════════════════════

    async def get_total_circulation(self) -> int:
        """Sum of all player balances."""
        loop = asyncio.get_running_loop()

        def _sync() -> int:
            conn = self._get_connection()
            try:
                row = conn.execute("SELECT COALESCE(SUM(coins), 0) AS total FROM players").fetchone()
                return row["total"]
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    async def get_player_count(self) -> int:
        loop = asyncio.get_running_loop()

        def _sync() -> int:
            conn = self._get_connection()
            try:
                row = conn.execute("SELECT COUNT(*) AS cnt FROM players").fetchone()
                return row["cnt"]
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)
