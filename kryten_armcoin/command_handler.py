"""Request-reply command handler on kryten.armcoin.command.

Provides a NATS request-reply API for inter-service communication
and admin tooling.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from . import __version__

if TYPE_CHECKING:
    from kryten import KrytenClient

    from .main import ArmCoinApp


class CommandHandler:
    """Handles request-reply commands on kryten.armcoin.command."""

    SUBJECT = "kryten.armcoin.command"

    def __init__(
        self,
        app: ArmCoinApp,
        client: KrytenClient,
        logger: logging.Logger | None = None,
    ) -> None:
        self._app = app
        self._client = client
        self._logger = logger or logging.getLogger("armcoin.command")

    async def connect(self) -> None:
        """Subscribe to request-reply on kryten.armcoin.command."""
        await self._client.subscribe_request_reply(
            self.SUBJECT,
            self._handle_command,
        )

    async def _handle_command(self, request: dict[str, Any]) -> dict[str, Any]:
        """Route a command request to the appropriate handler."""
        command = request.get("command", "")
        handler = self._HANDLER_MAP.get(command)

        if not handler:
            return {
                "service": "armcoin",
                "command": command,
                "success": False,
                "error": f"Unknown command: {command}",
            }

        try:
            result = await handler(self, request)
            return {
                "service": "armcoin",
                "command": command,
                "success": True,
                "data": result,
            }
        except Exception as e:
            self._logger.exception("Command handler error for %s", command)
            return {
                "service": "armcoin",
                "command": command,
                "success": False,
                "error": str(e),
            }

    async def _handle_ping(self, request: dict[str, Any]) -> dict[str, Any]:
        return {"pong": True, "version": __version__}

    async def _handle_health(self, request: dict[str, Any]) -> dict[str, Any]:
        return {
            "status": "healthy",
            "database": "connected" if self._app.db else "disconnected",
            "known_participants": len(self._app.registry) if self._app.registry else 0,
            "silent_mode": self._app.config.bot.silent_mode,
            "uptime_seconds": self._app.uptime_seconds,
        }

    async def _handle_balance_get(self, request: dict[str, Any]) -> dict[str, Any]:
        username = request.get("username")
        if not username:
            raise ValueError("username is required")

        player = await self._app.db.get_player(username)
        if not player:
            return {"found": False}

        return {
            "found": True,
            "username": player["username"],
            "balance": player["coins"],
            "is_admin": bool(player["is_admin"]),
        }

    async def _handle_market_get(self, request: dict[str, Any]) -> dict[str, Any]:
        return {"state": self._app.market.state.value}

    _HANDLER_MAP: dict[str, Any] = {
        "system.ping": _handle_ping,
        "system.health": _handle_health,
        "balance.get": _handle_balance_get,
        "market.get": _handle_market_get,
    }
