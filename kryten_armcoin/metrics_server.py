"""Prometheus metrics server for kryten-armcoin.

Subclasses BaseMetricsServer from kryten-py to expose
bot-specific metrics and health details.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kryten import BaseMetricsServer

if TYPE_CHECKING:
    from .main import ArmCoinApp


class ArmCoinMetricsServer(BaseMetricsServer):
    """Bot-specific Prometheus metrics endpoint."""

    def __init__(self, app: ArmCoinApp, port: int = 28287) -> None:
        super().__init__(
            service_name="armcoin",
            port=port,
            client=app.client,
            logger=app.logger,
        )
        self._app = app

    async def _collect_custom_metrics(self) -> list[str]:
        """Collect armcoin-specific Prometheus metrics."""
        lines: list[str] = []

        # ── Counters ─────────────────────────────────────────
        lines.append(f"armcoin_events_processed_total {self._app.events_processed}")
        lines.append(f"armcoin_commands_processed_total {self._app.commands_processed}")
        lines.append(f"armcoin_wagers_total {self._app.wagers_total}")
        lines.append(f"armcoin_payouts_total {self._app.payouts_total}")

        # ── Gauges ───────────────────────────────────────────
        lines.append(f"armcoin_known_participants {len(self._app.registry)}")
        circ = await self._app.db.get_total_circulation()
        lines.append(f"armcoin_total_circulation {circ}")
        count = await self._app.db.get_player_count()
        lines.append(f"armcoin_total_players {count}")
        lines.append(f"armcoin_market_open {1 if self._app.market.is_open else 0}")

        return lines

    async def _get_health_details(self) -> dict:
        """Return health details for the /health endpoint."""
        return {
            "database": "connected" if self._app.db else "disconnected",
            "channels_configured": len(self._app.config.channels),
            "known_participants": len(self._app.registry),
            "silent_mode": self._app.config.bot.silent_mode,
        }
