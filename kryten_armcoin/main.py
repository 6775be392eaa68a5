"""Service orchestrator — ArmCoinApp.

Follows the canonical kryten-py microservice pattern:
config → DB init → register handlers → connect → subscribe → metrics → run.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any

from kryten import KrytenClient

from . import __version__
from .bot import ChatBotService, ChatMessage
from .chat_sender import ChatSender
from .chatters import TwitchChattersClient
from .command_handler import CommandHandler
from .commands import CommandRouter
from .config import ArmCoinConfig, load_config
from .database import PlayerDatabase
from .economy import CoinEconomy
from .feed import FeedPublisher
from .market import MarketSetting
from .metrics_server import ArmCoinMetricsServer
from .notifier import OutcomeNotifier
from .payout import PayoutCoordinator
from .registry import ParticipantRegistry


class ArmCoinApp:
    """Top-level application orchestrator."""

    def __init__(self, config_path: str) -> None:
        self.config_path = Path(config_path)
        self.logger = logging.getLogger("armcoin")

        # Components (initialized in start())
        self.config: ArmCoinConfig | None = None
        self.client: KrytenClient | None = None
        self.db: PlayerDatabase | None = None
        self.economy: CoinEconomy | None = None
        self.market: MarketSetting | None = None
        self.feed: FeedPublisher | None = None
        self.chat: ChatSender | None = None
        self.chatters: TwitchChattersClient | None = None
        self.notifier: OutcomeNotifier | None = None
        self.payout: PayoutCoordinator | None = None
        self.router: CommandRouter | None = None
        self.registry: ParticipantRegistry | None = None
        self.bot: ChatBotService | None = None
        self.command_handler: CommandHandler | None = None
        self.metrics_server: ArmCoinMetricsServer | None = None

        # State
        self._running = False
        self._start_time: float | None = None

        # Counters (for metrics)
        self.events_processed: int = 0

    @property
    def commands_processed(self) -> int:
        return self.router.commands_processed if self.router else 0

    @property
    def wagers_total(self) -> int:
        return self.router.wagers_total if self.router else 0

    @property
    def payouts_total(self) -> int:
        return self.payout.payouts_total if self.payout else 0

    @property
    def uptime_seconds(self) -> float:
        if self._start_time is None:
            return 0.0
        return time.time() - self._start_time

    def build_components(self, config: ArmCoinConfig, client: KrytenClient | None) -> None:
        """Construct every domain component once, wired by reference."""
        self.config = config
        self.client = client
        self.db = PlayerDatabase(config.database.path, self.logger)
        self.economy = CoinEconomy(config, self.db, self.logger.getChild("economy"))
        self.market = MarketSetting(self.db, self.logger.getChild("market"))
        self.feed = FeedPublisher(config.feed, client, self.logger.getChild("feed"))
        self.chat = ChatSender(config, client, self.logger.getChild("chat"))
        self.chatters = TwitchChattersClient(config.twitch, self.logger.getChild("chatters"))
        self.notifier = OutcomeNotifier(config, self.chat, self.feed, self.logger.getChild("notifier"))
        self.payout = PayoutCoordinator(
            config=config,
            economy=self.economy,
            chatters=self.chatters,
            notifier=self.notifier,
            logger=self.logger.getChild("payout"),
        )
        self.router = CommandRouter(
            config=config,
            database=self.db,
            economy=self.economy,
            market=self.market,
            payout=self.payout,
            chatters=self.chatters,
            notifier=self.notifier,
            logger=self.logger.getChild("commands"),
        )
        self.registry = ParticipantRegistry(self.db, self.logger.getChild("registry"))
        self.bot = ChatBotService(
            config=config,
            registry=self.registry,
            router=self.router,
            payout=self.payout,
            notifier=self.notifier,
            logger=self.logger.getChild("bot"),
        )

    def register_handlers(self) -> None:
        """Register transport event handlers. Must run before connect()."""

        @self.client.on("adduser")
        async def handle_join(event):
            try:
                self.events_processed += 1
                await self.bot.handle_join(event.channel, event.username)
            except Exception:
                self.logger.exception("adduser handler error for %s", getattr(event, "username", "?"))

        @self.client.on("userleave")
        async def handle_leave(event):
            try:
                self.events_processed += 1
                await self.bot.handle_part(event.channel, event.username)
            except Exception:
                self.logger.exception("userleave handler error for %s", getattr(event, "username", "?"))

        @self.client.on("chatmsg")
        async def handle_chatmsg(event):
            try:
                self.events_processed += 1
                username = event.username
                self.bot.submit_message(ChatMessage(
                    channel=event.channel,
                    username=username,
                    text=event.message,
                    is_self=self.bot.is_self(username),
                ))
            except Exception:
                self.logger.exception("chatmsg handler error for %s", getattr(event, "username", "?"))

    async def start(self) -> None:
        """Start the bot service — canonical kryten-py sequence."""
        self.logger.info("Starting kryten-armcoin...")
        self._start_time = time.time()

        # 1. Load and validate config
        config = load_config(str(self.config_path))
        self.logger.info("Config loaded: %d channel(s)", len(config.channels))
        if config.bot.silent_mode:
            self.logger.info("Silent mode ON: chat replies are logged, not sent")

        # 2. Create KrytenClient and domain components
        self.build_components(config, KrytenClient(config))

        # 3. Initialize database
        await self.db.initialize()
        self.logger.info("Database initialized: %s", config.database.path)

        # 3b. Registry warm start and market state
        await self.registry.load()
        state = await self.market.load()
        self.logger.info("Market state: %s", state.name.lower())

        # 4. Start chatter-list HTTP client
        await self.chatters.start()

        # 5. Register event handlers BEFORE connect
        self.register_handlers()

        # 6. Connect to NATS
        await self.client.connect()
        self.logger.info("Connected to NATS")

        # 6b. Overlay feed bucket
        await self.feed.start()

        # 7. Subscribe to subscription events
        await self.client.subscribe(
            config.payout.subscription_subject,
            self._handle_subscription_event,
        )

        # 8. Start metrics server
        metrics_port = config.metrics.port if config.metrics else 28287
        self.metrics_server = ArmCoinMetricsServer(self, port=metrics_port)
        await self.metrics_server.start()
        self.logger.info("Metrics server started on port %d", metrics_port)

        # 9. Start request-reply command handler
        self.command_handler = CommandHandler(self, self.client, self.logger)
        await self.command_handler.connect()
        self.logger.info("Command handler ready on %s", CommandHandler.SUBJECT)

        # 10. Mark running
        self._running = True
        self.logger.info("kryten-armcoin started successfully (v%s)", __version__)

        # 11. Block on client event loop
        await self.client.run()

    async def stop(self) -> None:
        """Gracefully shut down all components in reverse order."""
        if not self._running:
            return
        self.logger.info("Shutting down kryten-armcoin...")
        self._running = False

        if self.bot:
            await self.bot.stop()
        if self.metrics_server:
            await self.metrics_server.stop()
        if self.chatters:
            await self.chatters.stop()
        if self.client:
            await self.client.stop()

        self.logger.info("kryten-armcoin stopped.")

    @staticmethod
    def _decode_payload(msg: Any) -> dict:
        if isinstance(msg, dict):
            return msg
        data = getattr(msg, "data", msg)
        if isinstance(data, (bytes, bytearray)):
            data = data.decode("utf-8")
        if isinstance(data, str):
            data = json.loads(data)
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected subscription payload: {data!r}")
        return data

    async def _handle_subscription_event(self, msg: Any) -> None:
        """Handle a channel subscription published by the platform bridge."""
        try:
            self.events_processed += 1
            payload = self._decode_payload(msg)
            username = payload.get("username")
            if not username:
                self.logger.warning("Subscription event without username: %s", payload)
                return
            channel = payload.get("channel") or self.config.channels[0].channel
            await self.bot.handle_subscription(channel, username)
        except Exception:
            self.logger.exception("Subscription handler error")
