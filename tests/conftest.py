"""Shared test fixtures for kryten-armcoin."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from kryten_armcoin.bot import ChatBotService
from kryten_armcoin.chat_sender import ChatSender
from kryten_armcoin.chatters import ChatterSnapshot, TwitchChattersClient
from kryten_armcoin.commands import CommandRouter
from kryten_armcoin.config import ArmCoinConfig
from kryten_armcoin.database import PlayerDatabase
from kryten_armcoin.economy import CoinEconomy
from kryten_armcoin.feed import FeedPublisher
from kryten_armcoin.market import MarketSetting
from kryten_armcoin.notifier import OutcomeNotifier
from kryten_armcoin.payout import PayoutCoordinator
from kryten_armcoin.registry import ParticipantRegistry


# ── Minimal config dict matching ArmCoinConfig schema ────────

def make_config_dict(**overrides) -> dict:
    """Build a valid config dict with sensible test defaults."""
    base = {
        "nats": {"servers": ["nats://localhost:4222"]},
        "channels": [{"domain": "twitch.tv", "channel": "testchannel"}],
        "service": {"name": "armcoin"},
        "database": {"path": ":memory:"},
        "currency": {"name": "ArmCoin"},
        "bot": {"username": "TestBot", "silent_mode": False, "dev_mode": True},
        "ignored_users": ["IgnoredBot"],
        "twitch": {
            "api_base_url": "https://tmi.test.tv",
            "channel_name": "testchannel",
            "timeout_seconds": 5,
        },
        "feed": {"bucket": "test_feed", "key": "entries", "max_entries": 5},
        "payout": {
            "payday_amount": 1,
            "subscription_bonus": 10,
            "subscription_amount": 1,
            "subscription_subject": "test.subscription",
        },
        "wager": {
            "jackpot_rate": 0.01,
            "jackpot_multiplier": 10,
            "win_rate": 0.45,
            "win_multiplier": 2,
            "default_gacha_amount": 1,
        },
    }
    base.update(overrides)
    return base


def fixed_rng(value: float) -> MagicMock:
    """An rng whose random() always returns ``value``."""
    rng = MagicMock()
    rng.random.return_value = value
    return rng


# Roll values for the default test odds (jackpot < 0.01 <= win < 0.46 <= lose)
ROLL_JACKPOT = 0.005
ROLL_WIN = 0.2
ROLL_LOSE = 0.9


@pytest.fixture
def sample_config_dict() -> dict:
    """Return a config dict suitable for tests."""
    return make_config_dict()


@pytest.fixture
def sample_config(sample_config_dict: dict) -> ArmCoinConfig:
    """Return a parsed ArmCoinConfig."""
    return ArmCoinConfig(**sample_config_dict)


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> str:
    """Return a temporary SQLite database path."""
    return str(tmp_path / "test_armcoin.db")


@pytest_asyncio.fixture
async def database(tmp_db_path: str) -> AsyncGenerator[PlayerDatabase, None]:
    """Provide an initialized database with temp file."""
    db = PlayerDatabase(tmp_db_path, logging.getLogger("test"))
    await db.initialize()
    yield db


@pytest.fixture
def mock_client() -> MagicMock:
    """Return a mock KrytenClient with async methods."""
    client = MagicMock()
    client.send_chat = AsyncMock(return_value="corr-id-456")
    client.kv_put = AsyncMock()
    client.kv_get = AsyncMock(return_value=None)
    client.get_or_create_kv_store = AsyncMock()
    client.connect = AsyncMock()
    client.run = AsyncMock()
    client.stop = AsyncMock()
    client.subscribe = AsyncMock()
    client.subscribe_request_reply = AsyncMock()
    return client


@pytest.fixture
def chatter_snapshot() -> ChatterSnapshot:
    return ChatterSnapshot(viewers=["alice", "bob"], moderators=["carol"], vips=[])


@pytest.fixture
def mock_chatters(chatter_snapshot: ChatterSnapshot) -> MagicMock:
    """Mock TwitchChattersClient returning ``chatter_snapshot``."""
    chatters = MagicMock(spec=TwitchChattersClient)
    chatters.fetch = AsyncMock(return_value=chatter_snapshot)
    chatters.start = AsyncMock()
    chatters.stop = AsyncMock()
    return chatters


# ── Domain component fixtures ───────────────────────────────

@pytest.fixture
def rng() -> MagicMock:
    return fixed_rng(ROLL_LOSE)


@pytest.fixture
def economy(sample_config: ArmCoinConfig, database: PlayerDatabase, rng: MagicMock) -> CoinEconomy:
    return CoinEconomy(sample_config, database, logging.getLogger("test"), rng=rng)


@pytest.fixture
def chat_sender(sample_config: ArmCoinConfig, mock_client: MagicMock) -> ChatSender:
    return ChatSender(sample_config, mock_client, logging.getLogger("test"))


@pytest.fixture
def feed(sample_config: ArmCoinConfig, mock_client: MagicMock) -> FeedPublisher:
    return FeedPublisher(sample_config.feed, mock_client, logging.getLogger("test"))


@pytest.fixture
def notifier(
    sample_config: ArmCoinConfig, chat_sender: ChatSender, feed: FeedPublisher,
) -> OutcomeNotifier:
    return OutcomeNotifier(sample_config, chat_sender, feed, logging.getLogger("test"))


@pytest.fixture
def market(database: PlayerDatabase) -> MarketSetting:
    return MarketSetting(database, logging.getLogger("test"))


@pytest.fixture
def payout(
    sample_config: ArmCoinConfig,
    economy: CoinEconomy,
    mock_chatters: MagicMock,
    notifier: OutcomeNotifier,
) -> PayoutCoordinator:
    return PayoutCoordinator(
        config=sample_config,
        economy=economy,
        chatters=mock_chatters,
        notifier=notifier,
        logger=logging.getLogger("test"),
    )


@pytest.fixture
def router(
    sample_config: ArmCoinConfig,
    database: PlayerDatabase,
    economy: CoinEconomy,
    market: MarketSetting,
    payout: PayoutCoordinator,
    mock_chatters: MagicMock,
    notifier: OutcomeNotifier,
) -> CommandRouter:
    return CommandRouter(
        config=sample_config,
        database=database,
        economy=economy,
        market=market,
        payout=payout,
        chatters=mock_chatters,
        notifier=notifier,
        logger=logging.getLogger("test"),
    )


@pytest.fixture
def registry(database: PlayerDatabase) -> ParticipantRegistry:
    return ParticipantRegistry(database, logging.getLogger("test"))


@pytest_asyncio.fixture
async def bot_service(
    sample_config: ArmCoinConfig,
    registry: ParticipantRegistry,
    router: CommandRouter,
    payout: PayoutCoordinator,
    notifier: OutcomeNotifier,
) -> AsyncGenerator[ChatBotService, None]:
    service = ChatBotService(
        config=sample_config,
        registry=registry,
        router=router,
        payout=payout,
        notifier=notifier,
        logger=logging.getLogger("test"),
    )
    yield service
    await service.stop()


# ── MockKrytenClient ────────────────────────────────────────

class MockKrytenClient:
    """Mock kryten-py client for integration testing.

    Records all method calls for assertion.
    """

    def __init__(self) -> None:
        self.sent_chats: list[tuple[str, str]] = []
        self.subscriptions: dict[str, Any] = {}
        self._handlers: dict[str, list] = {}
        self._request_reply_handlers: dict[str, Any] = {}
        self._kv_store: dict[str, dict[str, Any]] = {}

    async def send_chat(
        self, channel: str, message: str, *, domain: str | None = None,
    ) -> str:
        self.sent_chats.append((channel, message))
        return "mock-corr-id"

    async def kv_get(
        self, bucket_name: str, key: str, default: Any = None, parse_json: bool = False,
    ) -> Any:
        return self._kv_store.get(bucket_name, {}).get(key, default)

    async def kv_put(
        self, bucket_name: str, key: str, value: Any, *, as_json: bool = False,
    ) -> None:
        self._kv_store.setdefault(bucket_name, {})[key] = value

    async def get_or_create_kv_store(self, bucket_name: str, description: str = "") -> Any:
        self._kv_store.setdefault(bucket_name, {})
        return MagicMock()

    async def connect(self) -> None:
        pass

    async def run(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def subscribe(self, subject: str, handler: Any) -> None:
        self.subscriptions[subject] = handler

    async def subscribe_request_reply(self, subject: str, handler: Any) -> None:
        self._request_reply_handlers[subject] = handler

    def on(self, event_name: str, channel: str | None = None, domain: str | None = None):
        """Match kryten-py's ``on()`` decorator signature."""
        def decorator(func):
            self._handlers.setdefault(event_name, []).append(func)
            return func
        return decorator

    async def fire_event(self, event_name: str, event: Any) -> None:
        """Test helper: simulate an incoming event."""
        for handler in self._handlers.get(event_name, []):
            await handler(event)


@pytest.fixture
def mock_kryten_client() -> MockKrytenClient:
    """Return a MockKrytenClient for integration tests."""
    return MockKrytenClient()
