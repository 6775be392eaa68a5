"""Configuration system for kryten-armcoin.

Pydantic models for every section with sensible defaults. The top-level
ArmCoinConfig extends KrytenConfig, so ``nats``, ``channels``, ``service``
and ``metrics`` come from kryten-py.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from kryten import KrytenConfig
from pydantic import BaseModel, Field

from .utils import env_flag

# Environment flags that override the file (read once, at load time)
SILENT_MODE_ENV = "SILENT_BOT_MODE"
DEV_MODE_ENV = "DEV_MODE"


# ═══════════════════════════════════════════════════════════════
#  Core
# ═══════════════════════════════════════════════════════════════

class DatabaseConfig(BaseModel):
    path: str = "armcoin.db"


class CurrencyConfig(BaseModel):
    name: str = "ArmCoin"


class BotConfig(BaseModel):
    username: str = "ArmBot"
    silent_mode: bool = Field(default=False, description="Log chat replies instead of sending them")
    dev_mode: bool = Field(default=False, description="Enables the !payout subscription simulation")
    github_url: str = "https://github.com/thananon/twitch_tools"


class TwitchConfig(BaseModel):
    """Chatter-list lookup endpoint."""
    api_base_url: str = "https://tmi.twitch.tv"
    channel_name: str = ""
    timeout_seconds: float = 10.0


class FeedConfig(BaseModel):
    """Overlay feed — recent entries are mirrored to a kryten KV bucket."""
    bucket: str = "kryten_armcoin_feed"
    key: str = "entries"
    max_entries: int = 50


class PayoutConfig(BaseModel):
    payday_amount: int = 1
    subscription_bonus: int = 10
    subscription_amount: int = 1
    subscription_subject: str = "kryten.armcoin.subscription"


# ═══════════════════════════════════════════════════════════════
#  Wagers
# ═══════════════════════════════════════════════════════════════

class WagerConfig(BaseModel):
    """Odds for the default wager engine. Rates are per roll, jackpot first."""
    jackpot_rate: float = 0.01
    jackpot_multiplier: int = 10
    win_rate: float = 0.45
    win_multiplier: int = 2
    default_gacha_amount: int = 1


# ═══════════════════════════════════════════════════════════════
#  Message templates
# ═══════════════════════════════════════════════════════════════

class AllinTemplatesConfig(BaseModel):
    win_jackpot_chat: str = (
        "ALL-IN JACKPOT!! @{user} bet everything ({bet}) -> won {win} {currency} ({balance})."
    )
    win_jackpot_feed: str = (
        '<b class="badge bg-primary">{user}</b> <i class="fas fa-coins"></i> ALL-IN JACKPOT!!! '
        '<i class="fas fa-level-up-alt"></i> +{win} {currency} ({balance})'
    )
    win_chat: str = "@{user} bet everything ({bet}) -> won {win} {currency}"
    win_feed: str = (
        '<b class="badge bg-primary">{user}</b> <i class="fas fa-hand-holding-usd"></i> '
        '<i class="fas fa-level-up-alt"></i> +{win} {currency}'
    )
    lose_chat: str = "@{user} bet everything ({bet}) -> busted!"
    lose_feed: str = (
        '<b class="badge bg-danger">{user}</b> <i class="fas fa-user-injured"></i> '
        '<i class="fas fa-level-down-alt"></i> -{bet} {currency}'
    )


class GachaTemplatesConfig(BaseModel):
    win_jackpot_chat: str = "JACKPOT!! @{user} bet {bet} -> won {win} {currency} ({balance})."
    win_jackpot_feed: str = (
        '<b class="badge bg-primary">{user}</b> <i class="fas fa-coins"></i> JACKPOT!!! '
        '<i class="fas fa-level-up-alt"></i> +{win} {currency} ({balance})'
    )
    win_chat: str = "@{user} bet {bet} -> won {win} {currency} ({balance})."
    win_feed: str = (
        '<b class="badge bg-primary">{user}</b> <i class="fas fa-hand-holding-usd"></i> '
        '<i class="fas fa-level-up-alt"></i> +{win} {currency} ({balance})'
    )
    lose_chat: str = "@{user} bet {bet} -> busted! ({balance})."
    lose_feed: str = (
        '<b class="badge bg-danger">{user}</b> <i class="fas fa-user-injured"></i> '
        '<i class="fas fa-level-down-alt"></i> -{bet} {currency} ({balance})'
    )


class MessagesConfig(BaseModel):
    balance: str = "@{user} has {balance} {currency}."
    no_coins: str = "@{user} has 0 {currency}."
    insufficient_funds: str = "@{user} doesn't have enough {currency}!"
    give: str = "@{user} conjured {amount} for {target} ({balance})."
    payout_summary: str = (
        "{user} received {bonus} {currency} for subscribing and "
        "{count} members received {amount} {currency}."
    )
    market_open_feed: str = '<i class="fas fa-shopping-bag"></i> The market is open!'
    market_close_feed: str = '<i class="fas fa-stop-circle"></i> Market closed!'
    payout_feed: str = (
        '<i class="fas fa-gift"></i> <b class="badge bg-info">{count}</b> members received '
        '{amount} {currency} <i class="fas fa-coins"></i> thanks to '
        '<b class="badge bg-primary">{user}</b>'
    )
    subscription_feed: str = (
        '<b class="badge bg-primary">{user}</b> received <i class="fas fa-coins"></i> '
        "{amount} {currency} for subscribing"
    )
    allin: AllinTemplatesConfig = Field(default_factory=AllinTemplatesConfig)
    gacha: GachaTemplatesConfig = Field(default_factory=GachaTemplatesConfig)


# ═══════════════════════════════════════════════════════════════
#  Top-Level Config
# ═══════════════════════════════════════════════════════════════

class ArmCoinConfig(KrytenConfig):
    """Full bot config — extends KrytenConfig with the armcoin sections."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    currency: CurrencyConfig = Field(default_factory=CurrencyConfig)
    bot: BotConfig = Field(default_factory=BotConfig)
    ignored_users: list[str] = Field(default_factory=list)
    twitch: TwitchConfig = Field(default_factory=TwitchConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    payout: PayoutConfig = Field(default_factory=PayoutConfig)
    wager: WagerConfig = Field(default_factory=WagerConfig)
    messages: MessagesConfig = Field(default_factory=MessagesConfig)
    # NOTE: metrics is inherited from KrytenConfig (kryten.config.MetricsConfig)


# ═══════════════════════════════════════════════════════════════
#  Config Loading
# ═══════════════════════════════════════════════════════════════

def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in string values."""
    if isinstance(obj, str):
        return re.sub(
            r"\$\{([^}:]+)(?::-(.*?))?\}",
            lambda m: os.environ.get(m.group(1), m.group(2) or ""),
            obj,
        )
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


def _apply_env_flags(raw: dict) -> dict:
    """Let SILENT_BOT_MODE / DEV_MODE override the bot section when set."""
    bot = dict(raw.get("bot") or {})
    if SILENT_MODE_ENV in os.environ:
        bot["silent_mode"] = env_flag(os.environ[SILENT_MODE_ENV])
    if DEV_MODE_ENV in os.environ:
        bot["dev_mode"] = env_flag(os.environ[DEV_MODE_ENV])
    if bot:
        raw["bot"] = bot
    return raw


def load_config(config_path: str) -> ArmCoinConfig:
    """Load and validate YAML config file into ArmCoinConfig."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError("Config file must contain a YAML mapping at the top level.")

    raw = _apply_env_flags(_expand_env_vars(raw))
    return ArmCoinConfig(**raw)
