"""CLI entry point for kryten-armcoin."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Sequence

from .config import DEV_MODE_ENV, SILENT_MODE_ENV, load_config
from .main import ArmCoinApp

DEFAULT_CONFIG_PATHS = (
    "/etc/kryten/kryten-armcoin/config.yaml",
    "./config.yaml",
)

logger = logging.getLogger("armcoin")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Kryten ArmCoin — chat coin and wager bot")
    parser.add_argument("--config", type=str, help="Path to config.yaml")
    parser.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--validate-config", action="store_true", help="Validate config and exit without starting")
    parser.add_argument("--silent", action="store_true", help=f"Log chat replies instead of sending them (sets {SILENT_MODE_ENV})")
    parser.add_argument("--dev", action="store_true", help=f"Enable dev-only commands such as !payout (sets {DEV_MODE_ENV})")
    return parser.parse_args(argv)


def resolve_config_path(
    explicit: str | None, candidates: Sequence[str] = DEFAULT_CONFIG_PATHS,
) -> str | None:
    """``--config`` wins; otherwise the first existing default location."""
    if explicit:
        return explicit
    for candidate in candidates:
        if Path(candidate).exists():
            return candidate
    return None


def apply_flag_overrides(args: argparse.Namespace) -> None:
    """Map CLI switches onto the env flags read by load_config."""
    if args.silent:
        os.environ[SILENT_MODE_ENV] = "1"
    if args.dev:
        os.environ[DEV_MODE_ENV] = "1"


def validate_config(config_path: str) -> int:
    try:
        config = load_config(config_path)
    except Exception as e:
        logger.error("Config validation failed: %s", e)
        return 1
    logger.info(
        "Config is valid: %d channel(s), currency %s, silent=%s, dev=%s",
        len(config.channels), config.currency.name,
        config.bot.silent_mode, config.bot.dev_mode,
    )
    return 0


def install_signal_handlers(app: ArmCoinApp) -> None:
    # Unix only; Windows falls back to KeyboardInterrupt
    if sys.platform == "win32":
        return
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: asyncio.ensure_future(app.stop()))


async def main_async(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    apply_flag_overrides(args)

    config_path = resolve_config_path(args.config, DEFAULT_CONFIG_PATHS)
    if not config_path:
        logger.error("No config file found. Use --config or place config.yaml in CWD.")
        return 1

    if args.validate_config:
        return validate_config(config_path)

    app = ArmCoinApp(config_path)
    install_signal_handlers(app)
    try:
        await app.start()
    except KeyboardInterrupt:
        pass
    finally:
        await app.stop()
    return 0


def main() -> None:
    """Sync entry point for pyproject.toml [project.scripts]."""
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
