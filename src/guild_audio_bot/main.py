#!/usr/bin/env python3
"""Console entry point: load settings, configure logging, run the bot until shutdown."""

from __future__ import annotations

import logging
import sys

from guild_audio_bot.config.container import create_container
from guild_audio_bot.config.settings import Settings, get_settings
from guild_audio_bot.domain.shared.messages import ErrorMessages, LogTemplates
from guild_audio_bot.infrastructure.discord.bot import create_bot
from guild_audio_bot.utils.logging import configure_logging

logger = logging.getLogger(__name__)


def run_bot(settings: Settings, token: str) -> int:
    """Build the container and bot, then block on the gateway connection."""
    bot = create_bot(create_container(settings), settings)

    logger.info(LogTemplates.BOT_STARTING_RUN)
    try:
        bot.run_with_graceful_shutdown(token)
    except KeyboardInterrupt:
        logger.info(LogTemplates.BOT_KEYBOARD_INTERRUPT)
    except Exception as e:
        logger.exception(LogTemplates.BOT_FATAL_ERROR, e)
        return 1
    else:
        logger.info(LogTemplates.BOT_STOPPED)
    return 0


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level, settings.logging_config_path)

    token = settings.discord.token.get_secret_value()
    if not token:
        logger.error(ErrorMessages.DISCORD_TOKEN_REQUIRED)
        return 1

    logger.info(LogTemplates.BOT_STARTING.format(environment=settings.environment))
    return run_bot(settings, token)


def cli() -> None:
    """Console script entry point (used by pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
