"""
Reaper Moderation Bot
=====================

A Discord bot that issues and tracks strikes, mutes, kicks and bans,
escalates repeated strikes, lifts expired actions on schedule and gates its
commands behind a fine-grained permission model.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. REAPER_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("REAPER_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from reaper.configuration.app_configuration import app_config
from reaper.database.database import database
from reaper.moderation.action_engine import ActionEngine
from reaper.moderation.discord_platform import (
    DiscordAuditLogPublisher,
    DiscordDirectNotifier,
    DiscordPlatformClient,
)
from reaper.permissions.resolver import PermissionResolver
from reaper.scheduler.expiry_sweeper import ExpirySweeper
from reaper.services.action_store import ActionStore
from reaper.services.guild_config_service import GuildConfigService
from reaper.services.role_recovery_service import RoleRecoveryService
from reaper.util.logger import get_logger, handle_exception, set_base_level


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for guild membership, bans and auto-moderation executions."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    intents.auto_moderation_execution = True
    return intents


def build_engine(bot: discord.Bot, store: ActionStore, config_service: GuildConfigService) -> ActionEngine:
    return ActionEngine(
        store=store,
        config=config_service,
        platform=DiscordPlatformClient(bot),
        notifier=DiscordDirectNotifier(bot),
        audit_log=DiscordAuditLogPublisher(bot),
        system_moderator_id=app_config.system_moderator_id or 0,
    )


def load_cogs(
    bot: discord.Bot,
    engine: ActionEngine,
    config_service: GuildConfigService,
    recovery_service: RoleRecoveryService,
) -> None:
    """Register all operational cogs with the provided Discord bot instance."""
    from reaper.cog.commands import config_cmds, moderation_cmds, permissions_cmds
    from reaper.cog.listener import automod_listener, role_recovery_listener, scheduler_cog

    resolver = PermissionResolver()
    sweeper = ExpirySweeper(engine.store, config_service, engine.platform)

    moderation_cmds.setup(bot, engine, resolver)
    permissions_cmds.setup(bot, resolver)
    config_cmds.setup(bot, config_service, resolver, recovery_service)
    automod_listener.setup(bot, engine)
    role_recovery_listener.setup(bot, recovery_service, config_service, engine.store, engine.platform)
    scheduler_cog.setup(bot, sweeper)

    logger.info("All cogs loaded successfully.")


def create_bot() -> discord.Bot:
    """Instantiate the Discord bot, wire the action engine and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    config_service = GuildConfigService()
    engine = build_engine(bot, ActionStore(), config_service)
    load_cogs(bot, engine, config_service, RoleRecoveryService())

    @bot.listen("on_ready")
    async def adopt_bot_identity() -> None:
        if app_config.system_moderator_id is None and bot.user is not None:
            engine.system_moderator_id = bot.user.id
        logger.info("Logged in as %s; system moderator id is %s", bot.user, engine.system_moderator_id)

    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None = None) -> None:
    """Close the Discord client, then the database."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    try:
        await database.shutdown()
    except Exception as exc:
        logger.exception("Error during database shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the database and the bot, returning an exit code."""
    token = load_environment()
    set_base_level(app_config.log_level)

    logger.info("Initializing database...")
    if not await database.initialize(app_config.database_path):
        logger.critical("Failed to initialize database at %s", app_config.database_path)
        return 1

    try:
        bot = create_bot()
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await database.shutdown()
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process code."""
    sys.excepthook = handle_exception
    logger.info("Starting Reaper…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
