import asyncio
import logging
import os
import signal
import sys

from .core.bot import Bot
from .core.config import BotSettings, validate_env_vars
from .core.dashboard import DashboardServer
from .core.errors import StatsLoadError
from .core.logging import setup_logging
from .services.catalog import CatalogCache
from .services.seventv import SevenTVClient
from .services.tracker import EmoteTracker
from .services.twitch_api import TwitchAPIClient
from .shared.persistence import StatsPersistence
from .shared.repositories.usage import UsageStore

LOGGER: logging.Logger = logging.getLogger("Bot")


async def run(settings: BotSettings) -> int:
    channels = settings.channel_list
    LOGGER.info(f"Loaded configuration for {len(channels)} channel(s): {', '.join(channels)}")

    store = UsageStore()
    persistence = StatsPersistence(
        store,
        settings.stats_file,
        settings.autosave_interval,
        cdn_url=settings.seventv_cdn_url,
    )
    try:
        await persistence.load()
    except StatsLoadError:
        LOGGER.error(f"Refusing to start: fix or move {settings.stats_file} first")
        return 1

    twitch_api = TwitchAPIClient(settings.client_id, settings.client_secret)
    seventv = SevenTVClient(
        twitch_api.get_user_id,
        api_url=settings.seventv_api_url,
        cdn_url=settings.seventv_cdn_url,
    )
    catalogs = CatalogCache(seventv.fetch_channel, ttl=settings.catalog_ttl)
    tracker = EmoteTracker(catalogs, store)
    dashboard = DashboardServer(
        store,
        catalogs,
        host=settings.dashboard_host,
        port=settings.dashboard_port,
        top_limit=settings.export_top_limit,
    )

    main_task = asyncio.current_task()
    loop = asyncio.get_running_loop()
    if main_task is not None:
        try:
            loop.add_signal_handler(signal.SIGTERM, main_task.cancel)
        except NotImplementedError:
            pass  # Windows: Ctrl+C still arrives as KeyboardInterrupt

    persistence.start_autosave()
    try:
        await dashboard.start()

        async with Bot(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            bot_id=settings.bot_id,
            owner_id=settings.owner_id,
            channels=channels,
            tracker=tracker,
            catalogs=catalogs,
        ) as bot:
            LOGGER.info("Bot is now listening to chat messages. Press Ctrl+C to stop.")
            await bot.start()
    finally:
        LOGGER.info("Shutting down bot...")
        await persistence.stop_autosave()
        await dashboard.stop()
        await seventv.close()
        await twitch_api.close()

    return 0


def main() -> None:
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    try:
        settings = validate_env_vars()
    except ValueError:
        sys.exit(1)

    if settings.log_level != os.getenv("LOG_LEVEL", "INFO").upper():
        setup_logging(settings.log_level)

    try:
        code = asyncio.run(run(settings))
    except KeyboardInterrupt:
        LOGGER.warning("Shutting down due to KeyboardInterrupt...")
        code = 0
    except asyncio.CancelledError:
        LOGGER.warning("Shutting down due to SIGTERM...")
        code = 0

    sys.exit(code)


if __name__ == "__main__":
    main()
