"""Entry point: build the AppContext from settings, seed the board, run agent loops until interrupted."""

import asyncio
import logging
import signal
from pathlib import Path

from dotenv import load_dotenv

from musketeer.context import AppContext
from musketeer.logging_config import setup_logging
from musketeer.settings import get_setting, load_settings

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _install_signal_handlers(shutdown_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown_event.set)
        except NotImplementedError:
            # Windows event loops do not support add_signal_handler
            pass


async def main_async() -> None:
    """Bootstrap: settings -> logging -> context -> external tools -> seed -> start loops -> wait."""
    settings = load_settings()
    setup_logging(_PROJECT_ROOT, settings)
    app = AppContext.from_settings(settings, _PROJECT_ROOT)

    mcp_config = _PROJECT_ROOT / get_setting(settings, "mcp.config_file", "config/mcp.json")
    connected = await app.load_external_tools(mcp_config)
    logger.info("external tool servers connected: %d", connected)

    seeded = app.seed_tasks(settings.get("tasks") or [])
    logger.info("seeded %d task(s)", seeded)

    for entry in settings.get("agents") or []:
        if not isinstance(entry, dict) or not entry.get("name"):
            logger.warning("skipping agent entry without name: %r", entry)
            continue
        agent = app.spawn_agent(
            str(entry["name"]), provider=entry.get("provider"), model=entry.get("model")
        )
        app.start_agent(agent.id)

    shutdown_event = asyncio.Event()
    _install_signal_handlers(shutdown_event)
    try:
        await shutdown_event.wait()
    except asyncio.CancelledError:
        pass
    finally:
        await app.shutdown()


def main() -> None:
    """Synchronous entry for the coordinator process."""
    load_dotenv(_PROJECT_ROOT / ".env")
    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        pass


__all__ = ["main"]
