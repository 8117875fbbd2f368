"""teamsync.api.server: aiohttp application and server lifecycle.

This module:
- builds the event store / user directory selected by the configuration
- wires a ``CalendarSession`` into the route modules
- runs the HTTP server plus the session's polling refresh until signalled
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import time
from pathlib import Path
from typing import Any, Optional

from aiohttp import web

from ..ai_parser import GeminiEventParser
from ..config_loader import Config
from ..core.http_client import close_all_clients
from ..exceptions import StoreError
from ..session import CalendarSession
from ..stores import LocalJsonStore, RemoteStore
from .middleware import correlation_id_middleware, error_middleware
from .routes import (
    register_ai_routes,
    register_auth_routes,
    register_event_routes,
    register_feed_routes,
    register_user_routes,
)

logger = logging.getLogger(__name__)

MAX_PORT_ATTEMPTS = 10


def build_session(config: Config) -> CalendarSession:
    """Create the stores named by ``config.store_backend`` and a session over them."""
    store: Any
    if config.store_backend == "remote":
        if not config.remote_api_url:
            raise ValueError("store_backend 'remote' requires remote_api_url")
        store = RemoteStore(config.remote_api_url)
        logger.info("Using remote store at %s", config.remote_api_url)
    else:
        store = LocalJsonStore(Path(config.store_path))
        logger.info("Using local store %s", store.path)
    return CalendarSession(store, store, refresh_interval=config.refresh_interval_seconds)


def build_ai_parser(config: Config) -> Optional[GeminiEventParser]:
    if not config.ai_api_key:
        logger.info("No AI API key configured; quick fill disabled")
        return None
    return GeminiEventParser(config.ai_api_key, model=config.ai_model, endpoint=config.ai_endpoint)


def create_app(
    session: CalendarSession,
    ai_parser: Optional[GeminiEventParser] = None,
) -> web.Application:
    """Create the aiohttp application with every route wired to ``session``."""
    app = web.Application(middlewares=[correlation_id_middleware, error_middleware])

    register_auth_routes(app, session)
    register_event_routes(app, session)
    register_user_routes(app, session)
    register_ai_routes(app, session, ai_parser)
    register_feed_routes(app, session, started_at=time.time())

    async def _shutdown(_app: web.Application) -> None:
        logger.info("Application shutdown requested")
        await session.stop_polling()

    app.on_shutdown.append(_shutdown)
    return app


async def _start_site(runner: web.AppRunner, host: str, configured_port: int) -> int:
    """Bind the configured port, or the next free one within MAX_PORT_ATTEMPTS."""
    for port_offset in range(MAX_PORT_ATTEMPTS):
        port = configured_port + port_offset
        site = web.TCPSite(runner, host=host, port=port)
        try:
            await site.start()
        except OSError as e:
            if "address already in use" not in str(e).lower():
                logger.exception("Failed to start server on %s:%d", host, port)
                raise
            logger.debug("Port %d in use, trying next port", port)
            continue
        if port != configured_port:
            logger.warning(
                "Configured port %d was in use, using port %d instead", configured_port, port
            )
        return port

    raise RuntimeError(
        f"No available port found in range {configured_port}-"
        f"{configured_port + MAX_PORT_ATTEMPTS - 1}"
    )


async def _serve(config: Config, external_stop_event: Optional[asyncio.Event] = None) -> None:
    """Run the server and the polling refresh until signalled to stop.

    Args:
        config: Server configuration
        external_stop_event: Optional event to signal shutdown. If provided,
            signal handlers are not registered (the caller owns them).
    """
    stop_event = external_stop_event or asyncio.Event()
    session = build_session(config)

    logger.info("Starting initial refresh")
    try:
        await session.refresh()
        logger.info(
            "Initial refresh completed (%d series, %d users)",
            len(session.events),
            len(session.users),
        )
    except StoreError:
        logger.exception("Initial refresh failed; serving and retrying on the next poll")

    app = create_app(session, build_ai_parser(config))
    runner = web.AppRunner(app)
    await runner.setup()
    port = await _start_site(runner, config.server_bind, config.server_port)
    logger.info("Server started successfully on %s:%d", config.server_bind, port)

    session.start_polling()

    if external_stop_event is None:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await session.stop_polling()
    await runner.cleanup()
    try:
        await close_all_clients()
    except Exception as e:
        logger.warning("Error cleaning up shared HTTP clients: %s", e)
    logger.info("Server shutdown complete")


def start_server(config: Config) -> None:
    """Run the server, blocking until SIGINT/SIGTERM."""
    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
