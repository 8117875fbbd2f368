"""teamsync - team scheduling calendar with recurring events.

The calendar core (recurrence expansion, series edits, visibility) lives in
``teamsync.domain``; ``teamsync.api`` serves it over HTTP.
"""

__version__ = "1.0.0"

from typing import Optional


def run_server(args: Optional[object] = None) -> None:
    """Load configuration and run the HTTP server until interrupted.

    Configuration precedence, lowest first: config file, ``.env`` /
    ``TEAMSYNC_*`` environment variables, command line arguments.

    Args:
        args: Optional argparse namespace with ``config``, ``port`` and ``store``
    """
    import logging
    import os

    from .logging_config import configure_logging

    configure_logging(os.environ.get("TEAMSYNC_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from .api.server import start_server
    from .config_loader import load_config
    from .core.config_manager import ConfigManager

    overrides = ConfigManager().load_full_config()

    if args is not None:
        port = getattr(args, "port", None)
        if port is not None:
            overrides["server_port"] = int(port)
            logger.debug("Applied command line port override: %d", int(port))
        store = getattr(args, "store", None)
        if store:
            overrides["store_backend"] = "local"
            overrides["store_path"] = store

    cfg = load_config(getattr(args, "config", None), overrides=overrides)
    configure_logging(cfg.log_level)

    logger.info("Starting TeamSync %s (%s store)", __version__, cfg.store_backend)
    logger.debug(
        "Resolved configuration (diagnostic): %s",
        {k: getattr(cfg, k) for k in ("store_backend", "log_level", "server_bind", "server_port")},
    )
    start_server(cfg)
