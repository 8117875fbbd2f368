"""Shared HTTP client manager for the remote store and AI parser.

Keeps one pooled ``httpx.AsyncClient`` per client id instead of creating a
client per request, and recreates a client after repeated failures.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_health: dict[str, dict[str, float]] = {}
_client_lock: Optional[asyncio.Lock] = None

DEFAULT_LIMITS = httpx.Limits(
    max_connections=10,
    max_keepalive_connections=5,
)

DEFAULT_TIMEOUT = httpx.Timeout(
    connect=10.0,
    read=30.0,
    write=10.0,
    pool=30.0,
)

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": "TeamSync/1.0 (+httpx)",
    "Accept": "application/json",
}

# Recreate client after 3 consecutive errors within 5 minutes
HEALTH_ERROR_THRESHOLD = 3
HEALTH_TIMEOUT_SECONDS = 300


def _get_lock() -> asyncio.Lock:
    global _client_lock
    if _client_lock is None:
        _client_lock = asyncio.Lock()
    return _client_lock


def headers_with_request_id() -> dict[str, str]:
    """Default headers plus ``X-Request-ID`` when inside a traced request."""
    headers = DEFAULT_HEADERS.copy()

    from ..api.middleware.correlation_id import get_request_id

    request_id = get_request_id()
    if request_id != "no-request-id":
        headers["X-Request-ID"] = request_id
    return headers


async def get_shared_client(
    client_id: str = "default",
    limits: Optional[httpx.Limits] = None,
    timeout: Optional[httpx.Timeout] = None,
) -> httpx.AsyncClient:
    """Get or create a shared HTTP client with connection pooling.

    Args:
        client_id: Identifier for the client (allows multiple clients if needed)
        limits: Custom connection limits
        timeout: Custom timeout configuration

    Returns:
        Shared httpx.AsyncClient

    Raises:
        RuntimeError: If client creation fails
    """
    async with _get_lock():
        await _recreate_client_if_unhealthy(client_id)

        if client_id not in _shared_clients or _shared_clients[client_id].is_closed:
            try:
                effective_limits = limits or DEFAULT_LIMITS
                logger.debug(
                    "Creating shared HTTP client '%s' with limits: max_connections=%d, "
                    "max_keepalive=%d",
                    client_id,
                    effective_limits.max_connections,
                    effective_limits.max_keepalive_connections,
                )
                _shared_clients[client_id] = httpx.AsyncClient(
                    limits=effective_limits,
                    timeout=timeout or DEFAULT_TIMEOUT,
                    follow_redirects=True,
                    headers=DEFAULT_HEADERS,
                )
                _client_health[client_id] = {
                    "error_count": 0,
                    "last_error_time": 0,
                    "created_time": time.time(),
                }
                logger.info("Created shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.exception("Failed to create shared HTTP client '%s'", client_id)
                raise RuntimeError(f"Failed to create shared HTTP client: {e}") from e

        return _shared_clients[client_id]


async def close_all_clients() -> None:
    """Close all shared HTTP clients; called on application shutdown."""
    async with _get_lock():
        for client_id, client in _shared_clients.items():
            try:
                if not client.is_closed:
                    await client.aclose()
                    logger.debug("Closed shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)

        _shared_clients.clear()
        _client_health.clear()
        logger.info("All shared HTTP clients closed")


async def record_client_error(client_id: str = "default") -> None:
    """Record an error for health tracking."""
    async with _get_lock():
        health = _client_health.setdefault(
            client_id,
            {"error_count": 0, "last_error_time": 0, "created_time": time.time()},
        )
        health["error_count"] += 1
        health["last_error_time"] = time.time()
        logger.debug(
            "Recorded error for client '%s', total errors: %d",
            client_id,
            health["error_count"],
        )


async def record_client_success(client_id: str = "default") -> None:
    """Reset the error count of a client after a successful call."""
    async with _get_lock():
        if client_id in _client_health:
            _client_health[client_id]["error_count"] = 0


async def _recreate_client_if_unhealthy(client_id: str) -> None:
    if client_id not in _client_health:
        return

    health = _client_health[client_id]
    should_recreate = (
        health["error_count"] >= HEALTH_ERROR_THRESHOLD
        and (time.time() - health["last_error_time"]) < HEALTH_TIMEOUT_SECONDS
    )
    if should_recreate and client_id in _shared_clients:
        logger.warning(
            "Recreating unhealthy client '%s' due to %d errors in last %d seconds",
            client_id,
            health["error_count"],
            HEALTH_TIMEOUT_SECONDS,
        )
        try:
            old_client = _shared_clients[client_id]
            if not old_client.is_closed:
                await old_client.aclose()
        except Exception as e:
            logger.warning("Error closing unhealthy client '%s': %s", client_id, e)

        del _shared_clients[client_id]
        del _client_health[client_id]
