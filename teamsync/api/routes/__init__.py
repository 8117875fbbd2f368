"""Route modules for the TeamSync server."""

from .ai_routes import register_ai_routes
from .auth_routes import register_auth_routes
from .event_routes import register_event_routes
from .feed_routes import register_feed_routes
from .user_routes import register_user_routes

__all__ = [
    "register_ai_routes",
    "register_auth_routes",
    "register_event_routes",
    "register_feed_routes",
    "register_user_routes",
]
