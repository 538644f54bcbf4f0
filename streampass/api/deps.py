"""Dependency wiring for the HTTP surface."""
from functools import lru_cache

from streampass.core.config import settings
from streampass.core.database import create_all_tables
from streampass.features.streams.http_client import HttpStreamingProtocol
from streampass.features.streams.memory import InMemoryStreamingProtocol
from streampass.features.streams.protocol import StreamingProtocol
from streampass.features.subscription.service import SubscriptionApp


def build_protocol() -> StreamingProtocol:
    if settings.STREAM_PROTOCOL_BACKEND == "http":
        return HttpStreamingProtocol()
    return InMemoryStreamingProtocol(address=settings.STREAM_PROTOCOL_HOST or "protocol-host")


@lru_cache(maxsize=1)
def get_subscription_app() -> SubscriptionApp:
    """Process-wide app built from settings (override in tests)."""
    protocol = build_protocol()
    create_all_tables()
    app = SubscriptionApp.from_settings(protocol)
    app.initialize()
    if isinstance(protocol, InMemoryStreamingProtocol):
        protocol.register_app(app.config.receiver, app)
    return app
