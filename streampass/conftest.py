# streampass/conftest.py
import os
import pytest
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("SKIP_ENV_VALIDATION", "1")

from streampass.core.database import build_engine, create_all_tables
from streampass.features.streams.memory import InMemoryStreamingProtocol
from streampass.features.subscription.config import SubscriptionConfig
from streampass.features.subscription.service import SubscriptionApp

ETHER = 10**18
TOKEN = "fDAIx"
HOST = "protocol-host"
OWNER = "deployer"
RECEIVER = "streampass"
FLOW_RATE = 110_000_000
START_TIME = 1_700_000_000


class FakeClock:
    """Deterministic clock; tests move time explicitly."""

    def __init__(self, start: int = START_TIME):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


class StreamOps:
    """Sender-side flow operations against the in-memory protocol."""

    def __init__(self, protocol: InMemoryStreamingProtocol):
        self.protocol = protocol

    def create(self, sender: str, rate: int = FLOW_RATE) -> None:
        self.protocol.create_flow(sender, RECEIVER, TOKEN, rate)

    def update(self, sender: str, rate: int) -> None:
        self.protocol.update_flow(sender, RECEIVER, TOKEN, rate)

    def delete(self, sender: str) -> None:
        self.protocol.terminate_flow(sender, RECEIVER, TOKEN)

    def rate(self, sender: str) -> int:
        return self.protocol.flow_rate(sender, RECEIVER, TOKEN)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def protocol():
    return InMemoryStreamingProtocol(address=HOST)


@pytest.fixture
def config():
    return SubscriptionConfig(
        protocol_host=HOST,
        accepted_token=TOKEN,
        owner=OWNER,
        receiver=RECEIVER,
        name="TestSub",
        symbol="TESU",
        initial_tiers=[0, ETHER, 2 * ETHER, 3 * ETHER],
    )


@pytest.fixture
def sub(config, protocol, clock):
    """A fresh pass collection wired to the in-memory protocol."""
    app = SubscriptionApp.in_memory(config, protocol, clock=clock)
    protocol.register_app(RECEIVER, app)
    return app


@pytest.fixture
def streams(protocol):
    return StreamOps(protocol)


@pytest.fixture
def db_session():
    """Bare session over an empty in-memory schema."""
    engine = build_engine("sqlite://")
    create_all_tables(engine)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def api_client(sub):
    """TestClient whose routes resolve to the ``sub`` fixture."""
    from fastapi.testclient import TestClient
    from streampass.main import app
    from streampass.api.deps import get_subscription_app

    app.dependency_overrides[get_subscription_app] = lambda: sub
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
