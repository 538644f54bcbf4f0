"""
Subscription app: the public face of a pass collection.

Coordinates:
- Flow lifecycle callbacks from the streaming protocol
- Pass transfers and active pass switching
- Tier reads and the owner-only tier schedule update

Every mutating entry point runs as one serialized, non-reentrant
transaction: it either commits fully or rolls back with no visible change.
Reads take no lock unless the store runs on a single shared connection
(in-memory SQLite), where they are serialized with mutations.
"""
import threading
import time
from contextlib import contextmanager, nullcontext
from typing import Callable, List, Optional, Union

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from streampass.core.database import build_engine, create_all_tables, get_db_session, get_session_factory
from streampass.core.config import Settings, settings
from streampass.core.errors import ReentrancyError
from streampass.features.passes import callbacks, registry, tracker, transfer
from streampass.features.streams.protocol import StreamingProtocol
from streampass.features.subscription.config import SubscriptionConfig
from streampass.features.tiers import engine, schedule
from streampass.models.subscription import (
    FlowCreated,
    FlowTerminated,
    FlowUpdated,
    Pass,
    SubscriberAccount,
    TierSchedule,
)

Clock = Callable[[], int]


def system_clock() -> int:
    return int(time.time())


class SubscriptionApp:
    """A pass collection bound to one store, one protocol and one config."""

    def __init__(
        self,
        config: SubscriptionConfig,
        protocol: StreamingProtocol,
        session_factory: Optional[sessionmaker] = None,
        *,
        clock: Optional[Clock] = None,
    ):
        self.config = config
        self.protocol = protocol
        self._session_factory = session_factory or get_session_factory()
        self._clock = clock or system_clock
        self._lock = threading.Lock()
        self._local = threading.local()
        bind = getattr(self._session_factory, "kw", {}).get("bind")
        self._shared_connection = isinstance(getattr(bind, "pool", None), StaticPool)

    @classmethod
    def from_settings(cls, protocol: StreamingProtocol, settings_obj: Optional[Settings] = None, **kwargs) -> "SubscriptionApp":
        return cls(SubscriptionConfig.from_settings(settings_obj or settings), protocol, **kwargs)

    @classmethod
    def in_memory(cls, config: SubscriptionConfig, protocol: StreamingProtocol, **kwargs) -> "SubscriptionApp":
        """App over a private in-memory SQLite store, already initialized."""
        bind = build_engine("sqlite://")
        create_all_tables(bind)
        app = cls(config, protocol, sessionmaker(bind=bind, autocommit=False, autoflush=False), **kwargs)
        app.initialize()
        return app

    def initialize(self) -> None:
        """Install the initial tier schedule unless one is already stored."""
        with self._mutation() as db:
            if schedule.tier_count(db) == 0:
                schedule.replace_schedule(db, self.config.initial_tiers)

    def now(self) -> int:
        return self._clock()

    @contextmanager
    def _mutation(self):
        if getattr(self._local, "busy", False):
            raise ReentrancyError("Reentrant call into subscription app")
        with self._lock:
            self._local.busy = True
            try:
                with get_db_session(self._session_factory) as db:
                    yield db
            finally:
                self._local.busy = False

    @contextmanager
    def _read(self):
        # A shared connection would expose, and on close roll back, an open mutation
        if self._shared_connection:
            if getattr(self._local, "busy", False):
                raise ReentrancyError("Read during an open mutation on a shared connection")
            guard = self._lock
        else:
            guard = nullcontext()
        with guard:
            db: Session = self._session_factory()
            try:
                yield db
            finally:
                db.close()

    # Protocol callbacks

    def handle_flow_event(self, event: Union[FlowCreated, FlowUpdated, FlowTerminated], *, host: str) -> int:
        with self._mutation() as db:
            return callbacks.handle_flow_event(db, event, config=self.config, host=host, now=self.now())

    def on_flow_created(self, token: str, sender: str, flow_rate: int, *, host: str) -> int:
        return self.handle_flow_event(FlowCreated(token=token, sender=sender, flow_rate=flow_rate), host=host)

    def on_flow_updated(self, token: str, sender: str, previous_flow_rate: int, flow_rate: int, *, host: str) -> int:
        event = FlowUpdated(token=token, sender=sender, previous_flow_rate=previous_flow_rate, flow_rate=flow_rate)
        return self.handle_flow_event(event, host=host)

    def on_flow_terminated(self, token: str, sender: str, last_flow_rate: int, *, host: str) -> int:
        event = FlowTerminated(token=token, sender=sender, last_flow_rate=last_flow_rate)
        return self.handle_flow_event(event, host=host)

    # Subscriber operations

    def transfer_from(self, caller: str, from_address: str, to_address: str, pass_id: int) -> None:
        with self._mutation() as db:
            transfer.transfer_pass(
                db,
                self.protocol,
                self.config,
                caller=caller,
                from_address=from_address,
                to_address=to_address,
                pass_id=pass_id,
                now=self.now(),
            )

    def switch_pass(self, caller: str, pass_id: int) -> int:
        with self._mutation() as db:
            return transfer.switch_pass(db, self.protocol, self.config, caller=caller, pass_id=pass_id, now=self.now())

    # Owner configuration

    def update_tier(self, caller: str, thresholds: List[int]) -> TierSchedule:
        with self._mutation() as db:
            return schedule.update_tier(db, self.config, caller=caller, thresholds=thresholds)

    # Reads

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def symbol(self) -> str:
        return self.config.symbol

    @property
    def owner(self) -> str:
        return self.config.owner

    def owner_of(self, pass_id: int) -> str:
        with self._read() as db:
            return registry.owner_of(db, pass_id)

    def balance_of(self, address: str) -> int:
        with self._read() as db:
            return registry.balance_of(db, address)

    def token_of_owner_by_index(self, address: str, index: int) -> int:
        with self._read() as db:
            return registry.token_of_owner_by_index(db, address, index)

    def total_supply(self) -> int:
        with self._read() as db:
            return registry.total_supply(db)

    def get_pass(self, pass_id: int) -> Pass:
        with self._read() as db:
            return registry.require_pass(db, pass_id)

    def pass_state(self, pass_id: int) -> bool:
        return self.get_pass(pass_id).active

    def active_pass(self, address: str) -> int:
        with self._read() as db:
            return tracker.get_active_pass_id(db, address)

    def subscriber(self, address: str) -> SubscriberAccount:
        with self._read() as db:
            return tracker.get_subscriber(db, address)

    def ttv(self, pass_id: int) -> int:
        with self._read() as db:
            return engine.pass_ttv(db, pass_id, now=self.now())

    def active_tier(self, address: str) -> int:
        with self._read() as db:
            return engine.active_tier(db, address, now=self.now())

    def tiers(self, index: int) -> int:
        with self._read() as db:
            return schedule.threshold_at(db, index)

    def tier_count(self) -> int:
        with self._read() as db:
            return schedule.tier_count(db)

    def tier_schedule(self) -> TierSchedule:
        with self._read() as db:
            return schedule.get_schedule(db)
