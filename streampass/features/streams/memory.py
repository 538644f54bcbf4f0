"""
In-process streaming protocol host.

Keeps one flow per (token, sender, receiver), rejects duplicates the way the
real protocol does, and delivers lifecycle callbacks to the registered
receiver app. A callback failure reverts the flow change, so the host and
the app never disagree about a flow.
"""
import logging
from typing import Dict, Optional, Tuple

from streampass.core.errors import DuplicateStreamError, FlowNotFoundError, ValidationError
from streampass.features.streams.protocol import FlowInfo

logger = logging.getLogger("streampass")

FlowKey = Tuple[str, str, str]


class InMemoryStreamingProtocol:
    """StreamingProtocol implementation plus the sender-facing flow operations."""

    def __init__(self, address: str = "protocol-host"):
        self.address = address
        self._flows: Dict[FlowKey, int] = {}
        self._apps: Dict[str, object] = {}

    def register_app(self, receiver: str, app) -> None:
        """Route lifecycle callbacks for flows into ``receiver`` to ``app``."""
        self._apps[receiver] = app

    # StreamingProtocol

    def get_flow(self, token: str, sender: str, receiver: str) -> FlowInfo:
        rate = self._flows.get((token, sender, receiver), 0)
        return FlowInfo(token=token, sender=sender, receiver=receiver, flow_rate=rate)

    def delete_flow(self, token: str, sender: str, receiver: str) -> None:
        # Receiver-initiated deletion: no callback into the receiver.
        key = (token, sender, receiver)
        if key not in self._flows:
            raise FlowNotFoundError("CFA: flow does not exist")
        del self._flows[key]
        logger.info("protocol.flow_deleted", extra={"subscriber": sender, "event_type": "receiver_delete"})

    # Sender-facing operations

    def create_flow(self, sender: str, receiver: str, token: str, flow_rate: int) -> None:
        key = (token, sender, receiver)
        if key in self._flows:
            raise DuplicateStreamError("CFA: flow already exist")
        _check_rate(flow_rate)
        self._flows[key] = flow_rate
        app = self._apps.get(receiver)
        if app is None:
            return
        try:
            app.on_flow_created(token, sender, flow_rate, host=self.address)
        except Exception:
            del self._flows[key]
            raise

    def update_flow(self, sender: str, receiver: str, token: str, flow_rate: int) -> None:
        key = (token, sender, receiver)
        previous = self._flows.get(key)
        if previous is None:
            raise FlowNotFoundError("CFA: flow does not exist")
        _check_rate(flow_rate)
        self._flows[key] = flow_rate
        app = self._apps.get(receiver)
        if app is None:
            return
        try:
            app.on_flow_updated(token, sender, previous, flow_rate, host=self.address)
        except Exception:
            self._flows[key] = previous
            raise

    def terminate_flow(self, sender: str, receiver: str, token: str) -> None:
        key = (token, sender, receiver)
        previous = self._flows.pop(key, None)
        if previous is None:
            raise FlowNotFoundError("CFA: flow does not exist")
        app = self._apps.get(receiver)
        if app is None:
            return
        try:
            app.on_flow_terminated(token, sender, previous, host=self.address)
        except Exception:
            self._flows[key] = previous
            raise

    def flow_rate(self, sender: str, receiver: str, token: str) -> int:
        return self._flows.get((token, sender, receiver), 0)


def _check_rate(flow_rate: Optional[int]) -> None:
    if not isinstance(flow_rate, int) or flow_rate <= 0:
        raise ValidationError("CFA: invalid flow rate")
