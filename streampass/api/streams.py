"""
Streaming protocol callback API.

- POST /v1/streams/callbacks: flow created / updated / terminated
"""
from typing import Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from streampass.api.deps import get_subscription_app
from streampass.core.auth import get_protocol_host
from streampass.features.subscription.service import SubscriptionApp
from streampass.models.subscription import FlowEvent

router = APIRouter(prefix="/v1/streams", tags=["streams"])


class FlowCallbackRequest(BaseModel):
    """Envelope for one lifecycle notification, discriminated by ``event.kind``."""
    event: FlowEvent


@router.post("/callbacks")
def flow_callback(
    request: FlowCallbackRequest,
    host: str = Depends(get_protocol_host),
    app: SubscriptionApp = Depends(get_subscription_app),
) -> Dict:
    """
    Apply a lifecycle notification from the streaming protocol.

    Errors:
        400: Unknown host or token (nothing is changed)
        409: Update for a sender without an active pass
        422: Malformed event or accrual overflow
    """
    event = request.event
    pass_id = app.handle_flow_event(event, host=host)
    return {
        "kind": event.kind,
        "sender": event.sender,
        "pass_id": pass_id,
        "active_pass_id": app.active_pass(event.sender),
    }
