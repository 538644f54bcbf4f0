"""
Pass API.

- GET  /v1/passes/{pass_id}
- GET  /v1/passes/{pass_id}/ttv
- POST /v1/passes/{pass_id}/transfer
- POST /v1/passes/{pass_id}/switch
- GET  /v1/subscribers/{address}
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from streampass.api.deps import get_subscription_app
from streampass.core.auth import get_current_user_id
from streampass.features.subscription.service import SubscriptionApp

router = APIRouter(tags=["passes"])


class TransferRequest(BaseModel):
    to_address: str
    from_address: Optional[str] = None

    @field_validator("to_address", "from_address")
    @classmethod
    def _trim(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip()


def _pass_payload(app: SubscriptionApp, pass_id: int) -> Dict:
    p = app.get_pass(pass_id)
    # Amounts are strings: they routinely exceed JSON-safe integers
    return {
        "id": p.id,
        "owner": p.owner,
        "active": p.active,
        "ttv": str(app.ttv(pass_id)),
        "stored_ttv": str(p.ttv),
        "last_update": p.last_update,
        "last_flow_rate": str(p.last_flow_rate),
    }


@router.get("/v1/passes/{pass_id}")
def get_pass(pass_id: int, app: SubscriptionApp = Depends(get_subscription_app)) -> Dict:
    return _pass_payload(app, pass_id)


@router.get("/v1/passes/{pass_id}/ttv")
def get_pass_ttv(pass_id: int, app: SubscriptionApp = Depends(get_subscription_app)) -> Dict:
    return {"pass_id": pass_id, "ttv": str(app.ttv(pass_id)), "computed_at": app.now()}


@router.post("/v1/passes/{pass_id}/transfer")
def transfer_pass(
    pass_id: int,
    request: TransferRequest,
    caller: str = Depends(get_current_user_id),
    app: SubscriptionApp = Depends(get_subscription_app),
) -> Dict:
    app.transfer_from(caller, request.from_address or caller, request.to_address, pass_id)
    return {
        "pass": _pass_payload(app, pass_id),
        "from_active_pass_id": app.active_pass(request.from_address or caller),
    }


@router.post("/v1/passes/{pass_id}/switch")
def switch_pass(
    pass_id: int,
    caller: str = Depends(get_current_user_id),
    app: SubscriptionApp = Depends(get_subscription_app),
) -> Dict:
    previous = app.switch_pass(caller, pass_id)
    return {"active_pass_id": app.active_pass(caller), "previous_pass_id": previous}


@router.get("/v1/subscribers/{address}")
def get_subscriber(address: str, app: SubscriptionApp = Depends(get_subscription_app)) -> Dict:
    account = app.subscriber(address)
    return {
        "address": account.address,
        "active_pass_id": account.active_pass_id,
        "owned_pass_ids": account.owned_pass_ids,
        "balance": len(account.owned_pass_ids),
        "tier": app.active_tier(address),
    }
