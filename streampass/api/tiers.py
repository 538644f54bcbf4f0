"""
Tier schedule API.

- GET /v1/tiers
- PUT /v1/admin/tiers (collection owner only)
"""
from typing import Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from streampass.api.deps import get_subscription_app
from streampass.core.auth import get_current_user_id
from streampass.features.subscription.service import SubscriptionApp

router = APIRouter(tags=["tiers"])


class TierUpdateRequest(BaseModel):
    # Thresholds may be sent as decimal strings; pydantic coerces them to int
    thresholds: List[int] = Field(default_factory=list)


def _schedule_payload(app: SubscriptionApp) -> Dict:
    thresholds = app.tier_schedule().thresholds
    return {"thresholds": [str(value) for value in thresholds], "count": len(thresholds)}


@router.get("/v1/tiers")
def get_tiers(app: SubscriptionApp = Depends(get_subscription_app)) -> Dict:
    return _schedule_payload(app)


@router.put("/v1/admin/tiers")
def update_tiers(
    request: TierUpdateRequest,
    caller: str = Depends(get_current_user_id),
    app: SubscriptionApp = Depends(get_subscription_app),
) -> Dict:
    app.update_tier(caller, request.thresholds)
    return _schedule_payload(app)
