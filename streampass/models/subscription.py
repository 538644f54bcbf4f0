"""
streampass/models/subscription.py

Pass, subscriber and flow-event models.

A Pass is a transferable credential whose accrued value (TTV) is the total
amount streamed while it was its owner's active pass.
"""

from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from streampass.core.database import MAX_UINT256


NO_PASS = 0

Amount = Annotated[int, Field(ge=0, le=MAX_UINT256)]


class Pass(BaseModel):
    """Snapshot of a single pass row."""
    model_config = ConfigDict(frozen=True)

    id: int
    owner: str
    active: bool
    ttv: int
    last_update: int
    last_flow_rate: int
    deactivation_seq: Optional[int] = None


class SubscriberAccount(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    active_pass_id: int = NO_PASS
    owned_pass_ids: List[int] = []

    @property
    def has_active_pass(self) -> bool:
        return self.active_pass_id != NO_PASS


class TierSchedule(BaseModel):
    """Ordered thresholds; index 0 is the zero-value tier."""
    model_config = ConfigDict(frozen=True)

    thresholds: List[Amount]

    def is_non_decreasing(self) -> bool:
        return all(a <= b for a, b in zip(self.thresholds, self.thresholds[1:]))


class _FlowEventBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    sender: str

    @field_validator("token", "sender")
    @classmethod
    def _trim(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class FlowCreated(_FlowEventBase):
    kind: Literal["created"] = "created"
    flow_rate: Amount


class FlowUpdated(_FlowEventBase):
    kind: Literal["updated"] = "updated"
    previous_flow_rate: Amount = 0
    flow_rate: Amount


class FlowTerminated(_FlowEventBase):
    kind: Literal["terminated"] = "terminated"
    last_flow_rate: Amount = 0


FlowEvent = Annotated[
    Union[FlowCreated, FlowUpdated, FlowTerminated],
    Field(discriminator="kind"),
]
