"""
Flow lifecycle callbacks.

The streaming protocol notifies the collection when a sender creates,
updates or terminates its flow. Each notification moves the sender between
the NoStream and StreamActive states:

    NoStream --created--> StreamActive --updated--> StreamActive
    StreamActive --terminated--> NoStream

Accrual always happens before any ownership or activity flag flips.
"""
from typing import Union

from sqlalchemy.orm import Session

from streampass.core.errors import PreconditionError, ValidationError
from streampass.core.logging import log_event
from streampass.features.passes import registry, tracker
from streampass.features.passes.accounting import accrue
from streampass.features.subscription.config import SubscriptionConfig
from streampass.models.subscription import NO_PASS, FlowCreated, FlowTerminated, FlowUpdated


def validate_origin(config: SubscriptionConfig, *, token: str, host: str) -> None:
    """Reject callbacks from any host or token other than the configured ones."""
    if not config.protocol_host or host != config.protocol_host:
        raise ValidationError(f"Unsupported protocol host: {host!r}")
    if not config.accepted_token or token != config.accepted_token:
        raise ValidationError(f"Token not accepted: {token!r}")


def on_flow_created(db: Session, sender: str, flow_rate: int, *, now: int) -> int:
    """Mint a pass for a first-time sender or reactivate one it already owns."""
    reusable = registry.find_reusable_pass(db, sender)
    if reusable is None:
        pass_id = registry.mint_pass(db, sender, flow_rate=flow_rate, now=now)
        log_event("info", "pass.minted", subscriber=sender, pass_id=pass_id, extra={"flow_rate": flow_rate})
    else:
        pass_id = reusable
        registry.activate_pass(db, pass_id, flow_rate=flow_rate, now=now)
        log_event("info", "pass.reactivated", subscriber=sender, pass_id=pass_id, extra={"flow_rate": flow_rate})
    tracker.set_active_pass(db, sender, pass_id)
    return pass_id


def on_flow_updated(db: Session, sender: str, flow_rate: int, *, now: int) -> int:
    pass_id = tracker.get_active_pass_id(db, sender)
    if pass_id == NO_PASS:
        raise PreconditionError(f"No active pass for {sender}")
    accrue(db, pass_id, now=now)
    registry.activate_pass(db, pass_id, flow_rate=flow_rate, now=now)
    return pass_id


def on_flow_terminated(db: Session, sender: str, *, now: int) -> int:
    """Freeze the active pass. Returns 0 when the sender had none (no-op)."""
    pass_id = tracker.get_active_pass_id(db, sender)
    if pass_id == NO_PASS:
        log_event("warning", "flow.terminated_without_pass", subscriber=sender)
        return NO_PASS
    ttv = accrue(db, pass_id, now=now)
    registry.deactivate_pass(db, pass_id)
    tracker.clear_active_pass(db, sender)
    log_event("info", "pass.deactivated", subscriber=sender, pass_id=pass_id, event_type="terminated", extra={"ttv": ttv})
    return pass_id


def handle_flow_event(
    db: Session,
    event: Union[FlowCreated, FlowUpdated, FlowTerminated],
    *,
    config: SubscriptionConfig,
    host: str,
    now: int,
) -> int:
    """Validate the origin of ``event`` and apply it. Returns the affected pass id."""
    validate_origin(config, token=event.token, host=host)

    if isinstance(event, FlowCreated):
        return on_flow_created(db, event.sender, event.flow_rate, now=now)
    if isinstance(event, FlowUpdated):
        return on_flow_updated(db, event.sender, event.flow_rate, now=now)
    if isinstance(event, FlowTerminated):
        return on_flow_terminated(db, event.sender, now=now)
    raise ValidationError(f"Unknown flow event: {type(event).__name__}")
