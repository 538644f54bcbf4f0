"""
Pass transfer hook and active pass switching.

A pass can only be active while it backs its owner's live stream. Moving
the active pass to someone else therefore freezes it and stops the
sender's stream; moving any other pass has no stream side effects.
"""
from sqlalchemy.orm import Session

from streampass.core.errors import AuthorizationError, FlowNotFoundError, PreconditionError, ValidationError
from streampass.core.logging import log_event
from streampass.features.passes import registry, tracker
from streampass.features.passes.accounting import accrue
from streampass.features.streams.protocol import FlowInfo, StreamingProtocol
from streampass.features.subscription.config import SubscriptionConfig
from streampass.models.subscription import NO_PASS


def _current_flow(protocol: StreamingProtocol, config: SubscriptionConfig, address: str) -> FlowInfo:
    return protocol.get_flow(config.accepted_token, address, config.receiver)


def transfer_pass(
    db: Session,
    protocol: StreamingProtocol,
    config: SubscriptionConfig,
    *,
    caller: str,
    from_address: str,
    to_address: str,
    pass_id: int,
    now: int,
) -> None:
    """
    Move ``pass_id`` from ``from_address`` to ``to_address``.

    Only the owner may transfer (approvals are not supported). The recipient
    never gets the pass activated automatically.

    Raises:
        NotFoundError: Unknown pass id
        AuthorizationError: Caller does not own the pass
        ValidationError: ``from_address`` is not the owner, or empty recipient
    """
    current = registry.require_pass(db, pass_id)
    if caller != current.owner:
        raise AuthorizationError("ERC721: caller is not token owner or approved")
    if from_address != current.owner:
        raise ValidationError("ERC721: transfer from incorrect owner")
    if not to_address:
        raise ValidationError("ERC721: transfer to the zero address")

    was_active = tracker.get_active_pass_id(db, from_address) == pass_id
    if was_active:
        ttv = accrue(db, pass_id, now=now)
        tracker.clear_active_pass(db, from_address)
        registry.deactivate_pass(db, pass_id)
        log_event("info", "pass.deactivated", subscriber=from_address, pass_id=pass_id, event_type="transfer", extra={"ttv": ttv})

    registry.set_owner(db, pass_id, to_address)
    log_event(
        "info",
        "pass.transferred",
        subscriber=from_address,
        pass_id=pass_id,
        extra={"to": to_address, "was_active": was_active},
    )

    if was_active:
        flow = _current_flow(protocol, config, from_address)
        if flow.exists:
            try:
                protocol.delete_flow(config.accepted_token, from_address, config.receiver)
            except FlowNotFoundError:
                # Gone between the lookup and the delete
                log_event("info", "flow.delete_skipped", subscriber=from_address, pass_id=pass_id)
            else:
                log_event("info", "flow.delete_requested", subscriber=from_address, pass_id=pass_id)


def switch_pass(
    db: Session,
    protocol: StreamingProtocol,
    config: SubscriptionConfig,
    *,
    caller: str,
    pass_id: int,
    now: int,
) -> int:
    """
    Re-attach the caller's live stream to another pass it owns.

    The previously active pass is accrued and frozen; the stream keeps running.

    Returns:
        The previously active pass id (0 if none).

    Raises:
        NotFoundError: Unknown pass id
        AuthorizationError: Caller does not own ``pass_id``
        PreconditionError: Caller has no live stream
    """
    target = registry.require_pass(db, pass_id)
    if target.owner != caller:
        raise AuthorizationError("Not Owner of Pass")

    flow = _current_flow(protocol, config, caller)
    if not flow.exists:
        raise PreconditionError("No stream active")

    previous = tracker.get_active_pass_id(db, caller)
    if previous != NO_PASS:
        ttv = accrue(db, previous, now=now)
        if previous != pass_id:
            registry.deactivate_pass(db, previous)
            log_event("info", "pass.deactivated", subscriber=caller, pass_id=previous, event_type="switch", extra={"ttv": ttv})

    registry.activate_pass(db, pass_id, flow_rate=flow.flow_rate, now=now)
    tracker.set_active_pass(db, caller, pass_id)
    log_event("info", "pass.switched", subscriber=caller, pass_id=pass_id, extra={"previous": previous, "flow_rate": flow.flow_rate})
    return previous
