"""
Value accounting (TTV, Time-Transmitted-Value).

TTV grows by ``last_flow_rate * elapsed`` while a pass is active. Stored TTV
is only brought up to date on lifecycle events; reads use a live projection.
"""
from sqlalchemy import update
from sqlalchemy.orm import Session

from streampass.core.database import MAX_UINT256, passes
from streampass.core.errors import AccrualOverflowError, ValidationError
from streampass.core.logging import log_event
from streampass.features.passes.registry import require_pass
from streampass.models.subscription import Pass


def accrued_value(ttv: int, flow_rate: int, elapsed: int) -> int:
    """Return ``ttv + flow_rate * elapsed``, refusing to leave the uint256 range."""
    value = ttv + flow_rate * elapsed
    if value > MAX_UINT256:
        raise AccrualOverflowError(f"TTV accrual overflows uint256 (rate={flow_rate}, elapsed={elapsed})")
    return value


def live_value(pass_: Pass, now: int) -> int:
    """Projection of TTV at ``now``; inactive passes report their frozen value."""
    if not pass_.active:
        return pass_.ttv
    elapsed = max(now - pass_.last_update, 0)
    return min(pass_.ttv + pass_.last_flow_rate * elapsed, MAX_UINT256)


def accrue(db: Session, pass_id: int, *, now: int) -> int:
    """
    Commit elapsed value into the stored TTV of an active pass.

    The new value is computed and validated before anything is written, so a
    failure leaves the pass untouched. Inactive passes are frozen and are
    returned unchanged.

    Returns:
        The stored TTV after accrual.

    Raises:
        ValidationError: ``now`` precedes the pass's last update
        AccrualOverflowError: the result would exceed uint256
    """
    current = require_pass(db, pass_id)
    if not current.active:
        return current.ttv

    elapsed = now - current.last_update
    if elapsed < 0:
        raise ValidationError(f"Timestamp {now} precedes last update {current.last_update} of pass {pass_id}")

    new_ttv = accrued_value(current.ttv, current.last_flow_rate, elapsed)
    db.execute(
        update(passes)
        .where(passes.c.id == pass_id)
        .values(ttv=new_ttv, last_update=now)
    )
    log_event(
        "info",
        "pass.accrued",
        subscriber=current.owner,
        pass_id=pass_id,
        extra={"elapsed": elapsed, "flow_rate": current.last_flow_rate, "ttv": new_ttv},
    )
    return new_ttv
