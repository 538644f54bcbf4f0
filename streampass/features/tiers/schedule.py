"""
Tier schedule storage and the owner-only replacement operation.

Replacing the schedule never touches stored pass values; tiers are derived
on every read, so a new schedule applies retroactively.
"""
from typing import Iterable, List

from sqlalchemy import select, insert, delete, func
from sqlalchemy.orm import Session

from streampass.core.database import MAX_UINT256, pass_tiers
from streampass.core.errors import AuthorizationError, NotFoundError, ValidationError
from streampass.core.logging import log_event
from streampass.features.subscription.config import SubscriptionConfig
from streampass.models.subscription import TierSchedule


def get_schedule(db: Session) -> TierSchedule:
    rows = db.execute(
        select(pass_tiers.c.threshold).order_by(pass_tiers.c.position)
    ).fetchall()
    return TierSchedule(thresholds=[row[0] for row in rows])


def tier_count(db: Session) -> int:
    return db.execute(select(func.count()).select_from(pass_tiers)).scalar_one()


def threshold_at(db: Session, index: int) -> int:
    row = db.execute(
        select(pass_tiers.c.threshold).where(pass_tiers.c.position == index)
    ).fetchone()
    if row is None:
        raise NotFoundError(f"No tier at index {index}")
    return row[0]


def _normalize(thresholds: Iterable[int]) -> List[int]:
    values = []
    for value in thresholds:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"Tier threshold must be an integer, got {value!r}")
        if value < 0 or value > MAX_UINT256:
            raise ValidationError(f"Tier threshold out of range: {value}")
        values.append(value)
    return values


def replace_schedule(db: Session, thresholds: Iterable[int]) -> TierSchedule:
    values = _normalize(thresholds)
    db.execute(delete(pass_tiers))
    if values:
        db.execute(
            insert(pass_tiers),
            [{"position": i, "threshold": value} for i, value in enumerate(values)],
        )
    schedule = TierSchedule(thresholds=values)
    if not schedule.is_non_decreasing():
        log_event("warning", "tiers.not_monotonic", extra={"thresholds": values})
    return schedule


def update_tier(db: Session, config: SubscriptionConfig, *, caller: str, thresholds: Iterable[int]) -> TierSchedule:
    """
    Replace the tier schedule wholesale.

    Raises:
        AuthorizationError: Caller is not the collection owner
        ValidationError: A threshold is not a uint256 integer
    """
    if not config.owner or caller != config.owner:
        raise AuthorizationError("Ownable: caller is not the owner")
    schedule = replace_schedule(db, thresholds)
    log_event("info", "tiers.updated", subscriber=caller, extra={"tiers": len(schedule.thresholds)})
    return schedule
