"""
Tier engine.

Read-only projection: a subscriber's tier is the highest schedule index whose
threshold its active pass's live TTV has reached. Nothing here writes.
"""
from typing import Sequence

from sqlalchemy.orm import Session

from streampass.features.passes import registry, tracker
from streampass.features.passes.accounting import live_value
from streampass.features.tiers.schedule import get_schedule
from streampass.models.subscription import NO_PASS


def tier_for_value(thresholds: Sequence[int], value: int) -> int:
    """
    Return the greatest index whose threshold is <= value.

    The result is clamped to the top configured tier and is 0 when no
    threshold is reached or the schedule is empty.
    """
    tier = 0
    for index, threshold in enumerate(thresholds):
        if threshold <= value:
            tier = index
    return tier


def pass_ttv(db: Session, pass_id: int, *, now: int) -> int:
    """Stored TTV for inactive passes, live projection for active ones."""
    return live_value(registry.require_pass(db, pass_id), now)


def active_tier(db: Session, address: str, *, now: int) -> int:
    pass_id = tracker.get_active_pass_id(db, address)
    if pass_id == NO_PASS:
        return 0
    value = pass_ttv(db, pass_id, now=now)
    return tier_for_value(get_schedule(db).thresholds, value)
