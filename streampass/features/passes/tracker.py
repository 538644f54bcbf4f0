"""Active pass tracker: at most one active pass id per subscriber."""
from sqlalchemy import select, insert, update
from sqlalchemy.orm import Session

from streampass.core.database import subscribers
from streampass.features.passes.registry import owned_pass_ids
from streampass.models.subscription import NO_PASS, SubscriberAccount


def get_active_pass_id(db: Session, address: str) -> int:
    row = db.execute(
        select(subscribers.c.active_pass_id).where(subscribers.c.address == address)
    ).fetchone()
    return row[0] if row else NO_PASS


def set_active_pass(db: Session, address: str, pass_id: int) -> None:
    existing = db.execute(
        select(subscribers.c.address).where(subscribers.c.address == address)
    ).fetchone()
    if existing:
        db.execute(
            update(subscribers)
            .where(subscribers.c.address == address)
            .values(active_pass_id=pass_id)
        )
    else:
        db.execute(insert(subscribers).values(address=address, active_pass_id=pass_id))


def clear_active_pass(db: Session, address: str) -> None:
    set_active_pass(db, address, NO_PASS)


def get_subscriber(db: Session, address: str) -> SubscriberAccount:
    return SubscriberAccount(
        address=address,
        active_pass_id=get_active_pass_id(db, address),
        owned_pass_ids=owned_pass_ids(db, address),
    )
