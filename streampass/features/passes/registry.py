"""
Pass registry.

Issues passes, tracks ownership and the per-pass active flag, and serves the
enumeration reads of the non-fungible token surface. Pass ids start at 1 and
are never reused; 0 means "no pass".
"""
from typing import List, Optional

from sqlalchemy import select, insert, update, func
from sqlalchemy.orm import Session

from streampass.core.database import passes
from streampass.core.errors import NotFoundError, ValidationError
from streampass.models.subscription import NO_PASS, Pass


def _row_to_pass(row) -> Pass:
    return Pass(
        id=row.id,
        owner=row.owner,
        active=bool(row.active),
        ttv=row.ttv,
        last_update=row.last_update,
        last_flow_rate=row.last_flow_rate,
        deactivation_seq=row.deactivation_seq,
    )


def get_pass(db: Session, pass_id: int) -> Optional[Pass]:
    row = db.execute(select(passes).where(passes.c.id == pass_id)).fetchone()
    return _row_to_pass(row) if row else None


def require_pass(db: Session, pass_id: int) -> Pass:
    """Load a pass or raise NotFoundError (id 0 is never a pass)."""
    found = get_pass(db, pass_id) if pass_id != NO_PASS else None
    if found is None:
        raise NotFoundError("ERC721: invalid token ID")
    return found


def owner_of(db: Session, pass_id: int) -> str:
    return require_pass(db, pass_id).owner


def balance_of(db: Session, owner: str) -> int:
    if not owner:
        raise ValidationError("ERC721: address zero is not a valid owner")
    return db.execute(
        select(func.count()).select_from(passes).where(passes.c.owner == owner)
    ).scalar_one()


def owned_pass_ids(db: Session, owner: str) -> List[int]:
    rows = db.execute(
        select(passes.c.id).where(passes.c.owner == owner).order_by(passes.c.id)
    ).fetchall()
    return [row[0] for row in rows]


def token_of_owner_by_index(db: Session, owner: str, index: int) -> int:
    ids = owned_pass_ids(db, owner)
    if index < 0 or index >= len(ids):
        raise NotFoundError("ERC721Enumerable: owner index out of bounds")
    return ids[index]


def total_supply(db: Session) -> int:
    return db.execute(select(func.count()).select_from(passes)).scalar_one()


def next_pass_id(db: Session) -> int:
    current = db.execute(select(func.coalesce(func.max(passes.c.id), 0))).scalar_one()
    return int(current) + 1


def mint_pass(db: Session, owner: str, *, flow_rate: int, now: int) -> int:
    """Issue the next pass to ``owner`` as an active pass with zero TTV."""
    pass_id = next_pass_id(db)
    db.execute(
        insert(passes).values(
            id=pass_id,
            owner=owner,
            active=True,
            ttv=0,
            last_update=now,
            last_flow_rate=flow_rate,
            deactivation_seq=None,
        )
    )
    return pass_id


def activate_pass(db: Session, pass_id: int, *, flow_rate: int, now: int) -> None:
    db.execute(
        update(passes)
        .where(passes.c.id == pass_id)
        .values(active=True, last_flow_rate=flow_rate, last_update=now)
    )


def deactivate_pass(db: Session, pass_id: int) -> None:
    """Flip a pass inactive; its TTV must already hold the final accrual."""
    seq = db.execute(select(func.coalesce(func.max(passes.c.deactivation_seq), 0))).scalar_one()
    db.execute(
        update(passes)
        .where(passes.c.id == pass_id)
        .values(active=False, last_flow_rate=0, deactivation_seq=int(seq) + 1)
    )


def set_owner(db: Session, pass_id: int, new_owner: str) -> None:
    db.execute(update(passes).where(passes.c.id == pass_id).values(owner=new_owner))


def find_reusable_pass(db: Session, owner: str) -> Optional[int]:
    """Most recently deactivated inactive pass of ``owner`` (highest id on ties)."""
    row = db.execute(
        select(passes.c.id)
        .where(passes.c.owner == owner, passes.c.active.is_(False))
        .order_by(func.coalesce(passes.c.deactivation_seq, 0).desc(), passes.c.id.desc())
        .limit(1)
    ).fetchone()
    return row[0] if row else None
