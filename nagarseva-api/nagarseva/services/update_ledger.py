from datetime import datetime, timezone

from sqlalchemy.orm import Session

from nagarseva.database import dialect_insert
from nagarseva.models import IngestedUpdate


def claim_update(db: Session, update_id: int) -> bool:
    """Record ``update_id`` as processed.

    Returns False when it was already recorded; the insert is a no-op then.
    The row becomes durable with the caller's commit.
    """
    stmt = (
        dialect_insert(db, IngestedUpdate)
        .values(update_id=update_id, processed_at=datetime.now(timezone.utc))
        .on_conflict_do_nothing(index_elements=["update_id"])
    )
    result = db.execute(stmt)
    return result.rowcount > 0
