from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from nagarseva.database import dialect_insert
from nagarseva.logging_config import get_logger
from nagarseva.models import ChatSession
from nagarseva.services.state_machine import (
    Draft,
    SessionSnapshot,
    coerce_language,
    coerce_state,
    new_session,
)

logger = get_logger("session_store")


class SessionStore:
    """Durable per-chat conversation state.

    The table is the only source of truth; every ``load`` reads it and every
    ``upsert`` writes it inside the caller's transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, chat_id: str) -> Optional[SessionSnapshot]:
        row = self.db.query(ChatSession).filter(ChatSession.chat_id == chat_id).first()
        if row is None:
            return None
        return self._to_snapshot(row)

    def load(self, chat_id: str) -> SessionSnapshot:
        """Return the session for ``chat_id``, creating the default one if absent."""
        existing = self.get(chat_id)
        if existing is not None:
            return existing

        session = new_session(chat_id)
        now = datetime.now(timezone.utc)
        stmt = (
            dialect_insert(self.db, ChatSession)
            .values(
                chat_id=chat_id,
                account_id=None,
                state=session.state.value,
                language=session.language.value,
                draft_json=session.draft.to_json(),
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["chat_id"])
        )
        result = self.db.execute(stmt)
        if result.rowcount == 0:
            # Another delivery for this chat created it first.
            return self.get(chat_id) or session

        logger.info("Chat session created", extra={"context": {"chat_id": chat_id}})
        return session

    def upsert(self, session: SessionSnapshot) -> SessionSnapshot:
        now = datetime.now(timezone.utc)
        values = {
            "account_id": session.account_id,
            "state": session.state.value,
            "language": session.language.value,
            "draft_json": session.draft.to_json(),
            "updated_at": now,
        }
        stmt = (
            dialect_insert(self.db, ChatSession)
            .values(chat_id=session.chat_id, **values)
            .on_conflict_do_update(index_elements=["chat_id"], set_=values)
        )
        self.db.execute(stmt)
        self.db.expire_all()
        return session

    @staticmethod
    def _to_snapshot(row: ChatSession) -> SessionSnapshot:
        return SessionSnapshot(
            chat_id=row.chat_id,
            account_id=row.account_id,
            state=coerce_state(row.state),
            language=coerce_language(row.language),
            draft=Draft.from_json(row.draft_json),
            updated_at=row.updated_at,
        )
