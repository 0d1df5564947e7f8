from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from nagarseva.database import Base


class ChatSession(Base):
    __tablename__ = "chat_sessions"

    chat_id = Column(Text, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"))
    state = Column(String(32), nullable=False, default="awaiting_language")
    language = Column(String(8), nullable=False, default="en")
    draft_json = Column(Text)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
