from sqlalchemy import Column, DateTime, Integer, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from nagarseva.database import Base


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    role = Column(Text, nullable=False, default="citizen")  # citizen, authority
    telegram_chat_id = Column(Text, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    tickets = relationship("Ticket", back_populates="account")
