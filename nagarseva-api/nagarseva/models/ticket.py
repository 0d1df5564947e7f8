from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from nagarseva.database import Base


class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (Index("ix_tickets_source", "source_channel", "source_external_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    ticket_number = Column(String(64), nullable=False, unique=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(Text, nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)
    priority = Column(String(16), nullable=False, default="medium")  # low, medium, high, urgent
    status = Column(String(32), nullable=False, default="submitted")  # legacy lifecycle value
    complaint_status = Column(String(32), nullable=False, default="pending")  # coarse value
    source_channel = Column(String(32))  # web, telegram
    source_external_id = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    account = relationship("Account", back_populates="tickets")
    category = relationship("Category")
