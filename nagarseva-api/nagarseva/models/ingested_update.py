from sqlalchemy import BigInteger, Column, DateTime
from sqlalchemy.sql import func

from nagarseva.database import Base


class IngestedUpdate(Base):
    __tablename__ = "ingested_updates"

    update_id = Column(BigInteger, primary_key=True, autoincrement=False)
    processed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
