import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "test-bot-token")
os.environ.setdefault("TELEGRAM_WEBHOOK_SECRET", "test-secret")
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")
os.environ.setdefault("ALERT_BOT_TOKEN", "")

from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402

from nagarseva.database import Base, SessionLocal, engine  # noqa: E402
from nagarseva.models import Category  # noqa: E402


@pytest.fixture
def db_session():
    """Mock database session."""
    return Mock()


@pytest.fixture
def db():
    """Real session on a fresh in-memory SQLite schema."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def categories(db):
    rows = [
        Category(id=1, name="Roads & Potholes"),
        Category(id=2, name="Street Lights"),
        Category(id=3, name="Waste Management"),
        Category(id=4, name="Water Supply"),
    ]
    db.add_all(rows)
    db.commit()
    return {row.id: row.name for row in rows}
