import os

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from nagarseva.config import settings
from nagarseva.database import Base, SessionLocal, engine, get_db
from nagarseva.logging_config import get_logger, setup_logging
from nagarseva.models import Account, ChatSession, IngestedUpdate, Ticket
from nagarseva.routers import admin, telegram_webhook
from nagarseva.services.catalog_service import seed_categories

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="NagarSeva API",
    description="Grievance intake service for the NagarSeva Telegram bot",
    version="0.1.0",
)

cors_env = os.environ.get("CORS_ALLOW_ORIGINS", "*")
cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(telegram_webhook.router)
app.include_router(admin.router)


@app.on_event("startup")
def create_tables() -> None:
    if not settings.auto_create_tables:
        return
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        added = seed_categories(db)
        db.commit()
    finally:
        db.close()
    logger.info("Database tables ready", extra={"context": {"categories_added": added}})


@app.get("/health")
async def health():
    return {"status": "ok", "telegram_enabled": settings.telegram_enabled}


@app.get("/db-check")
def db_check(db: Session = Depends(get_db)):
    return {
        "status": "ok",
        "accounts": db.query(Account).count(),
        "chat_sessions": db.query(ChatSession).count(),
        "ingested_updates": db.query(IngestedUpdate).count(),
        "tickets": db.query(Ticket).count(),
    }
