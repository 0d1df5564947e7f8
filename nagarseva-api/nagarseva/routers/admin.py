"""Admin API endpoints for bot setup and ticket status handling."""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from nagarseva.config import Settings, get_settings
from nagarseva.database import get_db
from nagarseva.logging_config import get_logger
from nagarseva.schemas.ticket import TicketStageUpdate, TicketTrackingResponse, WebhookRegistrationResponse
from nagarseva.services.status_normalizer import TrackingStage
from nagarseva.services.telegram_service import TelegramService
from nagarseva.services.ticket_service import get_ticket, set_tracking_stage, tracking_stage

logger = get_logger("admin")

router = APIRouter(prefix="/admin", tags=["admin"])

WEBHOOK_PATH = "/webhooks/telegram"


def _require_admin_token(provided: Optional[str], settings: Settings) -> None:
    expected = settings.admin_token
    if not expected:
        raise HTTPException(status_code=500, detail="ADMIN_TOKEN not configured")
    if not provided or not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Invalid admin token")


def _tracking_response(ticket) -> TicketTrackingResponse:
    return TicketTrackingResponse(
        ticket_number=ticket.ticket_number,
        title=ticket.title,
        description=ticket.description,
        location=ticket.location,
        latitude=ticket.latitude,
        longitude=ticket.longitude,
        priority=ticket.priority,
        status=ticket.status,
        complaint_status=ticket.complaint_status,
        tracking_stage=tracking_stage(ticket).value,
        source_channel=ticket.source_channel,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
    )


# === TELEGRAM ===


@router.post("/telegram/set-webhook", response_model=WebhookRegistrationResponse)
def register_telegram_webhook(
    settings: Settings = Depends(get_settings),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token, settings)
    if not settings.telegram_enabled:
        raise HTTPException(status_code=400, detail="Set TELEGRAM_BOT_TOKEN first")
    base_url = (settings.public_base_url or "").strip().rstrip("/")
    if not base_url:
        raise HTTPException(status_code=400, detail="Set PUBLIC_BASE_URL in environment")

    url = f"{base_url}{WEBHOOK_PATH}"
    result = TelegramService(settings.telegram_bot_token).set_webhook(url, settings.webhook_secret)
    if not result.get("ok"):
        raise HTTPException(
            status_code=502,
            detail={"error": "Failed to set webhook", "details": result.get("description") or result.get("error")},
        )

    logger.info("Telegram webhook registered", extra={"context": {"url": url}})
    return WebhookRegistrationResponse(ok=True, url=url, description=result.get("description"))


# === TICKETS ===


@router.get("/tickets/{ticket_number}", response_model=TicketTrackingResponse)
def get_ticket_tracking(
    ticket_number: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token, settings)
    ticket = get_ticket(db, ticket_number.strip())
    if not ticket:
        raise HTTPException(status_code=404, detail="Complaint not found")
    return _tracking_response(ticket)


@router.patch("/tickets/{ticket_number}/status", response_model=TicketTrackingResponse)
def update_ticket_status(
    ticket_number: str,
    payload: TicketStageUpdate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token, settings)
    ticket = get_ticket(db, ticket_number.strip())
    if not ticket:
        raise HTTPException(status_code=404, detail="Complaint not found")

    set_tracking_stage(db, ticket, TrackingStage(payload.status))
    db.commit()
    db.refresh(ticket)
    return _tracking_response(ticket)
