import hmac
import json
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from nagarseva.config import Settings, get_settings
from nagarseva.database import get_db
from nagarseva.logging_config import get_logger
from nagarseva.schemas.telegram import TelegramUpdate, TelegramWebhookResponse
from nagarseva.services.intake_service import process_update
from nagarseva.services.telegram_service import deliver_outbound
from nagarseva.services.update_ledger import claim_update

logger = get_logger("telegram_webhook")

router = APIRouter(tags=["telegram"])

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


async def parse_telegram_update(request: Request) -> Optional[dict]:
    """
    Parse Telegram update with tolerant decoding to avoid utf-8 crashes.
    Returns dict or None.
    """
    try:
        return await request.json()
    except Exception as e:
        logger.warning(f"Standard request.json() failed: {e}, fallback decoding")

    raw = await request.body()
    for enc in ("utf-8", "latin-1"):
        try:
            decoded = raw.decode(enc, errors="replace")
            return json.loads(decoded)
        except ValueError:
            continue

    logger.error("Failed to decode Telegram webhook payload after fallbacks")
    return None


def verify_webhook_secret(expected: Optional[str], provided: Optional[str]) -> bool:
    """True when no secret is configured or the header matches it."""
    if not expected:
        return True
    if not provided:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.strip().encode("utf-8"))


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


def _acknowledge_unreadable(db: Session, update_id: int) -> TelegramWebhookResponse:
    """Record an update we cannot parse so Telegram stops redelivering it."""
    try:
        claimed = claim_update(db, update_id)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to record unreadable update: {e}", extra={"context": {"update_id": update_id}})
        return TelegramWebhookResponse(ok=True)
    if not claimed:
        return TelegramWebhookResponse(ok=True, duplicate=True)
    return TelegramWebhookResponse(ok=True)


@router.post("/webhooks/telegram", response_model=TelegramWebhookResponse)
async def handle_telegram_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Handle Telegram webhook updates:
    - Reject when the bot is not configured or the secret header is wrong
    - Ignore update ids that were already processed
    - Record and acknowledge updates with a valid id but an unreadable body
    - Run the intake conversation and acknowledge, even if processing failed
    """
    if not settings.telegram_enabled:
        return _error(503, "Telegram integration is disabled")

    if not verify_webhook_secret(settings.webhook_secret, request.headers.get(SECRET_HEADER)):
        logger.warning("Telegram webhook rejected: invalid secret")
        return _error(401, "Invalid webhook secret")

    body = await parse_telegram_update(request)
    if not isinstance(body, dict) or not isinstance(body.get("update_id"), int) or isinstance(body.get("update_id"), bool):
        return _error(400, "Invalid update payload")

    try:
        update = TelegramUpdate(**body)
    except ValidationError as e:
        update_id = body["update_id"]
        logger.warning(
            f"Telegram update validation failed: {e}",
            extra={"context": {"update_id": update_id}},
        )
        return _acknowledge_unreadable(db, update_id)

    try:
        outcome = process_update(db, update)
    except Exception as e:
        db.rollback()
        logger.error(
            f"Telegram webhook error: {e}",
            exc_info=True,
            extra={"context": {"update_id": update.update_id}},
        )
        return TelegramWebhookResponse(ok=True)

    if outcome.duplicate:
        return TelegramWebhookResponse(ok=True, duplicate=True)

    if outcome.replies or outcome.callback_query_id:
        background_tasks.add_task(
            deliver_outbound,
            settings.telegram_bot_token,
            outcome.replies,
            outcome.callback_query_id,
        )
    return TelegramWebhookResponse(ok=True)
