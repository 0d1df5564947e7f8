import secrets
import time
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from nagarseva.logging_config import get_logger
from nagarseva.models import Ticket
from nagarseva.services.result import Result
from nagarseva.services.state_machine import ConversationState, SessionSnapshot
from nagarseva.services.status_normalizer import StatusPair, TrackingStage, initial_status_pair

logger = get_logger("ticket_service")

TELEGRAM_CHANNEL = "telegram"
TELEGRAM_TICKET_PREFIX = "TGM"
DEFAULT_PRIORITY = "medium"
TITLE_MAX_LENGTH = 100
MAX_NUMBER_ATTEMPTS = 3

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


@dataclass
class SubmittedTicket:
    ticket_number: str
    ticket_id: int
    session: SessionSnapshot


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_ticket_number(prefix: str = TELEGRAM_TICKET_PREFIX, now_ms: Optional[int] = None) -> str:
    """Time-ordered ticket number with a random suffix for same-millisecond submits."""
    millis = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"{prefix}-{_to_base36(millis)}-{suffix}"


def submit_draft(db: Session, session: SessionSnapshot) -> Result[SubmittedTicket]:
    """Persist the session draft as a Telegram ticket.

    Nothing is written when the account or any draft field is missing. A
    database error rolls back only the ticket insert and is reported as a
    retryable failure; the session keeps its draft.
    """
    draft = session.draft
    if session.account_id is None:
        return Result.failure("Account is not resolved", "incomplete_draft")
    if not draft.is_complete:
        return Result.failure("Draft is missing category, description or location", "incomplete_draft")

    status = initial_status_pair()
    last_error: Optional[Exception] = None
    for _ in range(MAX_NUMBER_ATTEMPTS):
        ticket_number = generate_ticket_number()
        ticket = Ticket(
            ticket_number=ticket_number,
            account_id=session.account_id,
            category_id=draft.category_id,
            title=draft.description[:TITLE_MAX_LENGTH],
            description=draft.description,
            location=draft.location,
            latitude=draft.latitude,
            longitude=draft.longitude,
            priority=DEFAULT_PRIORITY,
            status=status.legacy,
            complaint_status=status.coarse,
            source_channel=TELEGRAM_CHANNEL,
            source_external_id=session.chat_id,
        )
        try:
            with db.begin_nested():
                db.add(ticket)
                db.flush()
        except IntegrityError as e:
            last_error = e
            if _ticket_number_taken(db, ticket_number):
                continue
            break
        except SQLAlchemyError as e:
            last_error = e
            break
        else:
            logger.info(
                "Ticket created",
                extra={
                    "context": {
                        "ticket_number": ticket_number,
                        "chat_id": session.chat_id,
                        "account_id": session.account_id,
                        "category_id": draft.category_id,
                    }
                },
            )
            return Result.success(
                SubmittedTicket(
                    ticket_number=ticket_number,
                    ticket_id=ticket.id,
                    session=session.reset(ConversationState.IDLE),
                )
            )

    logger.error(
        "Ticket write failed",
        extra={"context": {"chat_id": session.chat_id, "error": str(last_error)}},
    )
    return Result.failure(f"Ticket write failed: {last_error}", "write_failure", retryable=True)


def _ticket_number_taken(db: Session, ticket_number: str) -> bool:
    return db.query(Ticket.id).filter(Ticket.ticket_number == ticket_number).first() is not None


def get_ticket(db: Session, ticket_number: str) -> Optional[Ticket]:
    return db.query(Ticket).filter(Ticket.ticket_number == ticket_number).first()


def find_channel_ticket(
    db: Session,
    ticket_number: str,
    external_id: str,
    channel: str = TELEGRAM_CHANNEL,
) -> Optional[Ticket]:
    """Ticket visible to one chat: must have been filed from that chat."""
    return (
        db.query(Ticket)
        .filter(
            Ticket.ticket_number == ticket_number,
            Ticket.source_channel == channel,
            Ticket.source_external_id == external_id,
        )
        .first()
    )


def tracking_stage(ticket: Ticket) -> TrackingStage:
    return StatusPair.of(ticket).stage


def set_tracking_stage(db: Session, ticket: Ticket, stage: TrackingStage) -> Ticket:
    """Move a ticket to ``stage``, writing both status fields from one mapping."""
    pair = StatusPair.for_stage(stage)
    ticket.status = pair.legacy
    ticket.complaint_status = pair.coarse
    db.flush()
    logger.info(
        "Ticket stage updated",
        extra={"context": {"ticket_number": ticket.ticket_number, "stage": stage.value}},
    )
    return ticket
