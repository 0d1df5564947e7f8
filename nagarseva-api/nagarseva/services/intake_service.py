"""Runs one Telegram update through the conversation: load, transition, effects, persist."""

from dataclasses import dataclass, field, replace
from typing import Optional

from sqlalchemy.orm import Session

from nagarseva.logging_config import ChatLoggerAdapter, get_logger
from nagarseva.schemas.telegram import TelegramUpdate, TelegramUser
from nagarseva.services.catalog_service import list_categories
from nagarseva.services.identity_service import resolve_account
from nagarseva.services.replies import OutboundReply, render_reply, stage_label
from nagarseva.services.result import Result
from nagarseva.services.session_store import SessionStore
from nagarseva.services.state_machine import (
    Inbound,
    Keyboard,
    QueryStatus,
    Reply,
    ResolveAccount,
    SessionSnapshot,
    SubmitTicket,
    transition,
)
from nagarseva.services.ticket_service import find_channel_ticket, submit_draft, tracking_stage
from nagarseva.services.update_ledger import claim_update

logger = get_logger("intake_service")


@dataclass
class IntakeOutcome:
    duplicate: bool = False
    chat_id: Optional[str] = None
    callback_query_id: Optional[str] = None
    replies: list[OutboundReply] = field(default_factory=list)
    ticket_number: Optional[str] = None


def _names(user: Optional[TelegramUser]) -> tuple[Optional[str], Optional[str]]:
    if user is None:
        return None, None
    return user.first_name, user.last_name


def inbound_from_update(update: TelegramUpdate) -> Optional[Inbound]:
    """Reduce an update to the fields the state machine reads; None if nothing actionable."""
    callback = update.callback_query
    if callback is not None:
        if callback.message is None:
            return None
        first_name, last_name = _names(callback.from_user)
        return Inbound(
            chat_id=str(callback.message.chat.id),
            callback_data=callback.data or "",
            callback_id=callback.id,
            first_name=first_name,
            last_name=last_name,
        )

    message = update.message
    if message is None:
        return None
    first_name, last_name = _names(message.from_user)
    location = message.location
    return Inbound(
        chat_id=str(message.chat.id),
        text=message.text or "",
        latitude=location.latitude if location else None,
        longitude=location.longitude if location else None,
        first_name=first_name,
        last_name=last_name,
    )


def process_update(db: Session, update: TelegramUpdate) -> IntakeOutcome:
    """Apply one update and commit.

    The ledger row, session and any ticket are committed together. Replies are
    only rendered here; sending them is left to the caller.
    """
    if not claim_update(db, update.update_id):
        db.rollback()
        logger.info("Duplicate update ignored", extra={"context": {"update_id": update.update_id}})
        return IntakeOutcome(duplicate=True)

    inbound = inbound_from_update(update)
    if inbound is None:
        db.commit()
        return IntakeOutcome()

    outcome = IntakeOutcome(chat_id=inbound.chat_id, callback_query_id=inbound.callback_id)
    chat_logger = ChatLoggerAdapter(logger, inbound.chat_id, update.update_id)

    store = SessionStore(db)
    loaded = store.load(inbound.chat_id)
    categories = [(category.id, category.name) for category in list_categories(db)]

    step = transition(loaded, inbound, dict(categories))
    session = step.session
    replies: list[Reply] = []

    for effect in step.effects:
        if isinstance(effect, Reply):
            replies.append(effect)
        elif isinstance(effect, ResolveAccount):
            session = _resolve(db, session, effect.first_name, effect.last_name, chat_logger)
        elif isinstance(effect, SubmitTicket):
            session, reply = _submit(db, session, inbound, outcome, chat_logger)
            replies.append(reply)
        elif isinstance(effect, QueryStatus):
            replies.append(_status_reply(db, session, effect.ticket_number))

    if session != loaded:
        store.upsert(session)
        chat_logger.info(
            "Session updated",
            context={"from_state": loaded.state.value, "to_state": session.state.value},
        )
    db.commit()

    outcome.replies = [render_reply(inbound.chat_id, reply, session.language, categories) for reply in replies]
    return outcome


def _resolve(
    db: Session,
    session: SessionSnapshot,
    first_name: Optional[str],
    last_name: Optional[str],
    chat_logger: ChatLoggerAdapter,
) -> SessionSnapshot:
    result = resolve_account(db, session.chat_id, first_name, last_name)
    if not result.ok:
        chat_logger.error("Account resolution failed", context={"error": result.error, "code": result.error_code})
        return session
    return replace(session, account_id=result.value)


def _submit(
    db: Session,
    session: SessionSnapshot,
    inbound: Inbound,
    outcome: IntakeOutcome,
    chat_logger: ChatLoggerAdapter,
) -> tuple[SessionSnapshot, Reply]:
    if session.account_id is None:
        session = _resolve(db, session, inbound.first_name, inbound.last_name, chat_logger)
        if session.account_id is None:
            return session, Reply(("unknown",))

    result: Result = submit_draft(db, session)
    if result.ok:
        outcome.ticket_number = result.value.ticket_number
        return result.value.session, Reply(("submitted",), params={"ticket": result.value.ticket_number})

    if result.retryable:
        chat_logger.warning("Ticket write failed, draft kept", context={"error": result.error})
        return session, Reply(("submitFailed",), keyboard=Keyboard.CONFIRMATION)

    chat_logger.warning("Ticket not written", context={"code": result.error_code})
    return session, Reply(("unknown",))


def _status_reply(db: Session, session: SessionSnapshot, ticket_number: str) -> Reply:
    ticket = find_channel_ticket(db, ticket_number, session.chat_id)
    if ticket is None:
        return Reply(("statusNotFound",))
    updated = ticket.updated_at or ticket.created_at
    return Reply(
        ("statusResult",),
        params={
            "ticket": ticket.ticket_number,
            "status": stage_label(session.language, tracking_stage(ticket).value),
            "updated": updated.strftime("%Y-%m-%d %H:%M") if updated else "-",
        },
    )
