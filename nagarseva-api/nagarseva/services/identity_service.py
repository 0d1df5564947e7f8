import hashlib
import re
import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from nagarseva.database import dialect_insert
from nagarseva.logging_config import get_logger
from nagarseva.models import Account
from nagarseva.services.alert_service import alert_critical
from nagarseva.services.result import Result

logger = get_logger("identity_service")

PLACEHOLDER_EMAIL_DOMAIN = "telegram.local"
CITIZEN_ROLE = "citizen"


def placeholder_email(chat_id: str) -> str:
    """Deterministic account key for a chat id, used before a binding exists."""
    safe = re.sub(r"[^a-zA-Z0-9_-]", "_", chat_id)
    return f"tg_{safe}@{PLACEHOLDER_EMAIL_DOMAIN}"


def fallback_display_name(chat_id: str, first_name: Optional[str] = None, last_name: Optional[str] = None) -> str:
    full_name = f"{first_name or ''} {last_name or ''}".strip()
    return full_name or f"Telegram User {chat_id}"


def unusable_password_hash() -> str:
    """Hash of a random secret nobody is told; password login can never match it."""
    digest = hashlib.sha256(secrets.token_bytes(32)).hexdigest()
    return f"!sha256${digest}"


def find_bound_account(db: Session, chat_id: str) -> Optional[Account]:
    return db.query(Account).filter(Account.telegram_chat_id == chat_id).first()


def _find_by_email(db: Session, email: str) -> Optional[Account]:
    return db.query(Account).filter(Account.email == email).first()


def _bind(db: Session, account: Account, chat_id: str) -> None:
    account.telegram_chat_id = chat_id
    db.flush()


def resolve_account(
    db: Session,
    chat_id: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Result[int]:
    """Map a chat id to an account id, provisioning a citizen account if needed.

    Lookup order: existing chat binding, then the placeholder account for this
    chat (binding backfilled), then a new account. The unique email and chat
    binding make concurrent calls for one chat converge on a single account.
    """
    account = find_bound_account(db, chat_id)
    if account:
        return Result.success(account.id)

    email = placeholder_email(chat_id)
    account = _find_by_email(db, email)
    if account:
        if account.telegram_chat_id and account.telegram_chat_id != chat_id:
            return _conflict(chat_id, email, account.telegram_chat_id)
        _bind(db, account, chat_id)
        logger.info(
            "Backfilled chat binding",
            extra={"context": {"chat_id": chat_id, "account_id": account.id}},
        )
        return Result.success(account.id)

    stmt = (
        dialect_insert(db, Account)
        .values(
            email=email,
            password_hash=unusable_password_hash(),
            name=fallback_display_name(chat_id, first_name, last_name),
            role=CITIZEN_ROLE,
            telegram_chat_id=chat_id,
            created_at=datetime.now(timezone.utc),
        )
        .on_conflict_do_nothing()
    )
    inserted = db.execute(stmt).rowcount > 0

    account = find_bound_account(db, chat_id) or _find_by_email(db, email)
    if account is None:
        return _conflict(chat_id, email, None)
    if account.telegram_chat_id and account.telegram_chat_id != chat_id:
        return _conflict(chat_id, email, account.telegram_chat_id)
    if account.telegram_chat_id is None:
        _bind(db, account, chat_id)

    if inserted:
        logger.info(
            "Provisioned account for chat",
            extra={"context": {"chat_id": chat_id, "account_id": account.id}},
        )
    return Result.success(account.id)


def _conflict(chat_id: str, email: str, bound_to: Optional[str]) -> Result[int]:
    context = {"chat_id": chat_id, "email": email, "bound_to": bound_to}
    logger.critical("Identity conflict while resolving chat account", extra={"context": context})
    alert_critical("Identity conflict while resolving chat account", context)
    return Result.failure(f"Cannot resolve account for chat {chat_id}", "identity_conflict")
