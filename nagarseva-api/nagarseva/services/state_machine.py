"""Conversation state machine for grievance intake over Telegram.

``transition`` is pure: it takes the current session snapshot and one inbound
event and returns the next snapshot plus the effects the caller has to run.
Nothing in this module touches the database or the network.
"""

import json
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Union

MIN_DESCRIPTION_LENGTH = 10
MIN_LOCATION_LENGTH = 3

LANG_PREFIX = "lang:"
CATEGORY_PREFIX = "cat:"
CONFIRM_SUBMIT = "confirm:submit"
CONFIRM_CANCEL = "confirm:cancel"

RESET_COMMANDS = ("/start", "/new")
CANCEL_COMMAND = "/cancel"
HELP_COMMAND = "/help"
STATUS_COMMAND = "/status"


class ConversationState(str, Enum):
    IDLE = "idle"
    AWAITING_LANGUAGE = "awaiting_language"
    AWAITING_CATEGORY = "awaiting_category"
    AWAITING_DESCRIPTION = "awaiting_description"
    AWAITING_LOCATION = "awaiting_location"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


INITIAL_STATE = ConversationState.AWAITING_LANGUAGE


class Language(str, Enum):
    EN = "en"
    HI = "hi"
    MR = "mr"


DEFAULT_LANGUAGE = Language.EN

LANGUAGE_ALIASES = {
    "en": Language.EN,
    "english": Language.EN,
    "eng": Language.EN,
    "hi": Language.HI,
    "hindi": Language.HI,
    "hin": Language.HI,
    "mr": Language.MR,
    "marathi": Language.MR,
    "mar": Language.MR,
}


class Keyboard(str, Enum):
    LANGUAGE = "language"
    CATEGORY = "category"
    CONFIRMATION = "confirmation"


def parse_language(value: Optional[str]) -> Optional[Language]:
    return LANGUAGE_ALIASES.get((value or "").strip().lower())


def coerce_state(value: Optional[str]) -> ConversationState:
    try:
        return ConversationState(value)
    except ValueError:
        return INITIAL_STATE


def coerce_language(value: Optional[str]) -> Language:
    return parse_language(value) or DEFAULT_LANGUAGE


@dataclass(frozen=True)
class Draft:
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_complete(self) -> bool:
        if self.category_id is None or not self.description or not self.location:
            return False
        if len(self.description.strip()) < MIN_DESCRIPTION_LENGTH:
            return False
        return self.has_coordinates or len(self.location.strip()) >= MIN_LOCATION_LENGTH

    def to_json(self) -> str:
        return json.dumps({k: v for k, v in asdict(self).items() if v is not None}, ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "Draft":
        """Load a stored draft; anything unreadable becomes an empty draft."""
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return cls()
        if not isinstance(data, dict):
            return cls()
        try:
            return cls(
                category_id=int(data["category_id"]) if data.get("category_id") is not None else None,
                category_name=_optional_str(data.get("category_name")),
                description=_optional_str(data.get("description")),
                location=_optional_str(data.get("location")),
                latitude=float(data["latitude"]) if data.get("latitude") is not None else None,
                longitude=float(data["longitude"]) if data.get("longitude") is not None else None,
            )
        except (TypeError, ValueError):
            return cls()


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class SessionSnapshot:
    chat_id: str
    account_id: Optional[int] = None
    state: ConversationState = INITIAL_STATE
    language: Language = DEFAULT_LANGUAGE
    draft: Draft = field(default_factory=Draft)
    updated_at: Optional[datetime] = field(default=None, compare=False)

    def reset(self, state: ConversationState) -> "SessionSnapshot":
        return replace(self, state=state, draft=Draft())


@dataclass(frozen=True)
class Inbound:
    """One user event, already reduced from the Telegram update."""

    chat_id: str
    text: str = ""
    callback_data: Optional[str] = None
    callback_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_callback(self) -> bool:
        return self.callback_data is not None


@dataclass(frozen=True)
class Reply:
    keys: tuple[str, ...]
    params: Mapping[str, str] = field(default_factory=dict)
    keyboard: Optional[Keyboard] = None
    summary: Optional[Draft] = None


@dataclass(frozen=True)
class ResolveAccount:
    first_name: Optional[str] = None
    last_name: Optional[str] = None


@dataclass(frozen=True)
class SubmitTicket:
    pass


@dataclass(frozen=True)
class QueryStatus:
    ticket_number: str


Effect = Union[Reply, ResolveAccount, SubmitTicket, QueryStatus]


@dataclass(frozen=True)
class Transition:
    session: SessionSnapshot
    effects: tuple[Effect, ...] = ()

    @property
    def replies(self) -> list[Reply]:
        return [effect for effect in self.effects if isinstance(effect, Reply)]


def new_session(chat_id: str) -> SessionSnapshot:
    return SessionSnapshot(chat_id=chat_id)


def _stay(session: SessionSnapshot, *effects: Effect) -> Transition:
    return Transition(session=session, effects=tuple(effects))


def _command(text: str) -> Optional[str]:
    lowered = text.strip().lower()
    if not lowered.startswith("/"):
        return None
    head = lowered.split(maxsplit=1)[0]
    # Telegram appends the bot name in groups: /status@nagarseva_bot
    return head.split("@", 1)[0]


def _clarify(session: SessionSnapshot) -> Transition:
    state = session.state
    if state == ConversationState.AWAITING_LANGUAGE:
        return _stay(session, Reply(("chooseLanguage",), keyboard=Keyboard.LANGUAGE))
    if state == ConversationState.AWAITING_CATEGORY:
        return _stay(session, Reply(("chooseCategory",), keyboard=Keyboard.CATEGORY))
    if state == ConversationState.AWAITING_DESCRIPTION:
        return _stay(session, Reply(("enterDescription",)))
    if state == ConversationState.AWAITING_LOCATION:
        return _stay(session, Reply(("enterLocation",)))
    if state == ConversationState.AWAITING_CONFIRMATION:
        return _stay(session, Reply(("confirmPrompt",), keyboard=Keyboard.CONFIRMATION, summary=session.draft))
    return _stay(session, Reply(("unknown",)))


def _reset(session: SessionSnapshot) -> Transition:
    return _stay(
        session.reset(ConversationState.AWAITING_LANGUAGE),
        Reply(("welcome", "chooseLanguage"), keyboard=Keyboard.LANGUAGE),
    )


def _cancel(session: SessionSnapshot) -> Transition:
    return _stay(session.reset(ConversationState.IDLE), Reply(("cancelled",)))


def _status_query(session: SessionSnapshot, text: str) -> Transition:
    parts = text.split()
    if len(parts) < 2 or not parts[1].strip():
        return _stay(session, Reply(("statusMissing",)))
    return _stay(session, QueryStatus(ticket_number=parts[1].strip().upper()))


def _select_language(session: SessionSnapshot, inbound: Inbound, raw: str) -> Transition:
    language = parse_language(raw)
    if language is None:
        return _stay(session, Reply(("chooseLanguage",), keyboard=Keyboard.LANGUAGE))
    next_session = replace(session, language=language, state=ConversationState.AWAITING_CATEGORY)
    return _stay(
        next_session,
        ResolveAccount(first_name=inbound.first_name, last_name=inbound.last_name),
        Reply(("languageSet", "chooseCategory"), keyboard=Keyboard.CATEGORY),
    )


def _select_category(session: SessionSnapshot, raw: str, categories: Mapping[int, str]) -> Transition:
    try:
        category_id = int(raw)
    except ValueError:
        category_id = None
    if category_id is None or category_id not in categories:
        return _stay(session, Reply(("chooseCategory",), keyboard=Keyboard.CATEGORY))
    draft = replace(session.draft, category_id=category_id, category_name=categories[category_id])
    next_session = replace(session, draft=draft, state=ConversationState.AWAITING_DESCRIPTION)
    return _stay(next_session, Reply(("enterDescription",)))


def _enter_description(session: SessionSnapshot, text: str) -> Transition:
    if len(text) < MIN_DESCRIPTION_LENGTH:
        return _stay(session, Reply(("invalidDescription",)))
    draft = replace(session.draft, description=text)
    next_session = replace(session, draft=draft, state=ConversationState.AWAITING_LOCATION)
    return _stay(next_session, Reply(("enterLocation",)))


def _enter_location(session: SessionSnapshot, inbound: Inbound, text: str) -> Transition:
    if inbound.has_location:
        draft = replace(
            session.draft,
            latitude=inbound.latitude,
            longitude=inbound.longitude,
            location=f"{inbound.latitude:.6f}, {inbound.longitude:.6f}",
        )
    elif len(text) >= MIN_LOCATION_LENGTH:
        draft = replace(session.draft, location=text, latitude=None, longitude=None)
    else:
        return _stay(session, Reply(("invalidLocation",)))
    next_session = replace(session, draft=draft, state=ConversationState.AWAITING_CONFIRMATION)
    return _stay(
        next_session,
        Reply(("confirmPrompt",), keyboard=Keyboard.CONFIRMATION, summary=draft),
    )


def _confirm(session: SessionSnapshot) -> Transition:
    if not session.draft.is_complete:
        return _stay(session, Reply(("unknown",)))
    return _stay(session, SubmitTicket())


def _handle_callback(session: SessionSnapshot, inbound: Inbound, categories: Mapping[int, str]) -> Transition:
    data = inbound.callback_data or ""
    state = session.state

    if data == CONFIRM_CANCEL:
        return _cancel(session)
    if data.startswith(LANG_PREFIX) and state == ConversationState.AWAITING_LANGUAGE:
        return _select_language(session, inbound, data[len(LANG_PREFIX) :])
    if data.startswith(CATEGORY_PREFIX) and state == ConversationState.AWAITING_CATEGORY:
        return _select_category(session, data[len(CATEGORY_PREFIX) :], categories)
    if data == CONFIRM_SUBMIT and state == ConversationState.AWAITING_CONFIRMATION:
        return _confirm(session)
    return _clarify(session)


def transition(
    session: SessionSnapshot,
    inbound: Inbound,
    categories: Mapping[int, str],
) -> Transition:
    """Apply one inbound event to ``session``.

    Global commands (/start, /new, /cancel, /help, /status) are handled before
    any state-specific rule. Input with no rule for the current state gets a
    clarifying reply and leaves the session untouched.
    """
    if inbound.is_callback:
        return _handle_callback(session, inbound, categories)

    text = (inbound.text or "").strip()
    command = _command(text)
    if command in RESET_COMMANDS:
        return _reset(session)
    if command == CANCEL_COMMAND:
        return _cancel(session)
    if command == HELP_COMMAND:
        return _stay(session, Reply(("help",)))
    if command == STATUS_COMMAND:
        return _status_query(session, text)
    if command is not None:
        return _clarify(session)

    state = session.state
    if state == ConversationState.AWAITING_LANGUAGE:
        return _select_language(session, inbound, text)
    if parse_language(text) is not None and not inbound.has_location:
        # Language changes only through /start or /new.
        return _clarify(session)
    if state == ConversationState.AWAITING_DESCRIPTION:
        return _enter_description(session, text)
    if state == ConversationState.AWAITING_LOCATION:
        return _enter_location(session, inbound, text)
    return _clarify(session)
