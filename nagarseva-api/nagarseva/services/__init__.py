from nagarseva.services.identity_service import resolve_account
from nagarseva.services.intake_service import IntakeOutcome, process_update
from nagarseva.services.session_store import SessionStore
from nagarseva.services.state_machine import (
    ConversationState,
    Draft,
    Inbound,
    Language,
    SessionSnapshot,
    Transition,
    transition,
)
from nagarseva.services.status_normalizer import StatusPair, TrackingStage, normalize
from nagarseva.services.ticket_service import submit_draft
from nagarseva.services.update_ledger import claim_update
