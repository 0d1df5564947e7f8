"""Reconcile the two generations of ticket status into one tracking stage.

Tickets carry a fine-grained legacy ``status`` (web channel) and a coarse
``complaint_status`` added later for the chat channel. Every surface that shows a
status to a citizen goes through :func:`normalize`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class LegacyStatus(str, Enum):
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    RESOLVED = "resolved"
    CLOSED = "closed"
    ESCALATED = "escalated"
    REOPENED = "reopened"


class ComplaintStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class TrackingStage(str, Enum):
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


DEFAULT_COMPLAINT_STATUS = ComplaintStatus.PENDING

COARSE_TO_STAGE = {
    ComplaintStatus.ACCEPTED: TrackingStage.ACCEPTED,
    ComplaintStatus.IN_PROGRESS: TrackingStage.IN_PROGRESS,
    ComplaintStatus.CLOSED: TrackingStage.CLOSED,
}

LEGACY_TO_STAGE = {
    LegacyStatus.RESOLVED: TrackingStage.CLOSED,
    LegacyStatus.CLOSED: TrackingStage.CLOSED,
    LegacyStatus.UNDER_REVIEW: TrackingStage.ACCEPTED,
    LegacyStatus.ASSIGNED: TrackingStage.ACCEPTED,
    LegacyStatus.ESCALATED: TrackingStage.ACCEPTED,
    LegacyStatus.REOPENED: TrackingStage.ACCEPTED,
    LegacyStatus.IN_PROGRESS: TrackingStage.IN_PROGRESS,
    LegacyStatus.AWAITING_CONFIRMATION: TrackingStage.IN_PROGRESS,
}

# Single write mapping for staff updates; legacy value first, coarse second.
STAGE_TO_PAIR = {
    TrackingStage.SUBMITTED: (LegacyStatus.SUBMITTED, ComplaintStatus.PENDING),
    TrackingStage.ACCEPTED: (LegacyStatus.UNDER_REVIEW, ComplaintStatus.ACCEPTED),
    TrackingStage.IN_PROGRESS: (LegacyStatus.IN_PROGRESS, ComplaintStatus.IN_PROGRESS),
    TrackingStage.CLOSED: (LegacyStatus.CLOSED, ComplaintStatus.CLOSED),
}


def _coerce(enum_cls, value):
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return None


def normalize(
    legacy: Optional[Union[str, LegacyStatus]],
    coarse: Optional[Union[str, ComplaintStatus]] = None,
) -> TrackingStage:
    """Return the canonical stage for a (legacy, coarse) status pair.

    A known coarse value other than ``pending`` wins outright. Otherwise the
    legacy value is mapped; unknown or missing values fall back to ``submitted``.
    """
    coarse_status = _coerce(ComplaintStatus, coarse)
    if coarse_status is not None and coarse_status != DEFAULT_COMPLAINT_STATUS:
        return COARSE_TO_STAGE[coarse_status]

    legacy_status = _coerce(LegacyStatus, legacy)
    if legacy_status is None:
        return TrackingStage.SUBMITTED
    return LEGACY_TO_STAGE.get(legacy_status, TrackingStage.SUBMITTED)


@dataclass(frozen=True)
class StatusPair:
    """Both stored status fields of a ticket, kept side by side."""

    legacy: Optional[str]
    coarse: Optional[str]

    @classmethod
    def of(cls, ticket) -> "StatusPair":
        return cls(legacy=ticket.status, coarse=ticket.complaint_status)

    @classmethod
    def for_stage(cls, stage: Union[str, TrackingStage]) -> "StatusPair":
        legacy, coarse = status_pair_for_stage(stage)
        return cls(legacy=legacy.value, coarse=coarse.value)

    @property
    def stage(self) -> TrackingStage:
        return normalize(self.legacy, self.coarse)


def status_pair_for_stage(stage: Union[str, TrackingStage]) -> tuple[LegacyStatus, ComplaintStatus]:
    """Status values to store when staff move a ticket to ``stage``."""
    return STAGE_TO_PAIR[TrackingStage(stage)]


def initial_status_pair() -> StatusPair:
    return StatusPair.for_stage(TrackingStage.SUBMITTED)
