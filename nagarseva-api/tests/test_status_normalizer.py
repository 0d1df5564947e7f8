from types import SimpleNamespace

import pytest

from nagarseva.services.status_normalizer import (
    ComplaintStatus,
    LegacyStatus,
    StatusPair,
    TrackingStage,
    initial_status_pair,
    normalize,
    status_pair_for_stage,
)


class TestNormalize:
    def test_resolved_without_coarse_is_closed(self):
        assert normalize(legacy="resolved", coarse=None) == TrackingStage.CLOSED

    def test_pending_coarse_defers_to_legacy(self):
        assert normalize(legacy="in_progress", coarse="pending") == TrackingStage.IN_PROGRESS

    def test_non_default_coarse_wins(self):
        assert normalize(legacy="submitted", coarse="accepted") == TrackingStage.ACCEPTED

    def test_coarse_wins_even_against_terminal_legacy(self):
        assert normalize(legacy="closed", coarse="in_progress") == TrackingStage.IN_PROGRESS

    @pytest.mark.parametrize(
        "legacy,expected",
        [
            ("submitted", TrackingStage.SUBMITTED),
            ("under_review", TrackingStage.ACCEPTED),
            ("assigned", TrackingStage.ACCEPTED),
            ("escalated", TrackingStage.ACCEPTED),
            ("reopened", TrackingStage.ACCEPTED),
            ("in_progress", TrackingStage.IN_PROGRESS),
            ("awaiting_confirmation", TrackingStage.IN_PROGRESS),
            ("resolved", TrackingStage.CLOSED),
            ("closed", TrackingStage.CLOSED),
        ],
    )
    def test_legacy_mapping(self, legacy, expected):
        assert normalize(legacy, "pending") == expected

    @pytest.mark.parametrize("legacy", [None, "", "archived", "  "])
    def test_unknown_legacy_is_submitted(self, legacy):
        assert normalize(legacy, None) == TrackingStage.SUBMITTED

    def test_unknown_coarse_is_ignored(self):
        assert normalize("under_review", "weird") == TrackingStage.ACCEPTED

    def test_accepts_enum_members_and_mixed_case(self):
        assert normalize(LegacyStatus.RESOLVED, ComplaintStatus.PENDING) == TrackingStage.CLOSED
        assert normalize("In_Progress", None) == TrackingStage.IN_PROGRESS

    def test_same_input_same_output(self):
        assert normalize("escalated", None) == normalize("escalated", None)


class TestStatusPair:
    def test_stage_from_ticket(self):
        ticket = SimpleNamespace(status="under_review", complaint_status="pending")
        assert StatusPair.of(ticket).stage == TrackingStage.ACCEPTED

    def test_initial_pair(self):
        pair = initial_status_pair()
        assert pair == StatusPair(legacy="submitted", coarse="pending")
        assert pair.stage == TrackingStage.SUBMITTED

    @pytest.mark.parametrize("stage", list(TrackingStage))
    def test_written_pair_reads_back_as_same_stage(self, stage):
        assert StatusPair.for_stage(stage).stage == stage

    def test_closed_pair(self):
        assert status_pair_for_stage("closed") == (LegacyStatus.CLOSED, ComplaintStatus.CLOSED)

    def test_unknown_stage_raises(self):
        with pytest.raises(ValueError):
            status_pair_for_stage("archived")
