"""Tests for the annotator state machine and session."""

import pytest

from src.annotator import (
    AnnotationDraft,
    AnnotationSession,
    AnnotatorPhase,
    AnnotatorState,
    Commit,
    Discard,
    PointerDown,
    PointerMove,
    PointerUp,
    RemoveZone,
    SelectField,
    SetValue,
    reduce,
)
from src.geometry import BoundingBox
from src.schema import FieldName
from src.templates import DetectedZone, DocumentCorrection
from src.utils.exceptions import AnnotationStateError


def _drag(state, field_name, start, end):
    state = reduce(state, SelectField(field_name))
    state = reduce(state, PointerDown(*start))
    state = reduce(state, PointerMove(*end))
    return reduce(state, PointerUp(*end))


class TestReducer:

    def test_full_cycle(self):
        state = reduce(AnnotatorState(), SetValue(FieldName.TOTAL_TTC, "152,40 €"))
        state = reduce(state, SelectField(FieldName.TOTAL_TTC))
        assert state.phase is AnnotatorPhase.DRAWING

        state = reduce(state, PointerDown(0.7, 0.9))
        state = reduce(state, PointerMove(0.9, 0.93))
        assert state.candidate.width == pytest.approx(0.2)

        state = reduce(state, PointerUp())
        assert state.phase is AnnotatorPhase.ZONE_PENDING

        state = reduce(state, Commit())
        assert state.phase is AnnotatorPhase.IDLE
        assert state.last_outcome == "committed"
        zone = state.zones[FieldName.TOTAL_TTC]
        assert zone.value == "152,40 €"
        assert zone.confidence == 1.0
        assert zone.label_found == "manually defined"
        assert zone.zone.x == pytest.approx(0.7)
        assert zone.zone.height == pytest.approx(0.03)

    def test_drag_up_and_left(self):
        state = _drag(AnnotatorState(), FieldName.INVOICE_NUMBER, (0.5, 0.5), (0.2, 0.1))
        assert state.phase is AnnotatorPhase.ZONE_PENDING
        assert state.candidate.x == pytest.approx(0.2)
        assert state.candidate.y == pytest.approx(0.1)
        assert state.candidate.width == pytest.approx(0.3)
        assert state.candidate.height == pytest.approx(0.4)

    @pytest.mark.parametrize("end", [(0.505, 0.6), (0.6, 0.505), (0.5, 0.5)])
    def test_tiny_boxes_are_rejected(self, end):
        state = _drag(AnnotatorState(), FieldName.TOTAL_TTC, (0.5, 0.5), end)
        assert state.phase is AnnotatorPhase.IDLE
        assert state.last_outcome == "rejected"
        assert state.candidate is None
        assert reduce(state, Commit()).zones == {}

    def test_custom_minimum_size(self):
        state = reduce(AnnotatorState(), SelectField(FieldName.TOTAL_TTC))
        state = reduce(state, PointerDown(0.1, 0.1))
        state = reduce(state, PointerUp(0.15, 0.15), min_size=0.1)
        assert state.phase is AnnotatorPhase.IDLE

    def test_pointer_is_clamped_to_page(self):
        state = _drag(AnnotatorState(), FieldName.TOTAL_TTC, (0.8, 0.9), (1.4, 1.2))
        assert state.candidate.right == pytest.approx(1.0)
        assert state.candidate.bottom == pytest.approx(1.0)
        assert state.candidate.is_normalized

    def test_page_is_kept(self):
        state = reduce(AnnotatorState(), SelectField(FieldName.TOTAL_TTC))
        state = reduce(state, PointerDown(0.1, 0.1, page=2))
        state = reduce(state, PointerUp(0.3, 0.3))
        state = reduce(state, Commit())
        assert state.zones[FieldName.TOTAL_TTC].zone.page == 2

    def test_selecting_a_field_discards_pending_zone(self):
        state = _drag(AnnotatorState(), FieldName.TOTAL_TTC, (0.1, 0.1), (0.3, 0.2))
        state = reduce(state, SelectField(FieldName.TOTAL_HT))
        assert state.phase is AnnotatorPhase.DRAWING
        assert state.field is FieldName.TOTAL_HT
        assert state.candidate is None
        assert state.last_outcome == "discarded"
        assert state.zones == {}

    def test_discard(self):
        state = _drag(AnnotatorState(), FieldName.TOTAL_TTC, (0.1, 0.1), (0.3, 0.2))
        state = reduce(state, Discard())
        assert state.phase is AnnotatorPhase.IDLE
        assert state.zones == {}

    def test_commit_overwrites_previous_zone(self):
        state = reduce(_drag(AnnotatorState(), FieldName.TOTAL_TTC, (0.1, 0.1), (0.3, 0.2)), Commit())
        state = reduce(_drag(state, FieldName.TOTAL_TTC, (0.5, 0.5), (0.7, 0.6)), Commit())
        assert list(state.zones) == [FieldName.TOTAL_TTC]
        assert state.zones[FieldName.TOTAL_TTC].zone.x == pytest.approx(0.5)

    @pytest.mark.parametrize("event", [
        PointerDown(0.1, 0.1),
        PointerMove(0.2, 0.2),
        PointerUp(0.2, 0.2),
        Commit(),
        Discard(),
    ])
    def test_invalid_events_in_idle_are_ignored(self, event):
        state = AnnotatorState()
        assert reduce(state, event) is state

    def test_commit_while_drawing_is_ignored(self):
        state = reduce(AnnotatorState(), SelectField(FieldName.TOTAL_TTC))
        state = reduce(state, PointerDown(0.1, 0.1))
        assert reduce(state, Commit()) is state

    def test_remove_zone_in_any_phase(self):
        state = reduce(_drag(AnnotatorState(), FieldName.TOTAL_TTC, (0.1, 0.1), (0.3, 0.2)), Commit())
        state = _drag(state, FieldName.TOTAL_HT, (0.5, 0.5), (0.7, 0.6))
        state = reduce(state, RemoveZone(FieldName.TOTAL_TTC))
        assert state.zones == {}
        assert state.phase is AnnotatorPhase.ZONE_PENDING

    def test_set_value_updates_committed_zone(self):
        state = reduce(_drag(AnnotatorState(), FieldName.TOTAL_TTC, (0.1, 0.1), (0.3, 0.2)), Commit())
        state = reduce(state, SetValue(FieldName.TOTAL_TTC, "99,00"))
        assert state.zones[FieldName.TOTAL_TTC].value == "99,00"
        state = reduce(state, SetValue(FieldName.TOTAL_TTC, ""))
        assert state.values[FieldName.TOTAL_TTC] is None

    def test_snapshot(self):
        state = _drag(AnnotatorState(), FieldName.TOTAL_TTC, (0.1, 0.1), (0.3, 0.2))
        snapshot = state.snapshot()
        assert snapshot["state"] == "zone-pending"
        assert snapshot["pending_field"] == "total_ttc"
        assert snapshot["candidate_box"]["width"] == pytest.approx(0.2)
        assert snapshot["committed_zones"] == {}

        idle = AnnotatorState().snapshot()
        assert idle["pending_field"] is None
        assert idle["candidate_box"] is None


class TestSession:

    def test_draw_and_commit_notifies_listeners(self):
        session = AnnotationSession(AnnotationDraft.create("doc-1", "acc-1"))
        snapshots = []
        unsubscribe = session.subscribe(snapshots.append)

        session.draw("invoice_number", (0.7, 0.1), (0.9, 0.13))
        session.commit()
        assert snapshots[-1]["state"] == "idle"
        assert set(snapshots[-1]["committed_zones"]) == {"invoice_number"}

        count = len(snapshots)
        unsubscribe()
        session.set_value("total_ttc", "1,00")
        assert len(snapshots) == count

    def test_ignored_event_does_not_notify(self):
        session = AnnotationSession(AnnotationDraft.create("doc-1", "acc-1"))
        snapshots = []
        session.subscribe(snapshots.append)
        session.commit()
        assert snapshots == []

    def test_strict_session_raises(self):
        session = AnnotationSession(AnnotationDraft.create("doc-1", "acc-1"), strict=True)
        with pytest.raises(AnnotationStateError):
            session.commit()

    def test_strict_session_rejected_box_then_commit(self):
        session = AnnotationSession(AnnotationDraft.create("doc-1", "acc-1"), strict=True)
        session.draw("total_ttc", (0.5, 0.5), (0.502, 0.6))
        assert session.phase is AnnotatorPhase.IDLE
        with pytest.raises(AnnotationStateError):
            session.commit()

    def test_draft_is_replaced_not_mutated(self):
        draft = AnnotationDraft.create("doc-1", "acc-1")
        session = AnnotationSession(draft)
        session.set_value("supplier_name", "ACME SAS")
        assert draft.supplier_name == ""
        assert session.draft.supplier_name == "ACME SAS"


class TestDraft:

    def test_create_merges_zone_values(self):
        zone = DetectedZone(zone=BoundingBox(0.1, 0.1, 0.2, 0.05), value="F-1", confidence=0.9)
        draft = AnnotationDraft.create(
            "doc-1", "acc-1",
            values={"supplier_name": " ACME SAS ", "supplier_siret": ""},
            zones={"invoice_number": zone},
        )
        assert draft.values[FieldName.INVOICE_NUMBER] == "F-1"
        assert draft.supplier_name == "ACME SAS"
        assert draft.supplier_tax_id is None

    def test_reopen_saved_document(self):
        zone = DetectedZone(zone=BoundingBox(0.1, 0.1, 0.2, 0.05), value="F-1", confidence=1.0)
        correction = DocumentCorrection(
            document_id="doc-1",
            owner="acc-1",
            values={FieldName.INVOICE_NUMBER: "F-1 corrected"},
            zones={FieldName.INVOICE_NUMBER: zone},
            template_id="tpl-1",
        )
        draft = AnnotationDraft.from_correction(correction)
        assert draft.template_id == "tpl-1"
        assert draft.values[FieldName.INVOICE_NUMBER] == "F-1 corrected"
        assert draft.zones[FieldName.INVOICE_NUMBER].zone == zone.zone
