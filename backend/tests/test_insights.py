"""Tests for blocker detection and action item rules."""

from __future__ import annotations

from datetime import datetime

from leasedesk.schemas.funnel import DropOff, Note
from leasedesk.services.insights import (
    BLOCKER_ASSESSMENT,
    BLOCKER_CONTACT,
    BLOCKER_MISSING_DOCUMENTS,
    BLOCKER_WAITING,
    STABLE_PIPELINE_MESSAGE,
    action_rules,
    generate_action_items,
    identify_blockers_from_notes,
)


def _note(text: str) -> Note:
    return Note(text=text, date=datetime(2024, 1, 1), author="User")


def _drop_from(stage: str) -> DropOff:
    return DropOff(from_stage=stage, to_stage="next", drop_count=50, drop_rate=50)


class TestBlockers:
    def test_english_keywords_in_category_order(self):
        blockers = identify_blockers_from_notes([
            _note("Unreachable 3 times"),
            _note("Customer waiting for documents"),
        ])
        assert blockers == [BLOCKER_MISSING_DOCUMENTS, BLOCKER_CONTACT]

    def test_czech_keywords_raise_all_categories(self):
        blockers = identify_blockers_from_notes([
            _note("Zakaznik ceka na dokumenty"),
            _note("Nedovolano 3x"),
            _note("Ceka na posouzeni"),
        ])
        assert blockers == [BLOCKER_WAITING, BLOCKER_MISSING_DOCUMENTS, BLOCKER_CONTACT, BLOCKER_ASSESSMENT]

    def test_no_duplicates_for_repeated_matches(self):
        blockers = identify_blockers_from_notes([_note("document"), _note("DOCUMENTS again")])
        assert blockers == [BLOCKER_MISSING_DOCUMENTS]

    def test_case_insensitive(self):
        assert identify_blockers_from_notes([_note("ON HOLD until Monday")]) == [BLOCKER_WAITING]

    def test_clean_notes(self):
        assert identify_blockers_from_notes([_note("All good")]) == []
        assert identify_blockers_from_notes([]) == []


class TestActionItems:
    def test_new_lead_drop_off(self):
        actions = generate_action_items(_drop_from("New lead"), {"New lead": 2.5, "Approved by account manager": 5.3})
        assert len(actions) == 3
        assert any("intake qualification" in a for a in actions)

    def test_account_manager_drop_off(self):
        actions = generate_action_items(_drop_from("Approved by account manager"), {})
        assert any("handoff" in a for a in actions)
        assert any("SLA" in a for a in actions)

    def test_technician_drop_off(self):
        actions = generate_action_items(_drop_from("Handed to technician"), {})
        assert any("after 3 days" in a for a in actions)

    def test_stable_pipeline_default(self):
        assert generate_action_items(None, {}) == [STABLE_PIPELINE_MESSAGE]
        assert generate_action_items(None, None) == [STABLE_PIPELINE_MESSAGE]

    def test_drop_off_from_last_stage_falls_back_to_default(self):
        assert generate_action_items(_drop_from("Converted"), {"New lead": 1.0}) == [STABLE_PIPELINE_MESSAGE]

    def test_long_dwell_without_drop_off(self):
        actions = generate_action_items(None, {"Handed to technician": 10.5})
        assert actions == ['Shorten dwell time in stage "Handed to technician" (currently 10.5 days)']

    def test_dwell_days_round_half_up(self):
        actions = generate_action_items(None, {"Handed to technician": 10.25})
        assert actions == ['Shorten dwell time in stage "Handed to technician" (currently 10.3 days)']

    def test_dwell_threshold_is_exclusive(self):
        assert generate_action_items(None, {"New lead": 7.0}) == [STABLE_PIPELINE_MESSAGE]

    def test_dwell_items_follow_mapping_order(self):
        actions = generate_action_items(None, {"Converted": 9.0, "New lead": 8.3})
        assert actions[0].startswith('Shorten dwell time in stage "Converted"')
        assert actions[1].endswith("(currently 8.3 days)")

    def test_truncated_to_five(self):
        dwell = {"New lead": 8.0, "Approved by account manager": 9.0, "Handed to technician": 12.0}
        actions = generate_action_items(_drop_from("New lead"), dwell)
        assert len(actions) == 5
        assert "intake qualification" in actions[0]
        assert '"Approved by account manager"' in actions[4]

    def test_rules_are_ordered_pairs(self):
        rules = action_rules()
        assert len(rules) == 4
        assert all(callable(predicate) and callable(producer) for predicate, producer in rules)
