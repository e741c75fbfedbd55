"""Tests for approval records, state transitions and record mapping."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone

import pytest

from launch_kernel.domain.approval import (
    UNAPPROVED,
    ApprovalRecord,
    ProductApprovalState,
    ProductStatus,
    approve,
    is_fully_approved,
    pending_sections,
    revoke,
    state_from_record,
    state_to_record,
)
from launch_kernel.domain.sections import ALL_SECTIONS, Section, section_fields
from launch_kernel.exceptions import ApprovalRecordInvariantError

NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


def fully_approved(product_id: str = "p-1") -> ProductApprovalState:
    state = ProductApprovalState.new_draft(product_id)
    for section in ALL_SECTIONS:
        state = approve(state, section, f"{section.value}@example.com", NOW)
    return state


class TestApprovalRecord:
    def test_default_is_unapproved(self):
        record = ApprovalRecord()
        assert record == UNAPPROVED
        assert record.approved is False
        assert record.approved_by is None
        assert record.approved_at is None

    def test_approved_record_requires_approver(self):
        with pytest.raises(ApprovalRecordInvariantError) as exc_info:
            ApprovalRecord(approved=True, approved_by=None, approved_at=NOW)
        assert exc_info.value.code == "APPROVAL_RECORD_INVARIANT"

    def test_approved_record_requires_timestamp(self):
        with pytest.raises(ApprovalRecordInvariantError):
            ApprovalRecord(approved=True, approved_by="a@example.com", approved_at=None)

    def test_blank_approver_rejected(self):
        with pytest.raises(ApprovalRecordInvariantError):
            ApprovalRecord(approved=True, approved_by="", approved_at=NOW)

    def test_unapproved_record_cannot_carry_approver(self):
        with pytest.raises(ApprovalRecordInvariantError):
            ApprovalRecord(approved=False, approved_by="a@example.com", approved_at=None)

    def test_unapproved_record_cannot_carry_timestamp(self):
        with pytest.raises(ApprovalRecordInvariantError):
            ApprovalRecord(approved=False, approved_by=None, approved_at=NOW)

    def test_frozen(self):
        record = ApprovalRecord(True, "a@example.com", NOW)
        with pytest.raises(FrozenInstanceError):
            record.approved = False


class TestProductApprovalState:
    def test_new_draft(self):
        state = ProductApprovalState.new_draft("p-1")
        assert state.status is ProductStatus.DRAFT
        assert state.version == 0
        assert state.launched_by is None
        assert all(state.record(s) == UNAPPROVED for s in ALL_SECTIONS)

    def test_missing_section_rejected(self):
        records = {s: UNAPPROVED for s in ALL_SECTIONS if s is not Section.LEGAL}
        with pytest.raises(ValueError, match="legal"):
            ProductApprovalState(product_id="p-1", records=records)

    def test_string_keys_and_status_coerced(self):
        state = ProductApprovalState(
            product_id="p-1",
            records={s.value: UNAPPROVED for s in ALL_SECTIONS},
            status="active",
            launched_by="launch@example.com",
            launched_at=NOW,
        )
        assert state.status is ProductStatus.ACTIVE
        assert state.record("finance") == UNAPPROVED

    def test_records_mapping_is_read_only(self):
        state = ProductApprovalState.new_draft("p-1")
        with pytest.raises(TypeError):
            state.records[Section.LEGAL] = ApprovalRecord(True, "x", NOW)

    def test_launch_fields_set_together(self):
        with pytest.raises(ValueError, match="launched_by and launched_at"):
            ProductApprovalState(
                product_id="p-1",
                records={s: UNAPPROVED for s in ALL_SECTIONS},
                launched_by="launch@example.com",
            )


class TestTransitions:
    def test_approve_stamps_identity_and_time(self):
        state = ProductApprovalState.new_draft("p-1")
        after = approve(state, Section.LEGAL, "legal@example.com", NOW)

        assert after.record(Section.LEGAL) == ApprovalRecord(True, "legal@example.com", NOW)
        assert state.record(Section.LEGAL) == UNAPPROVED
        assert after.version == state.version

    def test_approve_is_idempotent(self):
        state = approve(ProductApprovalState.new_draft("p-1"), Section.LEGAL, "first", NOW)
        again = approve(state, Section.LEGAL, "second", NOW + timedelta(hours=1))

        assert again is state
        assert again.record(Section.LEGAL).approved_by == "first"
        assert again.record(Section.LEGAL).approved_at == NOW

    def test_approve_leaves_other_sections(self):
        state = approve(ProductApprovalState.new_draft("p-1"), Section.LEGAL, "l", NOW)
        for section in ALL_SECTIONS:
            if section is not Section.LEGAL:
                assert state.record(section) == UNAPPROVED

    def test_revoke_clears_triple(self):
        state = approve(ProductApprovalState.new_draft("p-1"), Section.FINANCE, "f", NOW)
        after = revoke(state, Section.FINANCE)
        assert after.record(Section.FINANCE) == UNAPPROVED

    def test_revoke_unapproved_is_noop(self):
        state = ProductApprovalState.new_draft("p-1")
        assert revoke(state, Section.FINANCE) is state

    def test_revoke_does_not_touch_status(self):
        state = ProductApprovalState(
            product_id="p-1",
            records=fully_approved().records,
            status=ProductStatus.ACTIVE,
            launched_by="launch@example.com",
            launched_at=NOW,
        )
        after = revoke(state, Section.MARKETING)
        assert after.status is ProductStatus.ACTIVE
        assert after.launched_by == "launch@example.com"

    def test_fully_approved_and_pending(self):
        state = ProductApprovalState.new_draft("p-1")
        assert not is_fully_approved(state)
        assert pending_sections(state) == ALL_SECTIONS

        state = fully_approved()
        assert is_fully_approved(state)
        assert pending_sections(state) == ()

        state = revoke(state, Section.SALESOPS)
        assert pending_sections(state) == (Section.SALESOPS,)


class TestRecordMapping:
    def test_field_names_are_exact(self):
        names = section_fields(Section.SALESOPS)
        assert names.approved == "salesops_approved"
        assert names.approved_by == "salesops_approved_by"
        assert names.approved_at == "salesops_approved_at"

    def test_state_to_record_layout(self):
        state = approve(ProductApprovalState.new_draft("p-1"), Section.LEGAL, "l@example.com", NOW)
        data = state_to_record(state)

        assert data["legal_approved"] is True
        assert data["legal_approved_by"] == "l@example.com"
        assert data["legal_approved_at"] == NOW.isoformat()
        assert data["finance_approved"] is False
        assert data["finance_approved_by"] is None
        assert data["finance_approved_at"] is None
        assert data["status"] == "draft"
        assert data["launched_by"] is None
        assert data["launched_at"] is None
        assert data["version"] == 0

    def test_state_from_record_restores_state(self):
        state = approve(fully_approved(), Section.LEGAL, "ignored", NOW)
        restored = state_from_record("p-1", state_to_record(state))
        assert restored == state

    def test_missing_fields_read_as_unapproved_draft(self):
        state = state_from_record("p-9", {})
        assert state == ProductApprovalState.new_draft("p-9")

    def test_partial_section_rejected(self):
        with pytest.raises(ApprovalRecordInvariantError):
            state_from_record("p-1", {"legal_approved": True})
