"""Tests for SqlApprovalPersistence against a real database session."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, text

from launch_kernel.db.engine import session_scope
from launch_kernel.domain.approval import ProductApprovalState, ProductStatus
from launch_kernel.domain.sections import ALL_SECTIONS, Section
from launch_kernel.exceptions import (
    ApprovalRecordInvariantError,
    ConflictError,
    ImmutabilityViolationError,
    InvalidTransitionError,
    PersistenceFailureError,
    ProductNotFoundError,
)
from launch_kernel.models.audit_event import ApprovalAuditEventModel
from launch_kernel.services.sql_persistence import SqlApprovalPersistence
from launch_kernel.services.workflow_controller import WorkflowController

PRODUCT = "sku-1000"
APPROVED_AT = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def sql_adapter(session_factory, deterministic_clock):
    adapter = SqlApprovalPersistence(session_factory, clock=deterministic_clock)
    adapter.register_product(PRODUCT, actor="setup@example.com")
    return adapter


def approve_all(adapter, version=0):
    for section in ALL_SECTIONS:
        version = adapter.save_approval_field(
            PRODUCT, section, True, f"{section.value}@example.com", APPROVED_AT,
            expected_version=version,
        )
    return version


class TestRegisterAndLoad:
    def test_registered_product_is_draft(self, sql_adapter):
        state = sql_adapter.load_state(PRODUCT)
        assert state == ProductApprovalState.new_draft(PRODUCT)

    def test_unknown_product(self, sql_adapter):
        with pytest.raises(ProductNotFoundError) as exc_info:
            sql_adapter.load_state("missing")
        assert exc_info.value.code == "PRODUCT_NOT_FOUND"

    def test_duplicate_registration(self, sql_adapter):
        with pytest.raises(PersistenceFailureError):
            sql_adapter.register_product(PRODUCT)


class TestSaveApprovalField:
    def test_persists_exact_column_names(self, sql_adapter, session_factory):
        new_version = sql_adapter.save_approval_field(
            PRODUCT, Section.LEGAL, True, "legal@example.com", APPROVED_AT,
            expected_version=0,
        )
        assert new_version == 1

        with session_scope(session_factory) as session:
            row = session.execute(
                text(
                    "SELECT legal_approved, legal_approved_by, legal_approved_at, "
                    "marketing_approved, status, version FROM products "
                    "WHERE product_id = :pid"
                ),
                {"pid": PRODUCT},
            ).one()
        assert bool(row.legal_approved) is True
        assert row.legal_approved_by == "legal@example.com"
        assert row.legal_approved_at is not None
        assert bool(row.marketing_approved) is False
        assert row.status == "draft"
        assert row.version == 1

    def test_round_trip_through_load(self, sql_adapter):
        sql_adapter.save_approval_field(
            PRODUCT, Section.FINANCE, True, "finance@example.com", APPROVED_AT,
            expected_version=0,
        )
        record = sql_adapter.load_state(PRODUCT).record(Section.FINANCE)
        assert record.approved
        assert record.approved_by == "finance@example.com"
        assert record.approved_at == APPROVED_AT

    def test_revoke_clears_fields(self, sql_adapter):
        v1 = sql_adapter.save_approval_field(
            PRODUCT, Section.FINANCE, True, "finance@example.com", APPROVED_AT,
            expected_version=0,
        )
        v2 = sql_adapter.save_approval_field(
            PRODUCT, Section.FINANCE, False, None, None,
            expected_version=v1, actor="other@example.com",
        )
        state = sql_adapter.load_state(PRODUCT)
        assert v2 == 2
        assert not state.record(Section.FINANCE).approved
        assert state.record(Section.FINANCE).approved_by is None

    def test_stale_version_conflicts(self, sql_adapter):
        sql_adapter.save_approval_field(
            PRODUCT, Section.LEGAL, True, "legal@example.com", APPROVED_AT,
            expected_version=0,
        )
        with pytest.raises(ConflictError) as exc_info:
            sql_adapter.save_approval_field(
                PRODUCT, Section.FINANCE, True, "finance@example.com", APPROVED_AT,
                expected_version=0,
            )
        assert exc_info.value.expected_version == 0
        assert exc_info.value.actual_version == 1
        assert not sql_adapter.load_state(PRODUCT).record(Section.FINANCE).approved

    def test_missing_product(self, sql_adapter):
        with pytest.raises(ProductNotFoundError):
            sql_adapter.save_approval_field(
                "missing", Section.LEGAL, True, "l@example.com", APPROVED_AT,
                expected_version=0,
            )

    def test_offset_timestamp_keeps_its_instant(self, sql_adapter):
        cest = timezone(timedelta(hours=2))
        stamped = datetime(2024, 1, 1, 12, 0, tzinfo=cest)
        sql_adapter.save_approval_field(
            PRODUCT, Section.CONTRACTS, True, "contracts@example.com", stamped,
            expected_version=0,
        )

        loaded = sql_adapter.load_state(PRODUCT).record(Section.CONTRACTS).approved_at
        assert loaded == stamped
        assert loaded == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert loaded.utcoffset() == timedelta(0)

    def test_unchanged_version_miss_is_persistence_failure(
        self, sql_adapter, session_factory,
    ):
        with pytest.raises(PersistenceFailureError):
            with session_scope(session_factory) as session:
                sql_adapter._raise_for_missed_update(session, PRODUCT, 0, None)

    def test_partial_triple_rejected_before_write(self, sql_adapter):
        with pytest.raises(ApprovalRecordInvariantError):
            sql_adapter.save_approval_field(
                PRODUCT, Section.LEGAL, True, None, APPROVED_AT, expected_version=0,
            )
        assert sql_adapter.load_state(PRODUCT).version == 0


class TestSaveLaunch:
    def test_launch_sets_status_and_metadata(self, sql_adapter):
        version = approve_all(sql_adapter)
        new_version = sql_adapter.save_launch(
            PRODUCT, "launch@example.com", APPROVED_AT, expected_version=version,
        )
        state = sql_adapter.load_state(PRODUCT)
        assert new_version == 6
        assert state.status is ProductStatus.ACTIVE
        assert state.launched_by == "launch@example.com"
        assert state.launched_at == APPROVED_AT

    def test_launch_offset_timestamp_stored_as_utc(self, sql_adapter):
        version = approve_all(sql_adapter)
        launched = datetime(2024, 6, 1, 18, 30, tzinfo=timezone(timedelta(hours=-5)))
        sql_adapter.save_launch(
            PRODUCT, "launch@example.com", launched, expected_version=version,
        )
        state = sql_adapter.load_state(PRODUCT)
        assert state.launched_at == datetime(2024, 6, 1, 23, 30, tzinfo=timezone.utc)

    def test_launch_non_draft_rejected(self, sql_adapter):
        version = approve_all(sql_adapter)
        version = sql_adapter.save_launch(
            PRODUCT, "launch@example.com", APPROVED_AT, expected_version=version,
        )
        with pytest.raises(InvalidTransitionError):
            sql_adapter.save_launch(
                PRODUCT, "launch@example.com", APPROVED_AT, expected_version=version,
            )


class TestAuditTrail:
    def test_every_change_is_audited(self, sql_adapter):
        v1 = sql_adapter.save_approval_field(
            PRODUCT, Section.LEGAL, True, "alice@example.com", APPROVED_AT,
            expected_version=0,
        )
        sql_adapter.save_approval_field(
            PRODUCT, Section.LEGAL, False, None, None,
            expected_version=v1, actor="bob@example.com",
        )

        trail = sql_adapter.audit_trail(PRODUCT)
        assert [(e.action, e.section, e.actor) for e in trail] == [
            ("product_registered", None, "setup@example.com"),
            ("section_approved", "legal", "alice@example.com"),
            ("section_revoked", "legal", "bob@example.com"),
        ]
        assert [(e.from_version, e.to_version) for e in trail] == [(0, 0), (0, 1), (1, 2)]
        assert trail[-1].occurred_at.tzinfo is not None

    def test_conflict_writes_no_audit_row(self, sql_adapter):
        with pytest.raises(ConflictError):
            sql_adapter.save_approval_field(
                PRODUCT, Section.LEGAL, True, "l@example.com", APPROVED_AT,
                expected_version=7,
            )
        assert len(sql_adapter.audit_trail(PRODUCT)) == 1

    def test_audit_rows_cannot_be_modified(self, sql_adapter, session_factory):
        with pytest.raises(ImmutabilityViolationError):
            with session_scope(session_factory) as session:
                row = session.execute(select(ApprovalAuditEventModel)).scalars().first()
                row.actor = "tampered@example.com"

    def test_audit_rows_cannot_be_deleted(self, sql_adapter, session_factory):
        with pytest.raises(ImmutabilityViolationError):
            with session_scope(session_factory) as session:
                row = session.execute(select(ApprovalAuditEventModel)).scalars().first()
                session.delete(row)


def test_controller_over_sql_adapter(
    sql_adapter, authorizer, approver_for, launcher, deterministic_clock,
):
    controller = WorkflowController(
        state=sql_adapter.load_state(PRODUCT),
        authorizer=authorizer,
        adapter=sql_adapter,
        clock=deterministic_clock,
    )
    for section in ALL_SECTIONS:
        assert controller.approve(approver_for(section), section).success
    assert controller.launch(launcher).success

    assert sql_adapter.load_state(PRODUCT) == controller.state
    assert len(sql_adapter.audit_trail(PRODUCT)) == 7
