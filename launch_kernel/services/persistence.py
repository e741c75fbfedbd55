"""
launch_kernel.services.persistence -- Approval persistence boundary.

Responsibility:
    Declares the contract the WorkflowController uses to durably save
    approval changes, and ships an in-memory implementation used for local
    tooling and tests.

Architecture position:
    Kernel > Services.  May import from domain/ and exceptions.  Concrete
    adapters live beside it (``sql_persistence``) or outside the kernel.

Contract:
    - ``save_approval_field`` writes one section's three fields as a unit.
    - ``save_launch`` writes ``status=active`` plus launch metadata as a unit.
    - Both compare ``expected_version`` with the stored version and return
      the new version (``expected_version + 1``) on success.

Failure modes:
    - PersistenceFailureError -- the write did not complete (I/O, timeout).
    - ConflictError -- stored version differs from ``expected_version``.
    - ProductNotFoundError -- no record for ``product_id``.
    - InvalidTransitionError -- launch requested for a non-draft record.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Protocol

from launch_kernel.domain.approval import (
    ApprovalRecord,
    ProductApprovalState,
    ProductStatus,
    state_from_record,
    state_to_record,
)
from launch_kernel.domain.clock import Clock, SystemClock
from launch_kernel.domain.sections import Section
from launch_kernel.exceptions import (
    ConflictError,
    InvalidTransitionError,
    ProductNotFoundError,
)
from launch_kernel.models.audit_event import AuditAction


@dataclass(frozen=True)
class AuditEntry:
    """One committed workflow action as read back from an adapter."""

    product_id: str
    action: str
    section: str | None
    actor: str | None
    occurred_at: datetime
    from_version: int
    to_version: int
    payload: dict[str, Any] = field(default_factory=dict)


class ApprovalPersistenceAdapter(Protocol):
    """Durable store for product approval state."""

    def load_state(self, product_id: str) -> ProductApprovalState:
        """Return the currently persisted state (used for refetch)."""
        ...

    def save_approval_field(
        self,
        product_id: str,
        section: Section,
        approved: bool,
        approved_by: str | None,
        approved_at: datetime | None,
        *,
        expected_version: int,
        actor: str | None = None,
    ) -> int:
        """Persist one section's approval triple; return the new version."""
        ...

    def save_launch(
        self,
        product_id: str,
        launched_by: str,
        launched_at: datetime,
        *,
        expected_version: int,
    ) -> int:
        """Persist ``status=active`` with launch metadata; return the new version."""
        ...


class InMemoryApprovalPersistence:
    """Dictionary-backed adapter with the same version semantics as SQL.

    Products are held as flat records in the persisted field layout
    (``legal_approved``, ``legal_approved_by``, ...), so every load goes
    through the same mapping a document store would use.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._records: dict[str, dict[str, Any]] = {}
        self._audit: list[AuditEntry] = []

    def register_product(
        self, product_id: str, *, actor: str | None = None,
    ) -> ProductApprovalState:
        state = ProductApprovalState.new_draft(product_id)
        self._store(state)
        self._append(product_id, AuditAction.PRODUCT_REGISTERED.value, None, actor, 0, 0)
        return state

    def load_state(self, product_id: str) -> ProductApprovalState:
        try:
            data = self._records[product_id]
        except KeyError:
            raise ProductNotFoundError(product_id) from None
        return state_from_record(product_id, data)

    def raw_record(self, product_id: str) -> dict[str, Any]:
        """Copy of the stored flat record, keyed by persisted field name."""
        return dict(self._records[product_id])

    def save_approval_field(
        self,
        product_id: str,
        section: Section,
        approved: bool,
        approved_by: str | None,
        approved_at: datetime | None,
        *,
        expected_version: int,
        actor: str | None = None,
    ) -> int:
        current = self._checked(product_id, expected_version)
        record = ApprovalRecord(approved, approved_by, approved_at)
        new_version = expected_version + 1
        self._store(replace(current.with_record(section, record), version=new_version))
        self._append(
            product_id,
            (AuditAction.SECTION_APPROVED if approved else AuditAction.SECTION_REVOKED).value,
            Section(section).value,
            approved_by if approved else actor,
            expected_version,
            new_version,
        )
        return new_version

    def save_launch(
        self,
        product_id: str,
        launched_by: str,
        launched_at: datetime,
        *,
        expected_version: int,
    ) -> int:
        current = self._checked(product_id, expected_version)
        if current.status is not ProductStatus.DRAFT:
            raise InvalidTransitionError(
                product_id, "launch", current.status.value, "stored record is not draft",
            )
        new_version = expected_version + 1
        self._store(replace(
            current,
            status=ProductStatus.ACTIVE,
            launched_by=launched_by,
            launched_at=launched_at,
            version=new_version,
        ))
        self._append(
            product_id, AuditAction.PRODUCT_LAUNCHED.value, None, launched_by,
            expected_version, new_version,
        )
        return new_version

    def audit_trail(self, product_id: str) -> list[AuditEntry]:
        return [e for e in self._audit if e.product_id == product_id]

    def _store(self, state: ProductApprovalState) -> None:
        self._records[state.product_id] = state_to_record(state)

    def _checked(self, product_id: str, expected_version: int) -> ProductApprovalState:
        current = self.load_state(product_id)
        if current.version != expected_version:
            raise ConflictError(product_id, expected_version, current.version)
        return current

    def _append(self, product_id, action, section, actor, from_v, to_v) -> None:
        self._audit.append(AuditEntry(
            product_id=product_id,
            action=action,
            section=section,
            actor=actor,
            occurred_at=self._clock.now(),
            from_version=from_v,
            to_version=to_v,
        ))
