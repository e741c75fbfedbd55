"""
Module: launch_kernel.models.audit_event
Responsibility: ORM persistence for the approval audit trail.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    Audit rows are append-only; no UPDATE or DELETE (ORM listeners).
    Each row records the version transition it belongs to, so the trail can
    be replayed against the products table.

Audit relevance:
    The products table only keeps the latest approver per section.  This
    table keeps every approve, revoke and launch, including who revoked.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, Index, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column

from launch_kernel.db.base import Base
from launch_kernel.exceptions import ImmutabilityViolationError


class AuditAction(str, Enum):
    """Auditable approval-workflow actions."""

    PRODUCT_REGISTERED = "product_registered"
    SECTION_APPROVED = "section_approved"
    SECTION_REVOKED = "section_revoked"
    PRODUCT_LAUNCHED = "product_launched"


class ApprovalAuditEventModel(Base):
    """One committed workflow action. Append-only."""

    __tablename__ = "approval_audit_events"

    __table_args__ = (
        Index("ix_approval_audit_product", "product_id", "occurred_at"),
    )

    product_id: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    section: Mapped[str | None] = mapped_column(String(20), nullable=True)
    actor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    from_version: Mapped[int] = mapped_column(Integer, nullable=False)
    to_version: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return (
            f"<ApprovalAuditEvent {self.product_id} {self.action} "
            f"section={self.section} v{self.from_version}->v{self.to_version}>"
        )


@event.listens_for(ApprovalAuditEventModel, "before_update")
def prevent_audit_update(mapper, connection, target):
    """Prevent updates to audit rows."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalAuditEvent",
        entity_id=str(target.id),
        reason="Audit events are immutable -- cannot modify",
    )


@event.listens_for(ApprovalAuditEventModel, "before_delete")
def prevent_audit_delete(mapper, connection, target):
    """Prevent deletion of audit rows."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalAuditEvent",
        entity_id=str(target.id),
        reason="Audit events are immutable -- cannot delete",
    )
