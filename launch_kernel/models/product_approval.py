"""
Module: launch_kernel.models.product_approval
Responsibility: ORM persistence for the approval fields of a product record.

Architecture position: Kernel > Models.  May import from db/base.py and the
    pure domain layer (for DTO conversion).

Invariants enforced:
    Triple -- each section's approved/approved_by/approved_at triple is set or
              cleared together (DB check constraint per section).
    Status values limited to the product lifecycle (DB check constraint).
    version -- optimistic-concurrency token, bumped by every save.

Audit relevance:
    Column names are read by other collaborators and are bit-exact:
    ``{section}_approved``, ``{section}_approved_by``, ``{section}_approved_at``,
    plus ``status``, ``launched_by``, ``launched_at``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from launch_kernel.db.base import Base
from launch_kernel.domain.approval import (
    ApprovalRecord,
    ProductApprovalState,
    ProductStatus,
)
from launch_kernel.domain.sections import ALL_SECTIONS, section_fields


def _section_consistency(section: str) -> CheckConstraint:
    return CheckConstraint(
        f"({section}_approved AND {section}_approved_by IS NOT NULL "
        f"AND {section}_approved_at IS NOT NULL) OR "
        f"(NOT {section}_approved AND {section}_approved_by IS NULL "
        f"AND {section}_approved_at IS NULL)",
        name=f"ck_products_{section}_approval_consistent",
    )


def as_utc(value: datetime | None) -> datetime | None:
    """Normalise to aware UTC.

    Applied before every write and after every read: SQLite stores the wall
    clock without its offset, so only UTC values survive the round trip.
    Naive values are taken to be UTC already.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ProductApprovalModel(Base):
    """Persistent approval sub-record of a product.

    One row per product.  Created in draft with every section unapproved.
    """

    __tablename__ = "products"

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'active', 'deprecated', 'archived')",
            name="ck_products_valid_status",
        ),
        *(_section_consistency(s.value) for s in ALL_SECTIONS),
    )

    product_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    marketing_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    marketing_approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    marketing_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    finance_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    finance_approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    finance_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    legal_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    legal_approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    legal_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    salesops_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    salesops_approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    salesops_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    contracts_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    contracts_approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contracts_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ProductStatus.DRAFT.value)
    launched_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    launched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<ProductApproval {self.product_id} "
            f"status={self.status} version={self.version}>"
        )

    def section_values(self, section) -> dict[str, Any]:
        names = section_fields(section)
        return {
            names.approved: getattr(self, names.approved),
            names.approved_by: getattr(self, names.approved_by),
            names.approved_at: getattr(self, names.approved_at),
        }

    def to_dto(self) -> ProductApprovalState:
        """Convert ORM model to frozen domain state."""
        records = {}
        for section in ALL_SECTIONS:
            names = section_fields(section)
            records[section] = ApprovalRecord(
                approved=bool(getattr(self, names.approved)),
                approved_by=getattr(self, names.approved_by),
                approved_at=as_utc(getattr(self, names.approved_at)),
            )
        return ProductApprovalState(
            product_id=self.product_id,
            records=records,
            status=ProductStatus(self.status),
            launched_by=self.launched_by,
            launched_at=as_utc(self.launched_at),
            version=self.version,
        )

    @classmethod
    def from_dto(cls, state: ProductApprovalState) -> ProductApprovalModel:
        """Create ORM model from domain state."""
        values: dict[str, Any] = {}
        for section in ALL_SECTIONS:
            names = section_fields(section)
            rec = state.record(section)
            values[names.approved] = rec.approved
            values[names.approved_by] = rec.approved_by
            values[names.approved_at] = as_utc(rec.approved_at)
        return cls(
            product_id=state.product_id,
            status=state.status.value,
            launched_by=state.launched_by,
            launched_at=as_utc(state.launched_at),
            version=state.version,
            **values,
        )
