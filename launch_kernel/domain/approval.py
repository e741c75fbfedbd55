"""
Approval domain types (``launch_kernel.domain.approval``).

Responsibility
--------------
Pure value objects and transitions for the per-section approval state of a
product: the ``ApprovalRecord`` triple, the ``ProductApprovalState``
aggregate, and the ``approve``/``revoke`` functions that return new states.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  No imports from ``db/``,
``services/``, ``models/`` or outer layers.

Invariants enforced
-------------------
* All-or-nothing: ``approved`` is False exactly when ``approved_by`` and
  ``approved_at`` are both None.  Checked on construction, so a partial
  record cannot exist.
* Every ``Section`` has exactly one record in a ``ProductApprovalState``.
* Transitions never mutate; a no-op returns the very same state object.
* Transitions never touch ``version``; only a successful save bumps it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from launch_kernel.domain.sections import (
    ALL_SECTIONS,
    LAUNCHED_AT_FIELD,
    LAUNCHED_BY_FIELD,
    STATUS_FIELD,
    VERSION_FIELD,
    Section,
    section_fields,
)
from launch_kernel.exceptions import ApprovalRecordInvariantError


class ProductStatus(str, Enum):
    """Product lifecycle status."""

    DRAFT = "draft"
    ACTIVE = "active"
    DEPRECATED = "deprecated"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class ApprovalRecord:
    """The (approved, approver, timestamp) triple for one section."""

    approved: bool = False
    approved_by: str | None = None
    approved_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.approved:
            consistent = bool(self.approved_by) and self.approved_at is not None
        else:
            consistent = self.approved_by is None and self.approved_at is None
        if not consistent:
            raise ApprovalRecordInvariantError(
                self.approved, self.approved_by, self.approved_at,
            )


UNAPPROVED = ApprovalRecord()


@dataclass(frozen=True)
class ProductApprovalState:
    """Approval aggregate for one product.

    ``records`` is a read-only mapping holding one ``ApprovalRecord`` per
    ``Section``.  ``version`` is the persisted optimistic-concurrency token.
    """

    product_id: str
    records: Mapping[Section, ApprovalRecord]
    status: ProductStatus = ProductStatus.DRAFT
    launched_by: str | None = None
    launched_at: datetime | None = None
    version: int = 0

    def __post_init__(self) -> None:
        records = {Section(k): v for k, v in self.records.items()}
        missing = [s.value for s in ALL_SECTIONS if s not in records]
        if missing:
            raise ValueError(
                f"Approval state for {self.product_id} is missing sections: {missing}"
            )
        object.__setattr__(self, "records", MappingProxyType(records))
        object.__setattr__(self, "status", ProductStatus(self.status))
        if (self.launched_by is None) != (self.launched_at is None):
            raise ValueError(
                f"launched_by and launched_at must be set together "
                f"(product {self.product_id})"
            )

    @classmethod
    def new_draft(cls, product_id: str) -> ProductApprovalState:
        """All sections unapproved, ``status=draft``, ``version=0``."""
        return cls(
            product_id=product_id,
            records={section: UNAPPROVED for section in ALL_SECTIONS},
        )

    def record(self, section: Section) -> ApprovalRecord:
        return self.records[Section(section)]

    def with_record(self, section: Section, record: ApprovalRecord) -> ProductApprovalState:
        records = dict(self.records)
        records[Section(section)] = record
        return replace(self, records=records)


# =========================================================================
# Pure transitions
# =========================================================================


def approve(
    state: ProductApprovalState,
    section: Section,
    identity: str,
    now: datetime,
) -> ProductApprovalState:
    """Stamp ``section`` as approved by ``identity`` at ``now``.

    Approving an already-approved section is a no-op and returns ``state``
    itself, so the original approver and timestamp are kept.
    """
    if state.record(section).approved:
        return state
    return state.with_record(
        section,
        ApprovalRecord(approved=True, approved_by=identity, approved_at=now),
    )


def revoke(state: ProductApprovalState, section: Section) -> ProductApprovalState:
    """Clear the approval of ``section``; no-op when it is not approved.

    Does not touch ``status``: revoking after launch leaves the product
    active.
    """
    if not state.record(section).approved:
        return state
    return state.with_record(section, UNAPPROVED)


def is_fully_approved(state: ProductApprovalState) -> bool:
    return all(state.record(s).approved for s in ALL_SECTIONS)


def pending_sections(state: ProductApprovalState) -> tuple[Section, ...]:
    """Sections still waiting for sign-off, in declaration order."""
    return tuple(s for s in ALL_SECTIONS if not state.record(s).approved)


# =========================================================================
# Persisted record mapping
# =========================================================================


def _to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_iso(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def state_to_record(state: ProductApprovalState) -> dict[str, Any]:
    """Flatten ``state`` into the persisted field layout."""
    data: dict[str, Any] = {}
    for section in ALL_SECTIONS:
        names = section_fields(section)
        rec = state.record(section)
        data[names.approved] = rec.approved
        data[names.approved_by] = rec.approved_by
        data[names.approved_at] = _to_iso(rec.approved_at)
    data[STATUS_FIELD] = state.status.value
    data[LAUNCHED_BY_FIELD] = state.launched_by
    data[LAUNCHED_AT_FIELD] = _to_iso(state.launched_at)
    data[VERSION_FIELD] = state.version
    return data


def state_from_record(product_id: str, data: Mapping[str, Any]) -> ProductApprovalState:
    """Build a state from a persisted record.

    Missing section fields read as unapproved; missing ``status`` reads as
    draft.  A partially-filled section raises ``ApprovalRecordInvariantError``.
    """
    records: dict[Section, ApprovalRecord] = {}
    for section in ALL_SECTIONS:
        names = section_fields(section)
        records[section] = ApprovalRecord(
            approved=bool(data.get(names.approved)),
            approved_by=data.get(names.approved_by) or None,
            approved_at=_from_iso(data.get(names.approved_at)),
        )
    return ProductApprovalState(
        product_id=product_id,
        records=records,
        status=ProductStatus(data.get(STATUS_FIELD) or ProductStatus.DRAFT.value),
        launched_by=data.get(LAUNCHED_BY_FIELD) or None,
        launched_at=_from_iso(data.get(LAUNCHED_AT_FIELD)),
        version=int(data.get(VERSION_FIELD) or 0),
    )
