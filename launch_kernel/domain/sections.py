"""
Business sections of a product record (``launch_kernel.domain.sections``).

Each product is split into independently-owned sections.  The set is closed:
adding a section is a code change, never configuration.

This module is also the single place where a section is turned into the
persisted column names other collaborators read, so those names cannot drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Section(str, Enum):
    """Business domains that must each sign off before launch."""

    MARKETING = "marketing"
    FINANCE = "finance"
    LEGAL = "legal"
    SALESOPS = "salesops"
    CONTRACTS = "contracts"


ALL_SECTIONS: tuple[Section, ...] = tuple(Section)


@dataclass(frozen=True)
class SectionFields:
    """Persisted column names for one section's approval record."""

    approved: str
    approved_by: str
    approved_at: str


def section_fields(section: Section) -> SectionFields:
    """Return ``{s}_approved``, ``{s}_approved_by``, ``{s}_approved_at``."""
    prefix = Section(section).value
    return SectionFields(
        approved=f"{prefix}_approved",
        approved_by=f"{prefix}_approved_by",
        approved_at=f"{prefix}_approved_at",
    )


# Product-level persisted fields
STATUS_FIELD = "status"
LAUNCHED_BY_FIELD = "launched_by"
LAUNCHED_AT_FIELD = "launched_at"
VERSION_FIELD = "version"
