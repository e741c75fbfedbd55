"""
Section readiness criteria (``launch_kernel.domain.readiness``).

A section may only be approved once the product record carries every field
its criteria list as required.  Criteria come from configuration; a section
without criteria is always ready.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from launch_kernel.domain.sections import Section


@dataclass(frozen=True)
class SectionCriteria:
    """Required product fields and the reviewer checklist for one section."""

    section: Section
    name: str
    required_fields: tuple[str, ...] = ()
    checklist: tuple[str, ...] = ()


@dataclass(frozen=True)
class CompletionStatus:
    completed: int
    total: int
    missing_fields: tuple[str, ...]

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 100
        return round(self.completed * 100 / self.total)

    @property
    def is_ready(self) -> bool:
        return not self.missing_fields


def is_field_filled(value: Any) -> bool:
    """Blank strings, None, False and empty collections count as unfilled."""
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return bool(value)
    return True


def completion_status(
    product_record: Mapping[str, Any],
    criteria: SectionCriteria | None,
) -> CompletionStatus:
    if criteria is None:
        return CompletionStatus(completed=0, total=0, missing_fields=())
    missing = tuple(
        name for name in criteria.required_fields
        if not is_field_filled(product_record.get(name))
    )
    total = len(criteria.required_fields)
    return CompletionStatus(
        completed=total - len(missing),
        total=total,
        missing_fields=missing,
    )
