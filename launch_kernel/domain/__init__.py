"""
Pure domain layer.

Approval records, role capabilities, readiness criteria and the launch gate,
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time (except SystemClock)
- I/O

All domain objects are immutable and every transition returns a new value.
"""

from launch_kernel.domain.approval import (
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
from launch_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from launch_kernel.domain.launch_gate import LIFECYCLE_TRANSITIONS, LaunchGate
from launch_kernel.domain.readiness import (
    CompletionStatus,
    SectionCriteria,
    completion_status,
)
from launch_kernel.domain.roles import RoleAuthorizer, RoleCapability, SessionIdentity
from launch_kernel.domain.sections import ALL_SECTIONS, Section, SectionFields, section_fields

__all__ = [
    "ALL_SECTIONS",
    "ApprovalRecord",
    "Clock",
    "CompletionStatus",
    "DeterministicClock",
    "LIFECYCLE_TRANSITIONS",
    "LaunchGate",
    "ProductApprovalState",
    "ProductStatus",
    "RoleAuthorizer",
    "RoleCapability",
    "Section",
    "SectionCriteria",
    "SectionFields",
    "SessionIdentity",
    "SystemClock",
    "approve",
    "completion_status",
    "is_fully_approved",
    "pending_sections",
    "revoke",
    "section_fields",
    "state_from_record",
    "state_to_record",
]
