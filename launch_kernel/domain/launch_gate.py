"""
Launch gate (``launch_kernel.domain.launch_gate``).

Responsibility
--------------
Decides whether a product may go from ``draft`` to ``active`` and performs
that one-way transition on an immutable ``ProductApprovalState``.

Invariants enforced
-------------------
* Launch requires every section approved.
* ``LIFECYCLE_TRANSITIONS`` lists the only status change this subsystem
  performs.  There is no unlaunch.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from launch_kernel.domain.approval import (
    ProductApprovalState,
    ProductStatus,
    is_fully_approved,
    pending_sections,
)
from launch_kernel.domain.roles import RoleAuthorizer, SessionIdentity
from launch_kernel.exceptions import InvalidTransitionError, UnauthorizedError

LAUNCH_ACTION = "launch"

LIFECYCLE_TRANSITIONS: dict[ProductStatus, dict[str, ProductStatus]] = {
    ProductStatus.DRAFT: {LAUNCH_ACTION: ProductStatus.ACTIVE},
    ProductStatus.ACTIVE: {},
    ProductStatus.DEPRECATED: {},
    ProductStatus.ARCHIVED: {},
}


class LaunchGate:
    """Guards and executes the ``draft --launch--> active`` transition."""

    def __init__(self, authorizer: RoleAuthorizer) -> None:
        self._authorizer = authorizer

    def can_launch(self, state: ProductApprovalState, session: SessionIdentity) -> bool:
        return (
            is_fully_approved(state)
            and self._authorizer.can_launch(session)
            and LAUNCH_ACTION in LIFECYCLE_TRANSITIONS[state.status]
        )

    def blocking_reason(self, state: ProductApprovalState) -> str | None:
        """Why the state itself cannot launch, ignoring who asks."""
        if LAUNCH_ACTION not in LIFECYCLE_TRANSITIONS[state.status]:
            return f"status is '{state.status.value}', launch requires 'draft'"
        pending = pending_sections(state)
        if pending:
            return "awaiting approval: " + ", ".join(s.value for s in pending)
        return None

    def launch(
        self,
        state: ProductApprovalState,
        session: SessionIdentity,
        now: datetime,
    ) -> ProductApprovalState:
        """Return the launched state.

        Raises:
            UnauthorizedError: actor holds no launch-capable role.
            InvalidTransitionError: not fully approved, or not in draft.
        """
        if not self._authorizer.can_launch(session):
            raise UnauthorizedError(session.identity, LAUNCH_ACTION)

        reason = self.blocking_reason(state)
        if reason is not None:
            raise InvalidTransitionError(
                state.product_id, LAUNCH_ACTION, state.status.value, reason,
            )

        return replace(
            state,
            status=LIFECYCLE_TRANSITIONS[state.status][LAUNCH_ACTION],
            launched_by=session.identity,
            launched_at=now,
        )
