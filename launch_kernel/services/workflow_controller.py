"""
WorkflowController -- per-product approval session.

Responsibility:
    Owns the in-memory ``ProductApprovalState`` of one product being edited
    and runs every approve, revoke and launch action through the same
    protocol: authorize, compute the candidate state, persist it with the
    expected version, then commit or roll back.

Architecture position:
    Kernel > Services -- imperative shell around the pure domain layer.
    UI bindings and API handlers call this class; it never renders
    anything and never reads identities on its own.

Invariants enforced:
    - Authorization runs before any mutation or adapter call.
    - The candidate state is visible only while its save is in flight; a
      failed save restores the exact prior state object.
    - ``version`` changes only to the value returned by the adapter.
    - One outstanding action per target (section or launch).

Failure modes:
    - UnauthorizedError, InvalidTransitionError, SectionNotReadyError,
      ActionInProgressError -- raised, nothing changed.
    - PersistenceFailureError / ProductNotFoundError -- failed
      ``WorkflowResult`` (never retried).
    - ConflictError -- refetch and retry up to ``max_conflict_retries``,
      then a failed ``WorkflowResult`` with ``VERSION_CONFLICT``.

Audit relevance:
    Every committed action and every failed save is logged with product,
    actor and section in the log context.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Mapping

from launch_kernel.domain.approval import (
    ProductApprovalState,
    ProductStatus,
    approve,
    revoke,
)
from launch_kernel.domain.clock import Clock, SystemClock
from launch_kernel.domain.launch_gate import LAUNCH_ACTION, LaunchGate
from launch_kernel.domain.readiness import (
    CompletionStatus,
    SectionCriteria,
    completion_status,
)
from launch_kernel.domain.roles import RoleAuthorizer, SessionIdentity
from launch_kernel.domain.sections import Section
from launch_kernel.exceptions import (
    ActionInProgressError,
    ConflictError,
    InvalidTransitionError,
    PersistenceError,
    SectionNotReadyError,
    UnauthorizedError,
)
from launch_kernel.logging_config import LogContext, get_logger
from launch_kernel.services.persistence import ApprovalPersistenceAdapter

logger = get_logger("services.workflow_controller")

APPROVE_ACTION = "approve"
REVOKE_ACTION = "revoke"


class RevokeAfterLaunch(str, Enum):
    """Whether a section may be revoked once the product is active."""

    ALLOW = "allow"
    FORBID = "forbid"


@dataclass(frozen=True)
class WorkflowPolicy:
    """Tunable workflow behaviour, normally compiled from configuration."""

    max_conflict_retries: int = 1
    revoke_after_launch: RevokeAfterLaunch = RevokeAfterLaunch.ALLOW
    revoke_requires_original_approver: bool = False
    require_section_readiness: bool = True

    def __post_init__(self) -> None:
        if self.max_conflict_retries < 0:
            raise ValueError("max_conflict_retries must be >= 0")
        object.__setattr__(
            self, "revoke_after_launch", RevokeAfterLaunch(self.revoke_after_launch),
        )


@dataclass(frozen=True)
class WorkflowResult:
    """Outcome of one controller action.

    ``changed`` is False for no-ops (approving an approved section).
    ``error_code`` is the ``code`` of the surfaced exception on failure.
    """

    success: bool
    action: str
    state: ProductApprovalState
    section: Section | None = None
    changed: bool = False
    error_code: str | None = None
    message: str | None = None
    attempts: int = 0


_CandidateFn = Callable[[ProductApprovalState], ProductApprovalState]
_PersistFn = Callable[[ProductApprovalState, ProductApprovalState], int]


class WorkflowController:
    """
    Approval workflow for one product-edit session.

    Contract:
        ``approve``, ``revoke`` and ``launch`` either raise before touching
        anything or return a ``WorkflowResult``.  ``state`` always equals
        either the last persisted state or the candidate of the action in
        flight.

    Non-goals:
        - Does NOT authenticate sessions; roles arrive on ``SessionIdentity``.
        - Does NOT render controls; ``can_*`` helpers exist for that.
        - Does NOT retry persistence failures, only version conflicts.
    """

    def __init__(
        self,
        state: ProductApprovalState,
        authorizer: RoleAuthorizer,
        adapter: ApprovalPersistenceAdapter,
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
        criteria: Mapping[Section, SectionCriteria] | None = None,
    ):
        self._state = state
        self._authorizer = authorizer
        self._gate = LaunchGate(authorizer)
        self._adapter = adapter
        self._clock = clock or SystemClock()
        self._policy = policy or WorkflowPolicy()
        self._criteria = {Section(k): v for k, v in (criteria or {}).items()}
        self._in_flight: set[str] = set()

    @property
    def state(self) -> ProductApprovalState:
        return self._state

    @property
    def product_id(self) -> str:
        return self._state.product_id

    @property
    def policy(self) -> WorkflowPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Control visibility
    # ------------------------------------------------------------------

    def can_approve(self, session: SessionIdentity, section: Section) -> bool:
        section = Section(section)
        return (
            self._authorizer.can_approve(session, section)
            and not self._state.record(section).approved
        )

    def can_revoke(self, session: SessionIdentity, section: Section) -> bool:
        section = Section(section)
        if not self._authorizer.can_approve(session, section):
            return False
        if not self._state.record(section).approved:
            return False
        return self._revoke_blocker(self._state, session, section) is None

    def can_launch(self, session: SessionIdentity) -> bool:
        return self._gate.can_launch(self._state, session)

    def section_completion(
        self, section: Section, product_record: Mapping[str, Any],
    ) -> CompletionStatus:
        return completion_status(product_record, self._criteria.get(Section(section)))

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def approve(
        self,
        session: SessionIdentity,
        section: Section,
        product_record: Mapping[str, Any] | None = None,
    ) -> WorkflowResult:
        """Sign off ``section`` as ``session.identity``.

        When ``product_record`` is given and readiness is enforced, the
        section's required fields must all be filled.

        Raises:
            UnauthorizedError: no held role approves ``section``.
            SectionNotReadyError: required product fields are blank.
            ActionInProgressError: a save for ``section`` is outstanding.
        """
        section = Section(section)
        if not self._authorizer.can_approve(session, section):
            logger.warning(
                "approval_unauthorized",
                extra={
                    "product_id": self.product_id,
                    "actor": session.identity,
                    "action": APPROVE_ACTION,
                    "target": section.value,
                },
            )
            raise UnauthorizedError(session.identity, APPROVE_ACTION, section.value)

        missing: tuple[str, ...] = ()
        if product_record is not None and self._policy.require_section_readiness:
            missing = self.section_completion(section, product_record).missing_fields

        now = self._clock.now()

        def candidate(state: ProductApprovalState) -> ProductApprovalState:
            # re-approving is a no-op even if the record has since gone stale
            if missing and not state.record(section).approved:
                raise SectionNotReadyError(state.product_id, section.value, missing)
            return approve(state, section, session.identity, now)

        def persist(before: ProductApprovalState, after: ProductApprovalState) -> int:
            record = after.record(section)
            return self._adapter.save_approval_field(
                before.product_id,
                section,
                record.approved,
                record.approved_by,
                record.approved_at,
                expected_version=before.version,
                actor=session.identity,
            )

        return self._run(APPROVE_ACTION, section, session, candidate, persist)

    def revoke(self, session: SessionIdentity, section: Section) -> WorkflowResult:
        """Clear the approval of ``section``.

        Any holder of the section's approval role may revoke unless the
        policy requires the original approver.  Revoking never changes
        ``status``.

        Raises:
            UnauthorizedError: no held role approves ``section``, or the
                policy requires the original approver.
            InvalidTransitionError: the policy forbids revoking after launch.
            ActionInProgressError: a save for ``section`` is outstanding.
        """
        section = Section(section)
        if not self._authorizer.can_approve(session, section):
            logger.warning(
                "approval_unauthorized",
                extra={
                    "product_id": self.product_id,
                    "actor": session.identity,
                    "action": REVOKE_ACTION,
                    "target": section.value,
                },
            )
            raise UnauthorizedError(session.identity, REVOKE_ACTION, section.value)

        def candidate(state: ProductApprovalState) -> ProductApprovalState:
            if not state.record(section).approved:
                return state
            blocker = self._revoke_blocker(state, session, section)
            if blocker is not None:
                raise blocker
            return revoke(state, section)

        def persist(before: ProductApprovalState, after: ProductApprovalState) -> int:
            return self._adapter.save_approval_field(
                before.product_id,
                section,
                False,
                None,
                None,
                expected_version=before.version,
                actor=session.identity,
            )

        return self._run(REVOKE_ACTION, section, session, candidate, persist)

    def launch(self, session: SessionIdentity) -> WorkflowResult:
        """Move the product from draft to active.

        Raises:
            UnauthorizedError: no held role carries launch capability.
            InvalidTransitionError: a section is unapproved or the product
                is not in draft.
            ActionInProgressError: a launch save is outstanding.
        """
        if not self._authorizer.can_launch(session):
            logger.warning(
                "launch_unauthorized",
                extra={"product_id": self.product_id, "actor": session.identity},
            )
            raise UnauthorizedError(session.identity, LAUNCH_ACTION)

        now = self._clock.now()

        def candidate(state: ProductApprovalState) -> ProductApprovalState:
            return self._gate.launch(state, session, now)

        def persist(before: ProductApprovalState, after: ProductApprovalState) -> int:
            return self._adapter.save_launch(
                before.product_id,
                after.launched_by,
                after.launched_at,
                expected_version=before.version,
            )

        return self._run(LAUNCH_ACTION, None, session, candidate, persist)

    def refresh(self) -> ProductApprovalState:
        """Replace the in-memory state with the persisted one."""
        if self._in_flight:
            raise ActionInProgressError(self.product_id, "refresh")
        self._state = self._adapter.load_state(self.product_id)
        logger.info(
            "approval_state_refreshed",
            extra={"product_id": self.product_id, "version": self._state.version},
        )
        return self._state

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    def _revoke_blocker(
        self,
        state: ProductApprovalState,
        session: SessionIdentity,
        section: Section,
    ) -> Exception | None:
        if (
            state.status is not ProductStatus.DRAFT
            and self._policy.revoke_after_launch is RevokeAfterLaunch.FORBID
        ):
            return InvalidTransitionError(
                state.product_id, REVOKE_ACTION, state.status.value,
                "revoking approvals after launch is disabled",
            )
        if (
            self._policy.revoke_requires_original_approver
            and state.record(section).approved_by != session.identity
        ):
            return UnauthorizedError(session.identity, REVOKE_ACTION, section.value)
        return None

    def _run(
        self,
        action: str,
        section: Section | None,
        session: SessionIdentity,
        candidate_fn: _CandidateFn,
        persist_fn: _PersistFn,
    ) -> WorkflowResult:
        target = section.value if section is not None else action
        if target in self._in_flight:
            raise ActionInProgressError(self.product_id, target)

        self._in_flight.add(target)
        try:
            with LogContext.bind(
                product_id=self.product_id,
                actor_id=session.identity,
                section=section.value if section is not None else None,
            ):
                return self._attempt(action, section, candidate_fn, persist_fn)
        finally:
            self._in_flight.discard(target)

    def _attempt(
        self,
        action: str,
        section: Section | None,
        candidate_fn: _CandidateFn,
        persist_fn: _PersistFn,
    ) -> WorkflowResult:
        attempts = 0
        while True:
            prior = self._state
            candidate = candidate_fn(prior)
            if candidate is prior:
                logger.info("workflow_action_noop", extra={"action": action})
                return WorkflowResult(
                    success=True, action=action, state=prior,
                    section=section, attempts=attempts,
                )

            attempts += 1
            self._state = candidate
            try:
                new_version = persist_fn(prior, candidate)
            except ConflictError as exc:
                self._state = prior
                logger.warning(
                    "approval_version_conflict",
                    extra={
                        "action": action,
                        "attempt": attempts,
                        "expected_version": exc.expected_version,
                        "actual_version": exc.actual_version,
                    },
                )
                if attempts > self._policy.max_conflict_retries:
                    return self._failure(
                        action, section, exc, attempts,
                        "The record was changed by another editor. "
                        "Reload and try again.",
                    )
                try:
                    self._state = self._adapter.load_state(prior.product_id)
                except PersistenceError as refetch_exc:
                    return self._failure(
                        action, section, refetch_exc, attempts,
                        f"Could not reload the record: {refetch_exc}",
                    )
                continue
            except PersistenceError as exc:
                self._state = prior
                logger.warning(
                    "approval_persist_failed",
                    extra={"action": action, "attempt": attempts},
                    exc_info=True,
                )
                return self._failure(
                    action, section, exc, attempts,
                    f"Failed to save {action}. Please try again.",
                )
            except Exception:
                self._state = prior
                raise

            self._state = replace(candidate, version=new_version)
            logger.info(
                _COMMITTED_EVENTS[action],
                extra={"action": action, "version": new_version},
            )
            return WorkflowResult(
                success=True, action=action, state=self._state,
                section=section, changed=True, attempts=attempts,
            )

    def _failure(
        self,
        action: str,
        section: Section | None,
        exc: Exception,
        attempts: int,
        message: str,
    ) -> WorkflowResult:
        return WorkflowResult(
            success=False,
            action=action,
            state=self._state,
            section=section,
            error_code=getattr(exc, "code", None),
            message=message,
            attempts=attempts,
        )


_COMMITTED_EVENTS = {
    APPROVE_ACTION: "section_approved",
    REVOKE_ACTION: "section_revoked",
    LAUNCH_ACTION: "product_launched",
}
