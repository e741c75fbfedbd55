"""
launch_kernel.services.sql_persistence -- SQLAlchemy approval persistence.

Responsibility:
    Implements ``ApprovalPersistenceAdapter`` on the ``products`` table and
    writes an ``approval_audit_events`` row for every committed change.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - A section's three fields, the version bump and the audit row are
      written in one transaction (session_scope).
    - Writes are conditional on ``version = :expected_version``; zero
      affected rows means conflict or missing product, never a silent
      overwrite.
    - The approval triple is validated before the UPDATE and again by DB
      check constraints.

Failure modes:
    - PersistenceFailureError wraps any SQLAlchemyError (connection loss,
      statement timeout, constraint failure).
    - ConflictError on version mismatch.
    - ProductNotFoundError if no row exists.
    - InvalidTransitionError if launch targets a non-draft row.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from launch_kernel.db.engine import session_scope
from launch_kernel.domain.approval import (
    ApprovalRecord,
    ProductApprovalState,
    ProductStatus,
)
from launch_kernel.domain.clock import Clock, SystemClock
from launch_kernel.domain.sections import Section, section_fields
from launch_kernel.exceptions import (
    ConflictError,
    InvalidTransitionError,
    PersistenceFailureError,
    ProductNotFoundError,
)
from launch_kernel.logging_config import get_logger
from launch_kernel.models.audit_event import ApprovalAuditEventModel, AuditAction
from launch_kernel.models.product_approval import ProductApprovalModel, as_utc
from launch_kernel.services.persistence import AuditEntry

logger = get_logger("services.sql_persistence")


class SqlApprovalPersistence:
    """Version-checked approval persistence over a SQLAlchemy session factory."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def register_product(
        self, product_id: str, *, actor: str | None = None,
    ) -> ProductApprovalState:
        """Insert a draft record with every section unapproved."""
        state = ProductApprovalState.new_draft(product_id)
        try:
            with session_scope(self._session_factory) as session:
                session.add(ProductApprovalModel.from_dto(state))
                self._audit(
                    session, product_id, AuditAction.PRODUCT_REGISTERED,
                    actor=actor, from_version=0, to_version=0,
                )
        except IntegrityError as exc:
            raise PersistenceFailureError(
                product_id, "register product", "product already registered",
            ) from exc
        except SQLAlchemyError as exc:
            raise PersistenceFailureError(product_id, "register product", str(exc)) from exc

        logger.info("product_registered", extra={"product_id": product_id})
        return state

    def load_state(self, product_id: str) -> ProductApprovalState:
        try:
            with session_scope(self._session_factory) as session:
                model = self._load_model(session, product_id)
                return model.to_dto()
        except SQLAlchemyError as exc:
            raise PersistenceFailureError(product_id, "load approval state", str(exc)) from exc

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
        section = Section(section)
        # reject partial triples before touching the database
        ApprovalRecord(approved, approved_by, approved_at)

        names = section_fields(section)
        values: dict[str, Any] = {
            names.approved: approved,
            names.approved_by: approved_by,
            names.approved_at: as_utc(approved_at),
        }
        action = AuditAction.SECTION_APPROVED if approved else AuditAction.SECTION_REVOKED
        return self._conditional_update(
            product_id,
            values,
            expected_version=expected_version,
            operation=f"save {section.value} approval",
            action=action,
            section=section,
            actor=approved_by if approved else actor,
            payload={"approved": approved},
        )

    def save_launch(
        self,
        product_id: str,
        launched_by: str,
        launched_at: datetime,
        *,
        expected_version: int,
    ) -> int:
        values: dict[str, Any] = {
            "status": ProductStatus.ACTIVE.value,
            "launched_by": launched_by,
            "launched_at": as_utc(launched_at),
        }
        return self._conditional_update(
            product_id,
            values,
            expected_version=expected_version,
            operation="save launch",
            action=AuditAction.PRODUCT_LAUNCHED,
            section=None,
            actor=launched_by,
            payload={"status": ProductStatus.ACTIVE.value},
            require_status=ProductStatus.DRAFT,
        )

    def audit_trail(self, product_id: str) -> list[AuditEntry]:
        """Committed actions for a product, oldest first."""
        try:
            with session_scope(self._session_factory) as session:
                rows = session.execute(
                    select(ApprovalAuditEventModel)
                    .where(ApprovalAuditEventModel.product_id == product_id)
                    .order_by(
                        ApprovalAuditEventModel.to_version,
                        ApprovalAuditEventModel.occurred_at,
                    )
                ).scalars().all()
                return [
                    AuditEntry(
                        product_id=row.product_id,
                        action=row.action,
                        section=row.section,
                        actor=row.actor,
                        occurred_at=as_utc(row.occurred_at),
                        from_version=row.from_version,
                        to_version=row.to_version,
                        payload=dict(row.payload or {}),
                    )
                    for row in rows
                ]
        except SQLAlchemyError as exc:
            raise PersistenceFailureError(product_id, "read audit trail", str(exc)) from exc

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _conditional_update(
        self,
        product_id: str,
        values: dict[str, Any],
        *,
        expected_version: int,
        operation: str,
        action: AuditAction,
        section: Section | None,
        actor: str | None,
        payload: dict[str, Any],
        require_status: ProductStatus | None = None,
    ) -> int:
        new_version = expected_version + 1
        conditions = [
            ProductApprovalModel.product_id == product_id,
            ProductApprovalModel.version == expected_version,
        ]
        if require_status is not None:
            conditions.append(ProductApprovalModel.status == require_status.value)

        try:
            with session_scope(self._session_factory) as session:
                result = session.execute(
                    update(ProductApprovalModel)
                    .where(*conditions)
                    .values({**values, "version": new_version})
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    self._raise_for_missed_update(
                        session, product_id, expected_version, require_status,
                    )
                self._audit(
                    session, product_id, action,
                    section=section,
                    actor=actor,
                    from_version=expected_version,
                    to_version=new_version,
                    payload=payload,
                )
        except SQLAlchemyError as exc:
            logger.warning(
                "approval_persist_failed",
                extra={"product_id": product_id, "operation": operation},
                exc_info=True,
            )
            raise PersistenceFailureError(product_id, operation, str(exc)) from exc

        logger.info(
            "approval_persisted",
            extra={
                "product_id": product_id,
                "operation": operation,
                "version": new_version,
            },
        )
        return new_version

    def _raise_for_missed_update(
        self,
        session: Session,
        product_id: str,
        expected_version: int,
        require_status: ProductStatus | None,
    ) -> None:
        row = session.execute(
            select(ProductApprovalModel.version, ProductApprovalModel.status)
            .where(ProductApprovalModel.product_id == product_id)
        ).one_or_none()
        if row is None:
            raise ProductNotFoundError(product_id)
        version, status = row
        if version != expected_version:
            raise ConflictError(product_id, expected_version, version)
        if require_status is None:
            raise PersistenceFailureError(
                product_id, "save approval", "no row updated at the expected version",
            )
        raise InvalidTransitionError(
            product_id, "launch", status,
            f"stored record is '{status}', expected '{require_status.value}'",
        )

    def _load_model(self, session: Session, product_id: str) -> ProductApprovalModel:
        model = session.execute(
            select(ProductApprovalModel).where(
                ProductApprovalModel.product_id == product_id,
            )
        ).scalar_one_or_none()
        if model is None:
            raise ProductNotFoundError(product_id)
        return model

    def _audit(
        self,
        session: Session,
        product_id: str,
        action: AuditAction,
        *,
        section: Section | None = None,
        actor: str | None,
        from_version: int,
        to_version: int,
        payload: dict[str, Any] | None = None,
    ) -> None:
        session.add(ApprovalAuditEventModel(
            product_id=product_id,
            action=action.value,
            section=section.value if section is not None else None,
            actor=actor,
            occurred_at=as_utc(self._clock.now()),
            from_version=from_version,
            to_version=to_version,
            payload=payload or {},
        ))
