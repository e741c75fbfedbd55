"""
Typed Exception Hierarchy for the Launch Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the approval workflow (UI bindings, API handlers) must react to
failures precisely: an unauthorized click is hidden, a persistence failure
is shown to the user, a version conflict triggers a refetch.  Every error
therefore has:
  1. a TYPED exception class (catch by type, not message)
  2. a CODE class attribute (machine-readable, API-safe)
  3. structured DATA attributes (product_id, section, actor, ...)

Example:
    try:
        controller.approve(session, Section.LEGAL)
    except UnauthorizedError as e:
        hide_control(e.section)
        api_response(code=e.code, actor=e.actor)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LaunchKernelError (base)
    |
    +-- AuthorizationError
    |   +-- UnauthorizedError
    |
    +-- TransitionError
    |   +-- InvalidTransitionError
    |   +-- SectionNotReadyError
    |   +-- ActionInProgressError
    |
    +-- PersistenceError
    |   +-- PersistenceFailureError
    |   +-- ProductNotFoundError
    |
    +-- ConcurrencyError
    |   +-- ConflictError
    |
    +-- InvariantError
    |   +-- ApprovalRecordInvariantError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Authorization   | UNAUTHORIZED                | Actor lacks the role for the action
----------------|-----------------------------|-----------------------------------------
Transition      | INVALID_TRANSITION          | Launch not allowed from current state
                | SECTION_NOT_READY           | Required section fields incomplete
                | ACTION_IN_PROGRESS          | Re-entrant call while a save is in flight
----------------|-----------------------------|-----------------------------------------
Persistence     | PERSISTENCE_FAILURE         | Adapter save did not complete
                | PRODUCT_NOT_FOUND           | No persisted record for product id
----------------|-----------------------------|-----------------------------------------
Concurrency     | VERSION_CONFLICT            | Persisted version moved on (another editor)
----------------|-----------------------------|-----------------------------------------
Invariant       | APPROVAL_RECORD_INVARIANT   | Partial approved/approved_by/approved_at
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Update/delete of an audit row

===============================================================================
HANDLING PATTERNS
===============================================================================

1. AUTHORIZATION AND TRANSITION ERRORS ARE LOCAL.  They are raised before
   any state mutation or adapter call; nothing needs to be undone.

2. PERSISTENCE AND CONFLICT ERRORS ARE SURFACED.  The WorkflowController
   catches them, restores the prior in-memory state and returns a failed
   WorkflowResult carrying ``error_code`` and a human-readable message.

3. NOTHING HERE IS FATAL.  Every failure is per-action and recoverable by
   retrying the user action.
"""


class LaunchKernelError(Exception):
    """
    Base exception for all launch kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LAUNCH_KERNEL_ERROR"


# Authorization exceptions


class AuthorizationError(LaunchKernelError):
    """Base exception for authorization errors."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedError(AuthorizationError):
    """Actor holds no role granting the attempted action."""

    code: str = "UNAUTHORIZED"

    def __init__(self, actor: str, action: str, section: str | None = None):
        self.actor = actor
        self.action = action
        self.section = section
        target = f" on section '{section}'" if section else ""
        super().__init__(
            f"Actor '{actor}' is not authorized to {action}{target}"
        )


# Transition exceptions


class TransitionError(LaunchKernelError):
    """Base exception for workflow transition errors."""

    code: str = "TRANSITION_ERROR"


class InvalidTransitionError(TransitionError):
    """The requested lifecycle transition is not allowed from this state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, product_id: str, action: str, current_status: str, reason: str):
        self.product_id = product_id
        self.action = action
        self.current_status = current_status
        self.reason = reason
        super().__init__(
            f"Cannot {action} product {product_id} "
            f"(status={current_status}): {reason}"
        )


class SectionNotReadyError(TransitionError):
    """Section cannot be approved until its required fields are filled."""

    code: str = "SECTION_NOT_READY"

    def __init__(self, product_id: str, section: str, missing_fields: tuple[str, ...]):
        self.product_id = product_id
        self.section = section
        self.missing_fields = missing_fields
        super().__init__(
            f"Section '{section}' of product {product_id} is not ready for "
            f"approval; missing: {', '.join(missing_fields)}"
        )


class ActionInProgressError(TransitionError):
    """A save for the same target is still outstanding."""

    code: str = "ACTION_IN_PROGRESS"

    def __init__(self, product_id: str, target: str):
        self.product_id = product_id
        self.target = target
        super().__init__(
            f"An action on '{target}' of product {product_id} is already in progress"
        )


# Persistence exceptions


class PersistenceError(LaunchKernelError):
    """Base exception for persistence adapter errors."""

    code: str = "PERSISTENCE_ERROR"


class PersistenceFailureError(PersistenceError):
    """The adapter could not durably save the change."""

    code: str = "PERSISTENCE_FAILURE"

    def __init__(self, product_id: str, operation: str, reason: str):
        self.product_id = product_id
        self.operation = operation
        self.reason = reason
        super().__init__(
            f"Failed to {operation} for product {product_id}: {reason}"
        )


class ProductNotFoundError(PersistenceError):
    """No persisted approval record exists for the product."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


# Concurrency exceptions


class ConcurrencyError(LaunchKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConflictError(ConcurrencyError):
    """Persisted version no longer matches the version the edit was based on."""

    code: str = "VERSION_CONFLICT"

    def __init__(self, product_id: str, expected_version: int, actual_version: int | None):
        self.product_id = product_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Version conflict on product {product_id}: expected "
            f"{expected_version}, found {actual_version}; "
            "record was modified by another editor"
        )


# Invariant exceptions


class InvariantError(LaunchKernelError):
    """Base exception for structural invariant violations."""

    code: str = "INVARIANT_ERROR"


class ApprovalRecordInvariantError(InvariantError):
    """approved, approved_by and approved_at must be set or cleared together."""

    code: str = "APPROVAL_RECORD_INVARIANT"

    def __init__(self, approved: bool, approved_by: str | None, approved_at: object):
        self.approved = approved
        self.approved_by = approved_by
        self.approved_at = approved_at
        super().__init__(
            "Partial approval record: "
            f"approved={approved}, approved_by={approved_by!r}, "
            f"approved_at={approved_at!r}"
        )


# Immutability exceptions


class ImmutabilityError(LaunchKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted modification of an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
