"""
Services layer -- imperative shell around the pure domain.

Services own I/O: the persistence adapters talk to storage, the workflow
controller coordinates authorization, state and saves for one product.
"""

from launch_kernel.services.persistence import (
    ApprovalPersistenceAdapter,
    AuditEntry,
    InMemoryApprovalPersistence,
)
from launch_kernel.services.sql_persistence import SqlApprovalPersistence
from launch_kernel.services.workflow_controller import (
    RevokeAfterLaunch,
    WorkflowController,
    WorkflowPolicy,
    WorkflowResult,
)

__all__ = [
    "ApprovalPersistenceAdapter",
    "AuditEntry",
    "InMemoryApprovalPersistence",
    "RevokeAfterLaunch",
    "SqlApprovalPersistence",
    "WorkflowController",
    "WorkflowPolicy",
    "WorkflowResult",
]
