"""ORM models for the launch kernel."""

from launch_kernel.models.audit_event import ApprovalAuditEventModel, AuditAction
from launch_kernel.models.product_approval import ProductApprovalModel

__all__ = [
    "ApprovalAuditEventModel",
    "AuditAction",
    "ProductApprovalModel",
]
