"""
Config -> Kernel Bridges.

Functions that convert a CompiledLaunchConfig into kernel objects.  These
live in launch_config (the producer) because the kernel must never import
launch_config.

Usage:
    from launch_config.bridges import build_role_authorizer, build_workflow_controller

    config = get_active_config()
    authorizer = build_role_authorizer(config)
    controller = build_workflow_controller(config, state, adapter)
"""

from __future__ import annotations

from launch_config.compiler import CompiledLaunchConfig
from launch_kernel.domain.approval import ProductApprovalState
from launch_kernel.domain.clock import Clock
from launch_kernel.domain.readiness import SectionCriteria
from launch_kernel.domain.roles import RoleAuthorizer, RoleCapability
from launch_kernel.domain.sections import Section
from launch_kernel.services.persistence import ApprovalPersistenceAdapter
from launch_kernel.services.workflow_controller import (
    RevokeAfterLaunch,
    WorkflowController,
    WorkflowPolicy,
)


def build_role_authorizer(config: CompiledLaunchConfig) -> RoleAuthorizer:
    """Build the capability table and alias table from compiled roles."""
    capabilities = {
        name: RoleCapability(
            approves=role.approves,
            can_launch=role.can_launch,
            views=role.views,
        )
        for name, role in config.roles.items()
    }
    return RoleAuthorizer(capabilities, aliases=config.aliases)


def build_section_criteria(config: CompiledLaunchConfig) -> dict[Section, SectionCriteria]:
    return dict(config.criteria)


def build_workflow_policy(config: CompiledLaunchConfig) -> WorkflowPolicy:
    settings = config.workflow
    return WorkflowPolicy(
        max_conflict_retries=settings.max_conflict_retries,
        revoke_after_launch=RevokeAfterLaunch(settings.revoke_after_launch),
        revoke_requires_original_approver=settings.revoke_requires_original_approver,
        require_section_readiness=settings.require_section_readiness,
    )


def build_workflow_controller(
    config: CompiledLaunchConfig,
    state: ProductApprovalState,
    adapter: ApprovalPersistenceAdapter,
    clock: Clock | None = None,
) -> WorkflowController:
    """Wire a WorkflowController for one product from configuration."""
    return WorkflowController(
        state=state,
        authorizer=build_role_authorizer(config),
        adapter=adapter,
        clock=clock,
        policy=build_workflow_policy(config),
        criteria=build_section_criteria(config),
    )
