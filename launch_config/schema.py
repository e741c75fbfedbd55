"""
LaunchConfigurationSet schema.

Defines the human-authored, reviewable source artifact for the approval
workflow configuration.  YAML is parsed into these types by the loader,
checked by the validator and compiled into a CompiledLaunchConfig.

Key distinction:
  LaunchConfigurationSet = source artifact (human-authored, versioned)
  CompiledLaunchConfig   = runtime artifact (validated, frozen)
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RoleDef:
    """One role and the capabilities it grants.

    ``approves`` names at most one section.  ``views`` lists sections the
    role may see without approving them.
    """

    name: str
    approves: str | None = None
    can_launch: bool = False
    views: tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class RoleAliasDef:
    """Identity-provider role name mapped onto a configured role."""

    alias: str
    role: str


# ---------------------------------------------------------------------------
# Readiness criteria
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RequiredFieldDef:
    field: str
    label: str = ""
    description: str = ""


@dataclass(frozen=True)
class SectionCriteriaDef:
    """Fields that must be filled before a section can be approved."""

    section: str
    name: str
    required_fields: tuple[RequiredFieldDef, ...] = ()
    checklist: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Workflow behaviour
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowSettingsDef:
    max_conflict_retries: int = 1
    revoke_after_launch: str = "allow"  # "allow" or "forbid"
    revoke_requires_original_approver: bool = False
    require_section_readiness: bool = True


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LaunchConfigurationSet:
    """The complete approval-workflow configuration for one deployment."""

    config_id: str
    version: int
    roles: tuple[RoleDef, ...]
    aliases: tuple[RoleAliasDef, ...] = ()
    criteria: tuple[SectionCriteriaDef, ...] = ()
    workflow: WorkflowSettingsDef = WorkflowSettingsDef()
    description: str = ""
    checksum: str = ""
