"""
Launch Configuration Compiler (``launch_config.compiler``).

Turns a validated ``LaunchConfigurationSet`` into a ``CompiledLaunchConfig``:
section names resolved to ``Section`` members, aliases flattened into a
lookup table, criteria keyed by section.  The compiled artifact is what
the bridges turn into kernel objects.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Mapping

from launch_config.schema import LaunchConfigurationSet, RoleDef, WorkflowSettingsDef
from launch_config.validator import validate_configuration
from launch_kernel.domain.readiness import SectionCriteria
from launch_kernel.domain.sections import Section
from launch_kernel.exceptions import LaunchKernelError


@dataclass(frozen=True)
class CompiledRole:
    name: str
    approves: Section | None
    can_launch: bool
    views: frozenset[Section]


@dataclass(frozen=True)
class CompiledLaunchConfig:
    """Machine-validated, frozen runtime artifact.

    Attributes:
        config_id: Source configuration identifier
        config_version: Source configuration version
        checksum: Matches the source LaunchConfigurationSet
        roles: Role name -> compiled capabilities
        aliases: Identity-provider role name -> configured role name
        criteria: Section -> readiness criteria
        workflow: Workflow behaviour settings
        warnings: Non-blocking validation findings
        canonical_fingerprint: Deterministic hash of the compiled content
    """

    config_id: str
    config_version: int
    checksum: str
    roles: Mapping[str, CompiledRole]
    aliases: Mapping[str, str]
    criteria: Mapping[Section, SectionCriteria]
    workflow: WorkflowSettingsDef
    warnings: tuple[str, ...]
    canonical_fingerprint: str


class CompilationFailedError(LaunchKernelError):
    """Validation produced errors that prevent creating a config."""

    code: str = "COMPILATION_FAILED"

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            f"Compilation failed with {len(errors)} error(s):\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def compile_launch_config(config: LaunchConfigurationSet) -> CompiledLaunchConfig:
    """Validate and compile ``config``.

    Raises:
        CompilationFailedError: If validation produces errors.
    """
    validation = validate_configuration(config)
    if not validation.is_valid:
        raise CompilationFailedError(validation.errors)

    roles = {role.name: _compile_role(role) for role in config.roles}
    aliases = {a.alias: a.role for a in config.aliases}
    criteria = {
        Section(c.section): SectionCriteria(
            section=Section(c.section),
            name=c.name,
            required_fields=tuple(f.field for f in c.required_fields),
            checklist=c.checklist,
        )
        for c in config.criteria
    }

    return CompiledLaunchConfig(
        config_id=config.config_id,
        config_version=config.version,
        checksum=config.checksum,
        roles=MappingProxyType(roles),
        aliases=MappingProxyType(aliases),
        criteria=MappingProxyType(criteria),
        workflow=config.workflow,
        warnings=tuple(validation.warnings),
        canonical_fingerprint=_compute_fingerprint(config),
    )


def _compile_role(role: RoleDef) -> CompiledRole:
    return CompiledRole(
        name=role.name,
        approves=Section(role.approves) if role.approves is not None else None,
        can_launch=role.can_launch,
        views=frozenset(Section(s) for s in role.views),
    )


def _compute_fingerprint(config: LaunchConfigurationSet) -> str:
    """Hash of the parsed content; order of roles and aliases is ignored."""
    content = asdict(config)
    content.pop("checksum", None)
    content["roles"] = sorted(content["roles"], key=lambda r: r["name"])
    content["aliases"] = sorted(content["aliases"], key=lambda a: a["alias"])
    content["criteria"] = sorted(content["criteria"], key=lambda c: c["section"])
    canonical = json.dumps(content, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
