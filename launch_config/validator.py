"""
Configuration Validator (``launch_config.validator``).

Responsibility
--------------
Checks a ``LaunchConfigurationSet`` for structural integrity before it is
compiled: role names are unique, every referenced section exists, aliases
point at configured roles and workflow settings are in range.

Failure modes
-------------
* Validation errors  -> the configuration MUST NOT be compiled.
* Validation warnings  -> compiled, but should be reviewed (for example a
  section nobody can approve, which blocks every launch).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from launch_config.schema import LaunchConfigurationSet
from launch_kernel.domain.sections import ALL_SECTIONS

_SECTION_NAMES = frozenset(s.value for s in ALL_SECTIONS)
_REVOKE_AFTER_LAUNCH_VALUES = frozenset({"allow", "forbid"})


@dataclass
class ConfigValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: LaunchConfigurationSet) -> ConfigValidationResult:
    """Validate a configuration set; errors block compilation."""
    result = ConfigValidationResult()

    _validate_role_uniqueness(config, result)
    _validate_role_sections(config, result)
    _validate_aliases(config, result)
    _validate_criteria(config, result)
    _validate_workflow(config, result)
    _validate_launch_coverage(config, result)

    return result


def _validate_role_uniqueness(
    config: LaunchConfigurationSet, result: ConfigValidationResult
) -> None:
    seen: set[str] = set()
    for role in config.roles:
        if role.name in seen:
            result.add_error(f"Duplicate role: '{role.name}' appears more than once")
        seen.add(role.name)


def _validate_role_sections(
    config: LaunchConfigurationSet, result: ConfigValidationResult
) -> None:
    for role in config.roles:
        if role.approves is not None and role.approves not in _SECTION_NAMES:
            result.add_error(
                f"Role '{role.name}' approves unknown section '{role.approves}'"
            )
        for section in role.views:
            if section not in _SECTION_NAMES:
                result.add_error(
                    f"Role '{role.name}' views unknown section '{section}'"
                )


def _validate_aliases(
    config: LaunchConfigurationSet, result: ConfigValidationResult
) -> None:
    role_names = {r.name for r in config.roles}
    seen: set[str] = set()
    for alias in config.aliases:
        if alias.alias in seen:
            result.add_error(f"Duplicate alias: '{alias.alias}'")
        seen.add(alias.alias)
        if alias.role not in role_names:
            result.add_error(
                f"Alias '{alias.alias}' points at unknown role '{alias.role}'"
            )
        if alias.alias in role_names:
            result.add_error(
                f"Alias '{alias.alias}' shadows a configured role of the same name"
            )


def _validate_criteria(
    config: LaunchConfigurationSet, result: ConfigValidationResult
) -> None:
    seen: set[str] = set()
    for criteria in config.criteria:
        if criteria.section not in _SECTION_NAMES:
            result.add_error(f"Criteria defined for unknown section '{criteria.section}'")
        if criteria.section in seen:
            result.add_error(f"Duplicate criteria for section '{criteria.section}'")
        seen.add(criteria.section)
        names = [f.field for f in criteria.required_fields]
        if len(names) != len(set(names)):
            result.add_warning(
                f"Criteria for section '{criteria.section}' list a required field twice"
            )


def _validate_workflow(
    config: LaunchConfigurationSet, result: ConfigValidationResult
) -> None:
    workflow = config.workflow
    if workflow.max_conflict_retries < 0:
        result.add_error(
            f"max_conflict_retries must be >= 0, got {workflow.max_conflict_retries}"
        )
    if workflow.revoke_after_launch not in _REVOKE_AFTER_LAUNCH_VALUES:
        result.add_error(
            f"revoke_after_launch must be one of {sorted(_REVOKE_AFTER_LAUNCH_VALUES)}, "
            f"got '{workflow.revoke_after_launch}'"
        )


def _validate_launch_coverage(
    config: LaunchConfigurationSet, result: ConfigValidationResult
) -> None:
    """A section nobody approves, or no launcher at all, blocks every launch."""
    approved = {r.approves for r in config.roles if r.approves is not None}
    for section in sorted(_SECTION_NAMES - approved):
        result.add_warning(f"No role approves section '{section}'")
    if not any(r.can_launch for r in config.roles):
        result.add_warning("No role carries launch capability")
