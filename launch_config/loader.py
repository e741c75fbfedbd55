"""
Configuration Loader (``launch_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into typed
``launch_config.schema`` dataclass instances.  This is build/test tooling;
runtime callers use ``launch_config.get_active_config()``.

Invariants enforced
-------------------
* Missing required keys raise ``KeyError``; no silent defaults for
  ``config_id``, role names or criteria sections.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` is a deterministic SHA-256 of the raw document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrongly-typed values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from launch_config.schema import (
    LaunchConfigurationSet,
    RequiredFieldDef,
    RoleAliasDef,
    RoleDef,
    SectionCriteriaDef,
    WorkflowSettingsDef,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root must be a mapping: {path}")
    return data


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"'{key}' must be true or false, got {value!r}")


def parse_role(data: dict[str, Any]) -> RoleDef:
    """Parse a RoleDef from a dict."""
    return RoleDef(
        name=data["name"],
        approves=data.get("approves"),
        can_launch=_parse_bool(data.get("can_launch", False), "can_launch"),
        views=tuple(data.get("views", ())),
        description=data.get("description", ""),
    )


def parse_aliases(data: dict[str, Any]) -> tuple[RoleAliasDef, ...]:
    """Parse the ``aliases`` mapping (alias -> role)."""
    return tuple(
        RoleAliasDef(alias=str(alias), role=str(role))
        for alias, role in data.items()
    )


def parse_required_field(data: Any) -> RequiredFieldDef:
    # Short form: a bare field name
    if isinstance(data, str):
        return RequiredFieldDef(field=data)
    return RequiredFieldDef(
        field=data["field"],
        label=data.get("label", ""),
        description=data.get("description", ""),
    )


def parse_criteria(section: str, data: dict[str, Any]) -> SectionCriteriaDef:
    """Parse the readiness criteria of one section."""
    return SectionCriteriaDef(
        section=section,
        name=data.get("name", section),
        required_fields=tuple(
            parse_required_field(f) for f in data.get("required_fields", ())
        ),
        checklist=tuple(data.get("checklist", ())),
    )


def parse_workflow(data: dict[str, Any]) -> WorkflowSettingsDef:
    retries = data.get("max_conflict_retries", 1)
    if isinstance(retries, bool) or not isinstance(retries, int):
        raise ValueError(f"'max_conflict_retries' must be an integer, got {retries!r}")
    return WorkflowSettingsDef(
        max_conflict_retries=retries,
        revoke_after_launch=str(data.get("revoke_after_launch", "allow")),
        revoke_requires_original_approver=_parse_bool(
            data.get("revoke_requires_original_approver", False),
            "revoke_requires_original_approver",
        ),
        require_section_readiness=_parse_bool(
            data.get("require_section_readiness", True),
            "require_section_readiness",
        ),
    )


def parse_configuration_set(data: dict[str, Any]) -> LaunchConfigurationSet:
    """
    Parse a full ``LaunchConfigurationSet`` from a YAML document.

    Raises:
        KeyError: if ``config_id`` or a role name is missing.
        ValueError: if a value has the wrong type.
    """
    return LaunchConfigurationSet(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        description=data.get("description", ""),
        roles=tuple(parse_role(r) for r in data.get("roles", ())),
        aliases=parse_aliases(data.get("aliases") or {}),
        criteria=tuple(
            parse_criteria(section, c or {})
            for section, c in (data.get("criteria") or {}).items()
        ),
        workflow=parse_workflow(data.get("workflow") or {}),
        checksum=compute_checksum(data),
    )


def load_configuration_set(path: Path) -> LaunchConfigurationSet:
    return parse_configuration_set(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
