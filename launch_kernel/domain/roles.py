"""
Role capability table and authorizer (``launch_kernel.domain.roles``).

Responsibility
--------------
Answers "may this identity approve section X / launch / view section X"
from one capability table.  Role names are resolved through an optional
alias table first, so identity-provider role names (``product_legal_approve``)
and internal names (``ProductLegalApproval``) both work.

Architecture position
---------------------
**Kernel domain layer** -- pure.  The role set of a session is supplied by
the caller (already authenticated); this module never resolves identities.

Invariants enforced
-------------------
* A role grants approval for at most one section.
* Launch capability is independent of section approval.
* Unknown roles grant nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from launch_kernel.domain.sections import Section


@dataclass(frozen=True)
class RoleCapability:
    """What one role is allowed to do.

    ``approves`` is the single section the role signs off, if any.
    ``views`` lists extra sections the role may see without approving.
    """

    approves: Section | None = None
    can_launch: bool = False
    views: frozenset[Section] = frozenset()


@dataclass(frozen=True)
class SessionIdentity:
    """Authenticated actor and the roles granted to it for this session."""

    identity: str
    roles: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        # approved_by / launched_by are stamped from this value
        if not isinstance(self.identity, str) or not self.identity.strip():
            raise ValueError(f"Session identity must be a non-blank string: {self.identity!r}")

    @classmethod
    def of(cls, identity: str, roles: Iterable[str]) -> SessionIdentity:
        return cls(identity=identity, roles=frozenset(roles))


class RoleAuthorizer:
    """Resolves section-approval, view and launch rights for a session."""

    def __init__(
        self,
        capabilities: Mapping[str, RoleCapability],
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        self._capabilities = MappingProxyType(dict(capabilities))
        self._aliases = MappingProxyType(dict(aliases or {}))

    @property
    def capabilities(self) -> Mapping[str, RoleCapability]:
        return self._capabilities

    def _capabilities_for(self, session: SessionIdentity) -> list[RoleCapability]:
        resolved = []
        for role in session.roles:
            cap = self._capabilities.get(self._aliases.get(role, role))
            if cap is not None:
                resolved.append(cap)
        return resolved

    def can_approve(self, session: SessionIdentity, section: Section) -> bool:
        section = Section(section)
        return any(cap.approves == section for cap in self._capabilities_for(session))

    def can_launch(self, session: SessionIdentity) -> bool:
        return any(cap.can_launch for cap in self._capabilities_for(session))

    def can_view_section(self, session: SessionIdentity, section: Section) -> bool:
        """Visibility only; approving a section implies seeing it."""
        section = Section(section)
        return any(
            cap.approves == section or section in cap.views
            for cap in self._capabilities_for(session)
        )

    def approvable_sections(self, session: SessionIdentity) -> frozenset[Section]:
        return frozenset(
            cap.approves
            for cap in self._capabilities_for(session)
            if cap.approves is not None
        )
