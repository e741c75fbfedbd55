"""
Launch Kernel - Go-for-Launch approval workflow

A role-gated product approval state machine with:
- Independent per-section sign-off (marketing, finance, legal, salesops, contracts)
- Immutable approval state with pure transitions
- Optimistic apply, persist, rollback-on-failure orchestration
- Version-checked persistence and an append-only audit trail
"""

__version__ = "0.1.0"
