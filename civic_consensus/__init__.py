"""
Civic Consensus - Community Governance Engine

Quorum voting for a group's managers: admissions, role changes,
removals, reinstatements, policy changes, fund approvals and manager
reconfirmation, with automatic resolution, expiry and an append-only
audit trail.

Governance Rules:
- Groups of three or fewer members run in bootstrap mode (no quorum)
- Larger groups must keep at least two managers
- A proposal's subject never votes on it
- The founder is immune to member actions
- Every resolution is written to the audit log
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
