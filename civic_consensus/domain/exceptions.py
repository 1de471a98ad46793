"""Base exception classes for the governance engine domain layer."""


class GovernanceEngineError(Exception):
    """Base exception for all domain errors.

    Every rejected operation surfaces a stable machine-readable ``code``
    together with a human-readable ``reason`` suitable for direct display.

    Attributes:
        code: Stable error code (e.g. ``ALREADY_VOTED``).
        reason: Human-readable description of the failure.
    """

    code: str = "GOVERNANCE_ERROR"

    def __init__(self, reason: str = "") -> None:
        """Initialize the exception with a display reason.

        Args:
            reason: Human-readable error description.
        """
        self.reason = reason
        super().__init__(reason)

    def to_dict(self) -> dict[str, str]:
        """Serialize the error for API responses."""
        return {"code": self.code, "reason": self.reason}
