"""
DI-specific error types with rich diagnostics.
"""

from typing import List, Optional

from ..errors import RuntimeFault


class DIError(RuntimeFault):
    """Base exception for DI errors."""

    code = "DI_ERROR"


class ProviderNotFoundError(DIError):
    """Provider not found for requested token."""

    code = "PROVIDER_NOT_FOUND"

    def __init__(
        self,
        token: str,
        candidates: Optional[List[str]] = None,
        requested_by: Optional[str] = None,
    ):
        self.token = token
        self.candidates = candidates or []
        self.requested_by = requested_by

        msg = f"No provider found for token={token}"
        if requested_by:
            msg += f" (requested while resolving {requested_by})"

        suggestion = f"Register a provider for '{token}' before resolving it."
        if self.candidates:
            suggestion += " Similar tokens: " + ", ".join(self.candidates)

        super().__init__(
            msg,
            suggestion=suggestion,
            details={"token": token, "candidates": self.candidates},
        )


class DuplicateProviderError(DIError):
    """A token was registered twice."""

    code = "DUPLICATE_PROVIDER"

    def __init__(self, token: str, existing: str):
        self.token = token
        self.existing = existing

        super().__init__(
            f"Provider for {token} already registered: {existing}",
            suggestion="Pass replace=True to override the existing provider.",
            details={"token": token, "existing": existing},
        )


class ResolutionCycleError(DIError):
    """A factory resolved its own token, directly or transitively."""

    code = "RESOLUTION_CYCLE"

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)

        super().__init__(
            "Detected resolution cycle: " + " -> ".join(self.cycle),
            suggestion="Restructure the factories so none resolves itself.",
            details={"cycle": self.cycle},
        )
