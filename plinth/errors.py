"""
Plinth runtime error types with rich diagnostics.

Every error carries a stable ``code`` string so callers can branch on the
failure kind without parsing messages.
"""

from typing import Any, Dict, List, Optional


class RuntimeFault(Exception):
    """Base error for all Plinth runtime errors."""

    code: str = "RUNTIME_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        suggestion: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def format_error(self) -> str:
        """Format error with diagnostics."""
        lines = [f"{self.__class__.__name__} [{self.code}]: {self.message}"]

        if self.details:
            lines.append("\n   Details:")
            for key, value in self.details.items():
                lines.append(f"   - {key}: {value}")

        if self.suggestion:
            lines.append(f"\n   Suggestion: {self.suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error for logs and CLI output."""
        return {
            "type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return self.message


class CircularDependencyError(RuntimeFault):
    """
    Circular dependency detected between plugins.

    Example:
        orders depends on billing
        billing depends on customers
        customers depends on orders  <- CYCLE
    """

    code = "CIRCULAR_DEPENDENCY"

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        cycle_repr = " -> ".join(self.cycle)

        super().__init__(
            f"Circular dependency detected: {cycle_repr}",
            suggestion=(
                "Break the cycle by removing one dependency or by moving the "
                "shared part into a plugin both sides can depend on."
            ),
            details={"cycle": self.cycle, "cycle_length": len(self.cycle) - 1},
        )


class MissingDependencyError(RuntimeFault):
    """Plugin declares a dependency that is not registered."""

    code = "MISSING_DEPENDENCY"

    def __init__(self, plugin_name: str, dependency_name: str):
        self.plugin_name = plugin_name
        self.dependency_name = dependency_name

        super().__init__(
            f"Plugin '{plugin_name}' depends on '{dependency_name}' "
            f"which is not registered",
            suggestion=(
                f"Register a plugin named '{dependency_name}' or remove it from "
                f"{plugin_name}.metadata.dependencies."
            ),
            details={"plugin": plugin_name, "dependency": dependency_name},
        )


class DuplicatePluginError(RuntimeFault):
    """Two plugins were registered under the same name."""

    code = "DUPLICATE_PLUGIN"

    def __init__(self, plugin_name: str):
        self.plugin_name = plugin_name

        super().__init__(
            f"Plugin '{plugin_name}' is already registered",
            suggestion="Each plugin must have a unique metadata.name.",
            details={"plugin": plugin_name},
        )


class PluginLifecycleError(RuntimeFault):
    """A plugin hook raised during initialize or start."""

    code = "PLUGIN_LIFECYCLE_ERROR"

    def __init__(self, plugin_name: str, phase: str, cause: BaseException):
        self.plugin_name = plugin_name
        self.phase = phase
        self.cause = cause

        super().__init__(
            f"Plugin '{plugin_name}' failed during {phase}: {cause}",
            details={
                "plugin": plugin_name,
                "phase": phase,
                "cause": type(cause).__name__,
            },
        )


class LifecycleStateError(RuntimeFault):
    """Lifecycle operation called from a phase that does not allow it."""

    code = "INVALID_LIFECYCLE_STATE"

    def __init__(self, operation: str, current_phase: str, required_phase: str):
        self.operation = operation
        self.current_phase = current_phase
        self.required_phase = required_phase

        super().__init__(
            f"Cannot {operation} from phase '{current_phase}'; "
            f"plugins must be {required_phase} first",
            details={
                "operation": operation,
                "current_phase": current_phase,
                "required_phase": required_phase,
            },
        )
