"""
Runtime errors (errors.py)
"""

from plinth.errors import (
    CircularDependencyError,
    DuplicatePluginError,
    LifecycleStateError,
    MissingDependencyError,
    PluginLifecycleError,
    RuntimeFault,
)


class TestRuntimeFault:

    def test_defaults(self):
        error = RuntimeFault("something broke")
        assert str(error) == "something broke"
        assert error.code == "RUNTIME_ERROR"
        assert error.details == {}
        assert error.suggestion is None

    def test_code_override(self):
        assert RuntimeFault("x", code="CUSTOM").code == "CUSTOM"
        assert RuntimeFault("y").code == "RUNTIME_ERROR"

    def test_format_error(self):
        error = MissingDependencyError("api", "database")
        text = error.format_error()
        assert text.startswith("MissingDependencyError [MISSING_DEPENDENCY]:")
        assert "- plugin: api" in text
        assert "- dependency: database" in text
        assert "Suggestion: Register a plugin named 'database'" in text

    def test_to_dict(self):
        assert DuplicatePluginError("logger").to_dict() == {
            "type": "DuplicatePluginError",
            "code": "DUPLICATE_PLUGIN",
            "message": "Plugin 'logger' is already registered",
            "details": {"plugin": "logger"},
        }


class TestSubclasses:

    def test_all_are_runtime_faults(self):
        errors = [
            CircularDependencyError(["a", "b", "a"]),
            MissingDependencyError("a", "b"),
            DuplicatePluginError("a"),
            PluginLifecycleError("a", "start", ValueError("x")),
            LifecycleStateError("start plugins", "uninitialized", "initialized"),
        ]
        assert all(isinstance(e, RuntimeFault) for e in errors)
        assert len({e.code for e in errors}) == len(errors)

    def test_circular_dependency(self):
        error = CircularDependencyError(["a", "b", "a"])
        assert str(error) == "Circular dependency detected: a -> b -> a"
        assert error.details["cycle_length"] == 2

    def test_plugin_lifecycle_keeps_cause(self):
        cause = ValueError("port in use")
        error = PluginLifecycleError("http", "start", cause)
        assert error.cause is cause
        assert str(error) == "Plugin 'http' failed during start: port in use"
        assert error.details["cause"] == "ValueError"

    def test_lifecycle_state(self):
        error = LifecycleStateError("start plugins", "stopped", "initialized")
        assert str(error) == (
            "Cannot start plugins from phase 'stopped'; plugins must be initialized first"
        )
        assert error.code == "INVALID_LIFECYCLE_STATE"
