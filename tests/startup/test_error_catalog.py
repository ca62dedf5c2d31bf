"""Tests for startup error catalog - real functionality tests."""

from keystone.startup.error_catalog import (
    ErrorCategory,
    ErrorSeverity,
    ErrorSolution,
    StartupErrorCatalog,
    StartupErrorInfo,
    error_catalog,
)
from keystone.startup.errors import (
    AuditBlockedError,
    DependencyValidationError,
    ServerLoadError,
    ServerStartError,
    ShutdownError,
    StartupError,
    StartupTimeoutError,
)


class TestStartupErrorCatalog:
    """Test startup error catalog real functionality."""

    def test_error_catalog_initialization(self):
        """Test that error catalog initializes with actual errors."""
        catalog = StartupErrorCatalog()

        assert set(catalog.errors) == {
            "AUDIT_001",
            "AUDIT_002",
            "DEP_001",
            "SRV_001",
            "SRV_002",
            "SRV_003",
            "SHUT_001",
        }

        error = catalog.errors["SRV_003"]
        assert error.code == "SRV_003"
        assert error.title == "Server Start Timed Out"
        assert error.category == ErrorCategory.SERVER
        assert error.severity == ErrorSeverity.CRITICAL
        assert len(error.solutions) > 0
        assert len(error.common_causes) > 0

    def test_get_error_info_by_code(self):
        error = error_catalog.get_error_info("DEP_001")

        assert isinstance(error, StartupErrorInfo)
        assert error.category == ErrorCategory.DEPENDENCIES

    def test_get_nonexistent_error_info(self):
        assert error_catalog.get_error_info("FAKE_999") is None

    def test_error_solution_structure(self):
        error = error_catalog.get_error_info("AUDIT_002")

        assert error is not None
        solution = error.solutions[0]
        assert isinstance(solution, ErrorSolution)
        assert solution.steps
        assert solution.documentation_links

    def test_find_errors_by_category(self):
        server_errors = error_catalog.find_errors_by_category(ErrorCategory.SERVER)

        assert {error.code for error in server_errors} == {"SRV_001", "SRV_002", "SRV_003"}

    def test_only_shutdown_errors_are_low_severity(self):
        low = [e.code for e in error_catalog.errors.values() if e.severity == ErrorSeverity.LOW]
        assert low == ["SHUT_001"]

    def test_related_errors_exist(self):
        for error in error_catalog.errors.values():
            for related in error.related_errors:
                assert related in error_catalog.errors


class TestCodeForException:
    """Test mapping exceptions to catalog codes."""

    def test_audit_vulnerabilities(self):
        error = AuditBlockedError("Startup blocked: audit found 2 vulnerabilities")
        assert error_catalog.code_for_exception(error) == "AUDIT_001"

    def test_audit_tool_failure(self):
        error = AuditBlockedError(
            "Startup blocked: Failed to execute audit tool",
            details={"details": "pip-audit: not found"},
        )
        assert error_catalog.code_for_exception(error) == "AUDIT_002"

    def test_timeout_is_more_specific_than_start(self):
        assert error_catalog.code_for_exception(StartupTimeoutError(50)) == "SRV_003"
        assert error_catalog.code_for_exception(ServerStartError("boom")) == "SRV_002"

    def test_other_phases(self):
        assert error_catalog.code_for_exception(ServerLoadError("x")) == "SRV_001"
        assert error_catalog.code_for_exception(DependencyValidationError("x")) == "DEP_001"
        assert error_catalog.code_for_exception(ShutdownError("x")) == "SHUT_001"

    def test_unknown_exception_falls_back_to_message(self):
        assert error_catalog.code_for_exception(RuntimeError("operation timed out")) == "SRV_003"
        assert error_catalog.code_for_exception(StartupError("something else")) is None


class TestSuggestErrorCode:
    """Test message-based suggestions."""

    def test_suggestions(self):
        assert error_catalog.suggest_error_code("3 vulnerabilities found") == "AUDIT_001"
        assert error_catalog.suggest_error_code("audit check failed") == "AUDIT_002"
        assert error_catalog.suggest_error_code("Missing required packages: httpx") == "DEP_001"
        assert error_catalog.suggest_error_code("Failed to load server module") == "SRV_001"
        assert error_catalog.suggest_error_code("disk full") is None


class TestFormatErrorHelp:
    """Test operator help formatting."""

    def test_format_known_error(self):
        help_text = error_catalog.format_error_help("SRV_003")

        assert "Server Start Timed Out (SRV_003)" in help_text
        assert "Severity: CRITICAL" in help_text
        assert "Increase STARTUP_TIMEOUT_MS" in help_text
        assert "SRV_002: Server Start Failed" in help_text

    def test_format_with_context(self):
        help_text = error_catalog.format_error_help("DEP_001", {"missing": "pyotp"})

        assert "Context:" in help_text
        assert "missing: pyotp" in help_text

    def test_format_unknown_error(self):
        assert error_catalog.format_error_help("NOPE") == "Unknown error code: NOPE"


class TestStartupErrors:
    """Test the startup error hierarchy."""

    def test_phase_defaults_per_class(self):
        assert AuditBlockedError("x").phase == "audit"
        assert DependencyValidationError("x").phase == "dependencies"
        assert ServerLoadError("x").phase == "server_load"
        assert ServerStartError("x").phase == "server_start"
        assert ShutdownError("x").phase == "shutdown"

    def test_explicit_phase_overrides_default(self):
        assert StartupError("x", phase="custom").phase == "custom"

    def test_timeout_error(self):
        error = StartupTimeoutError(30000)

        assert isinstance(error, ServerStartError)
        assert str(error) == "Server start timed out after 30000ms"
        assert error.details == {"timeout_ms": 30000}
        assert error.phase == "server_start"
