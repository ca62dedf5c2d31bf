"""Keystone Startup Error Catalog.

Known bootstrap failures with their usual causes and the steps that fix them.
The entry point prints the matching entry after a failed startup.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from keystone.startup.errors import (
    AuditBlockedError,
    DependencyValidationError,
    ServerLoadError,
    ServerStartError,
    ShutdownError,
    StartupError,
    StartupTimeoutError,
)


class ErrorCategory(StrEnum):
    """Error categories for organization."""

    AUDIT = "audit"
    DEPENDENCIES = "dependencies"
    SERVER = "server"
    SHUTDOWN = "shutdown"


class ErrorSeverity(StrEnum):
    """Error severity levels."""

    CRITICAL = "critical"  # Prevents startup
    LOW = "low"  # Logged only


@dataclass
class ErrorSolution:
    """Suggested solution for an error."""

    description: str
    steps: list[str]
    documentation_links: list[str] = field(default_factory=list)


@dataclass
class StartupErrorInfo:
    """Catalog entry for one startup error."""

    code: str
    title: str
    description: str
    category: ErrorCategory
    severity: ErrorSeverity
    solutions: list[ErrorSolution]
    common_causes: list[str]
    related_errors: list[str] = field(default_factory=list)


class StartupErrorCatalog:
    """Catalog of startup errors with solutions."""

    def __init__(self) -> None:
        self.errors: dict[str, StartupErrorInfo] = {
            info.code: info for info in self._build_error_catalog()
        }

    @staticmethod
    def _build_error_catalog() -> list[StartupErrorInfo]:
        return [
            StartupErrorInfo(
                code="AUDIT_001",
                title="Vulnerable Dependencies",
                description="The dependency audit reported known vulnerabilities.",
                category=ErrorCategory.AUDIT,
                severity=ErrorSeverity.CRITICAL,
                common_causes=[
                    "A pinned dependency has a published advisory",
                    "A transitive dependency was resolved to a vulnerable version",
                ],
                solutions=[
                    ErrorSolution(
                        description="Upgrade the affected packages",
                        steps=[
                            "Run the audit command locally to list the advisories",
                            "Upgrade or replace each affected package",
                            "Re-run the audit until it reports no vulnerabilities",
                        ],
                    ),
                    ErrorSolution(
                        description="Start without enforcement (not for production)",
                        steps=["Unset ENFORCE_AUDIT or set it to false"],
                    ),
                ],
                related_errors=["AUDIT_002"],
            ),
            StartupErrorInfo(
                code="AUDIT_002",
                title="Audit Tool Failure",
                description="The audit tool could not run or produced unreadable output.",
                category=ErrorCategory.AUDIT,
                severity=ErrorSeverity.CRITICAL,
                common_causes=[
                    "Audit tool not installed or not on PATH",
                    "Audit tool timed out",
                    "AUDIT_COMMAND does not produce JSON on stdout",
                ],
                solutions=[
                    ErrorSolution(
                        description="Fix the audit command",
                        steps=[
                            "Install the audit tool (pip install pip-audit)",
                            "Check AUDIT_COMMAND prints a JSON report",
                            "Increase AUDIT_TIMEOUT for slow package indexes",
                        ],
                        documentation_links=["https://pypi.org/project/pip-audit/"],
                    ),
                ],
                related_errors=["AUDIT_001"],
            ),
            StartupErrorInfo(
                code="DEP_001",
                title="Dependency Validation Failed",
                description="The dependency validator is missing or its check failed.",
                category=ErrorCategory.DEPENDENCIES,
                severity=ErrorSeverity.CRITICAL,
                common_causes=[
                    "A required package is not installed",
                    "VALIDATOR_TARGET points to a missing module or attribute",
                ],
                solutions=[
                    ErrorSolution(
                        description="Install the missing packages",
                        steps=[
                            "Read the missing package names in the error message",
                            "Install them into the active environment",
                            "Adjust REQUIRED_PACKAGES if the list is wrong",
                        ],
                    ),
                ],
            ),
            StartupErrorInfo(
                code="SRV_001",
                title="Server Load Failed",
                description="The server module could not be imported.",
                category=ErrorCategory.SERVER,
                severity=ErrorSeverity.CRITICAL,
                common_causes=[
                    "SERVER_TARGET points to a missing module or attribute",
                    "The server module raises during import",
                    "The target does not provide start() and stop()",
                ],
                solutions=[
                    ErrorSolution(
                        description="Check the server target",
                        steps=[
                            "Import the SERVER_TARGET module in a Python shell",
                            "Set DEBUG=true to see the original traceback",
                        ],
                    ),
                ],
            ),
            StartupErrorInfo(
                code="SRV_002",
                title="Server Start Failed",
                description="The server raised an error while starting.",
                category=ErrorCategory.SERVER,
                severity=ErrorSeverity.CRITICAL,
                common_causes=[
                    "Port already in use",
                    "Invalid HOST or PORT",
                    "Application startup hook failed",
                ],
                solutions=[
                    ErrorSolution(
                        description="Fix the server environment",
                        steps=[
                            "Check nothing else listens on PORT",
                            "Set DEBUG=true to see the original traceback",
                        ],
                    ),
                ],
                related_errors=["SRV_003"],
            ),
            StartupErrorInfo(
                code="SRV_003",
                title="Server Start Timed Out",
                description="The server did not finish starting before the deadline.",
                category=ErrorCategory.SERVER,
                severity=ErrorSeverity.CRITICAL,
                common_causes=[
                    "Slow external service during application startup",
                    "STARTUP_TIMEOUT_MS too low for this environment",
                ],
                solutions=[
                    ErrorSolution(
                        description="Give the server more time or find the hang",
                        steps=[
                            "Increase STARTUP_TIMEOUT_MS",
                            "Check which startup hook blocks with DEBUG=true",
                        ],
                    ),
                ],
                related_errors=["SRV_002"],
            ),
            StartupErrorInfo(
                code="SHUT_001",
                title="Server Stop Failed",
                description="server.stop() raised during graceful shutdown; the process still exited.",
                category=ErrorCategory.SHUTDOWN,
                severity=ErrorSeverity.LOW,
                common_causes=["A shutdown hook raised", "Connections did not drain"],
                solutions=[
                    ErrorSolution(
                        description="Inspect the shutdown hooks",
                        steps=["Look for [SHUTDOWN ERROR] in the logs"],
                    ),
                ],
            ),
        ]

    def get_error_info(self, error_code: str) -> StartupErrorInfo | None:
        """Get error information by code."""
        return self.errors.get(error_code)

    def find_errors_by_category(
        self, category: ErrorCategory
    ) -> list[StartupErrorInfo]:
        """Find all errors in a specific category."""
        return [error for error in self.errors.values() if error.category == category]

    def code_for_exception(self, error: BaseException) -> str | None:
        """Map a startup exception to its catalog code."""
        if isinstance(error, AuditBlockedError):
            return "AUDIT_002" if error.details.get("details") else "AUDIT_001"
        mapping: list[tuple[type[StartupError], str]] = [
            (StartupTimeoutError, "SRV_003"),
            (ServerStartError, "SRV_002"),
            (ServerLoadError, "SRV_001"),
            (DependencyValidationError, "DEP_001"),
            (ShutdownError, "SHUT_001"),
        ]
        for error_type, code in mapping:
            if isinstance(error, error_type):
                return code
        return self.suggest_error_code(str(error))

    def suggest_error_code(self, error_message: str) -> str | None:
        """Suggest error code based on error message content."""
        message = error_message.lower()
        if "vulnerabilit" in message:
            return "AUDIT_001"
        if "audit" in message:
            return "AUDIT_002"
        if "timed out" in message or "timeout" in message:
            return "SRV_003"
        if "validator" in message or "missing required packages" in message:
            return "DEP_001"
        if "server module" in message:
            return "SRV_001"
        return None

    def format_error_help(
        self, error_code: str, context: dict[str, str] | None = None
    ) -> str:
        """Format error help text for operators."""
        error_info = self.get_error_info(error_code)
        if not error_info:
            return f"Unknown error code: {error_code}"

        lines = [
            f"🚨 {error_info.title} ({error_info.code})",
            "=" * 60,
            f"Description: {error_info.description}",
            f"Severity: {error_info.severity.value.upper()}",
            "",
            "Common causes:",
        ]
        lines.extend(f"  • {cause}" for cause in error_info.common_causes)

        lines.append("\nSolutions:")
        for i, solution in enumerate(error_info.solutions, 1):
            lines.append(f"  {i}. {solution.description}")
            lines.extend(f"     • {step}" for step in solution.steps)
            lines.extend(f"     📖 {link}" for link in solution.documentation_links)

        if context:
            lines.append("\nContext:")
            lines.extend(f"  • {key}: {value}" for key, value in context.items())

        related = [
            f"  • {code}: {info.title}"
            for code in error_info.related_errors
            if (info := self.get_error_info(code))
        ]
        if related:
            lines.append("\nRelated errors:")
            lines.extend(related)

        return "\n".join(lines)


error_catalog = StartupErrorCatalog()
