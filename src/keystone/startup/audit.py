"""Optional dependency vulnerability audit.

When ``ENFORCE_AUDIT=true`` the configured audit tool runs synchronously at
startup so a vulnerable dependency set blocks the server from starting. The
check reports failure through ``AuditResult``; it never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
import subprocess
from typing import Any

from keystone.startup.config_schema import KeystoneConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditResult:
    """Outcome of the startup audit check."""

    ok: bool
    message: str
    details: str | None = None
    skipped: bool = False


def count_vulnerabilities(report: Any) -> int:
    """Sum the vulnerabilities reported by an audit tool.

    Understands npm style reports (``metadata.vulnerabilities`` mapping
    severity to count) and pip-audit style reports (``dependencies[].vulns``).
    Anything else counts as zero. Counts that are present but unusable
    (non-finite numbers, a ``vulns`` value without a length) raise
    ``ValueError``, ``OverflowError`` or ``TypeError``.
    """
    if not isinstance(report, dict):
        return 0

    metadata = report.get("metadata")
    if isinstance(metadata, dict) and isinstance(
        metadata.get("vulnerabilities"), dict
    ):
        return sum(
            int(count)
            for count in metadata["vulnerabilities"].values()
            if isinstance(count, int | float)
        )

    dependencies = report.get("dependencies")
    if isinstance(dependencies, list):
        return sum(
            len(dep.get("vulns") or [])
            for dep in dependencies
            if isinstance(dep, dict)
        )

    return 0


def run_audit(
    config: KeystoneConfig | None = None, cwd: Path | str | None = None
) -> AuditResult:
    """Run the audit tool when enforcement is enabled.

    Args:
        config: Bootstrap configuration (loaded from the environment if omitted)
        cwd: Working directory for the audit tool

    Returns:
        ``AuditResult`` with ``ok=False`` when the tool could not run, its
        output was not a readable report, or it reported any vulnerability.
    """
    config = config or KeystoneConfig()
    if not config.enforce_audit:
        return AuditResult(ok=True, message="audit skipped", skipped=True)

    try:
        argv = config.audit_argv()
    except ValueError as e:
        return AuditResult(
            ok=False, message="Failed to execute audit tool", details=str(e)
        )
    logger.info("Running dependency audit: %s", " ".join(argv))

    try:
        # Audit tools exit non-zero when they find vulnerabilities, so the
        # return code is not checked here.
        completed = subprocess.run(  # noqa: S603 - operator-supplied command
            argv,
            cwd=cwd,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=config.audit_timeout,
            check=False,
            stdin=subprocess.DEVNULL,
        )
    except (OSError, subprocess.SubprocessError) as e:
        return AuditResult(
            ok=False, message="Failed to execute audit tool", details=str(e)
        )

    if not completed.stdout or not completed.stdout.strip():
        return AuditResult(ok=True, message="no audit output")

    try:
        report = json.loads(completed.stdout)
        total = count_vulnerabilities(report)
    except (ValueError, TypeError, OverflowError, RecursionError) as e:
        return AuditResult(ok=False, message="audit check failed", details=str(e))

    if total > 0:
        return AuditResult(ok=False, message=f"audit found {total} vulnerabilities")

    return AuditResult(ok=True, message="audit passed")
