"""Keystone Startup System.

Fail-fast bootstrap with an optional dependency audit, a deadline-bound
server start and graceful shutdown.
"""

from __future__ import annotations

from keystone.startup.audit import AuditResult, run_audit
from keystone.startup.config_schema import KeystoneConfig
from keystone.startup.lifecycle import FaultHandlers, LifecycleContext, graceful_shutdown
from keystone.startup.orchestrator import StartupOrchestrator, start_with_timeout
from keystone.startup.progress_reporter import StartupProgressReporter

__all__ = [
    "AuditResult",
    "FaultHandlers",
    "KeystoneConfig",
    "LifecycleContext",
    "StartupOrchestrator",
    "StartupProgressReporter",
    "graceful_shutdown",
    "run_audit",
    "start_with_timeout",
]
