"""Keystone Startup Progress Reporter.

Prints one line per bootstrap step so operators can see where startup is and
where it stopped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import logging
import sys
import time
from typing import Any, TextIO

logger = logging.getLogger(__name__)


class ProgressPhase(StrEnum):
    """Bootstrap phases, in order."""

    INITIALIZING = "initializing"
    AUDITING = "auditing"
    VALIDATING_DEPENDENCIES = "validating_dependencies"
    LOADING_SERVER = "loading_server"
    STARTING_SERVER = "starting_server"
    READY = "ready"
    FAILED = "failed"


class StepStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ProgressStep:
    """Individual progress step."""

    name: str
    phase: ProgressPhase
    status: StepStatus = StepStatus.PENDING
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    start_time: float | None = None
    end_time: float | None = None
    error: BaseException | None = None

    @property
    def duration_ms(self) -> float:
        """Get step duration in milliseconds."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time) * 1000
        return 0.0

    def start(self) -> None:
        self.status = StepStatus.RUNNING
        self.start_time = time.monotonic()

    def finish(
        self,
        status: StepStatus,
        message: str = "",
        error: BaseException | None = None,
    ) -> None:
        self.status = status
        self.end_time = time.monotonic()
        if message:
            self.message = message
        self.error = error


class StartupProgressReporter:
    """Reports bootstrap progress with clear status messages."""

    SYMBOLS = {
        StepStatus.PENDING: "⏳",
        StepStatus.RUNNING: "🔄",
        StepStatus.COMPLETED: "✅",
        StepStatus.FAILED: "❌",
        StepStatus.SKIPPED: "⏭️",
    }

    def __init__(
        self, output: TextIO | None = None, *, enable_colors: bool = True
    ) -> None:
        """Initialize progress reporter.

        Args:
            output: Output stream (defaults to stdout)
            enable_colors: Whether to use colored output on a TTY
        """
        self.output = output or sys.stdout
        self.enable_colors = (
            enable_colors and hasattr(self.output, "isatty") and self.output.isatty()
        )
        self.steps: list[ProgressStep] = []
        self.current_phase = ProgressPhase.INITIALIZING
        self.start_time = time.monotonic()
        self.end_time: float | None = None

    def _colorize(self, text: str, color: str) -> str:
        if not self.enable_colors:
            return text
        codes = {"green": "32", "yellow": "33", "red": "31", "cyan": "36", "gray": "90"}
        return f"\033[{codes[color]}m{text}\033[0m"

    def _print(self, message: str) -> None:
        print(message, file=self.output, flush=True)

    def start_startup(self, app_name: str = "Keystone") -> None:
        """Start startup progress reporting."""
        self.start_time = time.monotonic()
        self._print(f"\n🚀 Starting {self._colorize(app_name, 'cyan')}")
        self._print(self._colorize("=" * 60, "gray"))

    def start_phase(self, phase: ProgressPhase) -> None:
        """Enter a new bootstrap phase."""
        self.current_phase = phase
        phase_name = phase.value.replace("_", " ").title()
        self._print(f"\n{phase_name}")
        logger.info("Startup phase: %s", phase_name)

    def start_step(self, name: str) -> ProgressStep:
        """Start a new progress step in the current phase."""
        step = ProgressStep(name=name, phase=self.current_phase)
        self.steps.append(step)
        step.start()
        self._print(f"  {self.SYMBOLS[StepStatus.RUNNING]} {name}")
        return step

    def complete_step(self, step: ProgressStep, message: str = "") -> None:
        """Mark step as completed."""
        step.finish(StepStatus.COMPLETED, message)

        line = f"  {self.SYMBOLS[StepStatus.COMPLETED]} {self._colorize(step.name, 'green')}"
        if message:
            line += f": {message}"
        if step.duration_ms > 0:
            line += " " + self._colorize(f"({step.duration_ms:.0f}ms)", "gray")
        self._print(line)
        logger.info("Completed: %s in %.0fms", step.name, step.duration_ms)

    def fail_step(
        self, step: ProgressStep, message: str, error: BaseException | None = None
    ) -> None:
        """Mark step as failed."""
        step.finish(StepStatus.FAILED, message, error)
        self._print(
            f"  {self.SYMBOLS[StepStatus.FAILED]} {self._colorize(step.name, 'red')}: "
            f"{self._colorize(message, 'red')}"
        )
        logger.error("Step failed: %s - %s", step.name, message)

    def skip_step(self, step: ProgressStep, reason: str) -> None:
        """Mark step as skipped."""
        step.finish(StepStatus.SKIPPED, reason)
        self._print(
            f"  {self.SYMBOLS[StepStatus.SKIPPED]} {self._colorize(step.name, 'yellow')}: "
            f"{self._colorize(reason, 'gray')}"
        )
        logger.info("Skipped: %s - %s", step.name, reason)

    def report_startup_complete(
        self, *, success: bool = True, message: str = ""
    ) -> None:
        """Report bootstrap completion."""
        self.end_time = time.monotonic()
        total_duration = (self.end_time - self.start_time) * 1000

        if success:
            self.current_phase = ProgressPhase.READY
            status_msg = f"✅ {self._colorize('Startup Complete', 'green')} ({total_duration:.0f}ms)"
        else:
            self.current_phase = ProgressPhase.FAILED
            status_msg = f"❌ {self._colorize('Startup Failed', 'red')} ({total_duration:.0f}ms)"
        if message:
            status_msg += f": {message}"

        self._print(f"\n{status_msg}")
        self._print(self._colorize("=" * 60, "gray") + "\n")

    def get_startup_summary(self) -> dict[str, Any]:
        """Get startup summary."""
        total_duration = 0.0
        if self.end_time:
            total_duration = (self.end_time - self.start_time) * 1000

        counts = {status: 0 for status in StepStatus}
        for step in self.steps:
            counts[step.status] += 1

        return {
            "total_duration_ms": total_duration,
            "total_steps": len(self.steps),
            "completed_steps": counts[StepStatus.COMPLETED],
            "failed_steps": counts[StepStatus.FAILED],
            "skipped_steps": counts[StepStatus.SKIPPED],
            "final_phase": self.current_phase.value,
            "success": counts[StepStatus.FAILED] == 0
            and self.current_phase == ProgressPhase.READY,
        }
