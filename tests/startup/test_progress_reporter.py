"""Tests for the startup progress reporter."""

from __future__ import annotations

import io

from keystone.startup.progress_reporter import (
    ProgressPhase,
    ProgressStep,
    StartupProgressReporter,
    StepStatus,
)


class TestProgressStep:
    """Test ProgressStep timing."""

    def test_duration_zero_until_finished(self) -> None:
        step = ProgressStep(name="Loading server", phase=ProgressPhase.LOADING_SERVER)
        step.start()

        assert step.status == StepStatus.RUNNING
        assert step.duration_ms == 0.0

    def test_finish_records_status_and_error(self) -> None:
        step = ProgressStep(name="Loading server", phase=ProgressPhase.LOADING_SERVER)
        error = ImportError("no module")
        step.start()
        step.finish(StepStatus.FAILED, "could not import", error)

        assert step.status == StepStatus.FAILED
        assert step.message == "could not import"
        assert step.error is error
        assert step.duration_ms >= 0.0


class TestStartupProgressReporter:
    """Test reporter output and summary."""

    def test_colors_disabled_for_non_tty(self, output: io.StringIO) -> None:
        reporter = StartupProgressReporter(output=output)

        assert reporter.enable_colors is False

    def test_full_successful_run(
        self, reporter: StartupProgressReporter, output: io.StringIO
    ) -> None:
        reporter.start_startup("Keystone")
        reporter.start_phase(ProgressPhase.AUDITING)
        audit = reporter.start_step("Dependency audit")
        reporter.skip_step(audit, "ENFORCE_AUDIT is not enabled")
        reporter.start_phase(ProgressPhase.STARTING_SERVER)
        start = reporter.start_step("Starting server")
        reporter.complete_step(start, "listening")
        reporter.report_startup_complete(success=True, message="Server started")

        text = output.getvalue()
        assert "Starting Keystone" in text
        assert "Auditing" in text
        assert "Dependency audit: ENFORCE_AUDIT is not enabled" in text
        assert "Starting server: listening" in text
        assert "Startup Complete" in text
        assert "\033[" not in text

        summary = reporter.get_startup_summary()
        assert summary["total_steps"] == 2
        assert summary["completed_steps"] == 1
        assert summary["skipped_steps"] == 1
        assert summary["failed_steps"] == 0
        assert summary["final_phase"] == "ready"
        assert summary["success"] is True
        assert summary["total_duration_ms"] >= 0

    def test_failed_run(
        self, reporter: StartupProgressReporter, output: io.StringIO
    ) -> None:
        reporter.start_startup()
        reporter.start_phase(ProgressPhase.LOADING_SERVER)
        step = reporter.start_step("Loading server")
        reporter.fail_step(step, "Server could not be loaded", ImportError("x"))
        reporter.report_startup_complete(success=False, message="Failed to load server module")

        text = output.getvalue()
        assert "Loading server: Server could not be loaded" in text
        assert "Startup Failed" in text
        assert "Failed to load server module" in text
        assert reporter.current_phase == ProgressPhase.FAILED
        assert reporter.get_startup_summary()["success"] is False

    def test_summary_before_completion(self, reporter: StartupProgressReporter) -> None:
        summary = reporter.get_startup_summary()

        assert summary["total_duration_ms"] == 0.0
        assert summary["final_phase"] == "initializing"
        assert summary["success"] is False
