"""Keystone entry point.

Installs the fault and signal handlers, runs the bootstrap pipeline and then
serves until a termination signal arrives. Exit status is 0 after a graceful
shutdown and 1 when startup fails.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import traceback

from dotenv import load_dotenv

from keystone.core.logging_config import setup_logging
from keystone.startup.audit import run_audit
from keystone.startup.config_schema import KeystoneConfig
from keystone.startup.error_catalog import error_catalog
from keystone.startup.lifecycle import (
    FaultHandlers,
    LifecycleContext,
    install_signal_handlers,
    remove_signal_handlers,
)
from keystone.startup.loader import server_loader, validator_loader
from keystone.startup.orchestrator import StartupOrchestrator
from keystone.startup.progress_reporter import StartupProgressReporter

logger = logging.getLogger(__name__)


def nice_error_log(error: BaseException, *, debug: bool = False) -> None:
    """Log a startup failure without leaking internals unless DEBUG is on."""
    logger.error("[STARTUP ERROR] %s", str(error) or type(error).__name__)
    if debug:
        logger.error(
            "%s", "".join(traceback.format_exception(error)).rstrip()
        )
    else:
        logger.error("Set DEBUG=true to see stack trace.")


async def run(
    config: KeystoneConfig,
    *,
    validator_target: str | None = None,
    server_target: str | None = None,
    context: LifecycleContext | None = None,
    reporter: StartupProgressReporter | None = None,
) -> int:
    """Bootstrap the server and wait for shutdown.

    Returns:
        Process exit code.
    """
    loop = asyncio.get_running_loop()
    context = context or LifecycleContext()
    faults = FaultHandlers(context, config)
    faults.install(loop)
    install_signal_handlers(context, loop)

    orchestrator = StartupOrchestrator(
        load_validator=validator_loader(validator_target or config.validator_target),
        load_server=server_loader(server_target or config.server_target),
        config=config,
        context=context,
        reporter=reporter,
    )

    try:
        bootstrap = asyncio.ensure_future(orchestrator.bootstrap())
        exited = asyncio.ensure_future(context.exited.wait())
        await asyncio.wait({bootstrap, exited}, return_when=asyncio.FIRST_COMPLETED)

        if not bootstrap.done():
            # Shutdown was requested while still starting up
            bootstrap.cancel()
            return await context.wait_for_exit()
        exited.cancel()

        try:
            bootstrap.result()
        except Exception as e:  # noqa: BLE001 - every startup failure exits with 1
            nice_error_log(e, debug=config.debug)
            code = error_catalog.code_for_exception(e)
            if code:
                print(error_catalog.format_error_help(code), file=sys.stderr)  # noqa: T201
            return 1

        return await context.wait_for_exit()
    finally:
        remove_signal_handlers(loop)
        faults.uninstall()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keystone", description="Keystone hardened application bootstrap"
    )
    parser.add_argument(
        "--validator",
        help="Dependency validator as module:attribute (default: VALIDATOR_TARGET)",
    )
    parser.add_argument(
        "--server",
        help="Server handle or factory as module:attribute (default: SERVER_TARGET)",
    )
    parser.add_argument(
        "--audit-only",
        action="store_true",
        help="Run the dependency audit and exit",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    load_dotenv()

    config, errors = KeystoneConfig.validate_from_env()
    if config is None:
        logging.basicConfig(level=logging.INFO)
        for error in errors:
            logger.error("Invalid configuration: %s", error)
        return 1

    setup_logging(config)

    if args.audit_only:
        result = run_audit(config.model_copy(update={"enforce_audit": True}))
        if result.ok:
            logger.info("[AUDIT] %s", result.message)
            return 0
        logger.error("[AUDIT] %s", result.message)
        if result.details:
            logger.error("[AUDIT] %s", result.details)
        return 1

    try:
        return asyncio.run(
            run(config, validator_target=args.validator, server_target=args.server)
        )
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
