"""Command line entry point: run the API server or the database migrations."""

from __future__ import annotations

import argparse
import signal
import threading
from collections.abc import Sequence

from werkzeug.serving import make_server

from . import logger
from .config import load_config
from .factory import Factory
from .web import create_app


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="account-transfer-microservice",
        description="A REST API for account transfers.",
    )
    commands = parser.add_subparsers(dest="command")
    api = commands.add_parser("api", help="Start the API server")
    api.add_argument("--config", default="", help="Path to configuration file")
    migrate = commands.add_parser("migrate", help="Run database migrations")
    migrate.add_argument("--config", default="", help="Path to configuration file")
    return parser


def run_migrate(config_path: str | None = None) -> None:
    """Load the configuration and bring the database schema up to date."""
    try:
        config = load_config(config_path)
    except ValueError as exc:
        logger.fatal("Failed to load configuration: %s", exc)
    try:
        factory = Factory(config)
    except Exception as exc:
        logger.fatal("Failed to create factory: %s", exc)
    with factory:
        logger.info("Running database migrations...")
        try:
            factory.migrate_db()
        except Exception as exc:
            logger.fatal("Failed to migrate database: %s", exc)
        logger.info("Database migrations completed successfully")


def run_api(config_path: str | None = None) -> None:
    """Serve the API until SIGINT or SIGTERM, then shut down gracefully."""
    log_config = logger.default_config()
    log_config.report_caller = False
    try:
        logger.initialize(log_config)
    except ValueError as exc:
        print(f"Failed to initialize logger: {exc}")
        raise SystemExit(1) from exc

    try:
        config = load_config(config_path)
    except ValueError as exc:
        logger.fatal("Failed to load configuration: %s", exc)

    try:
        factory = Factory(config)
    except Exception as exc:
        logger.fatal("Failed to create factory: %s", exc)

    with factory:
        app = create_app(factory.create_account_controller())
        mode = config.server.gin_mode
        app.debug = mode == "debug"
        app.testing = mode == "test"

        port = config.server.port
        try:
            server = make_server("0.0.0.0", int(port), app, threaded=True)
        except (OSError, ValueError) as exc:
            logger.fatal("Failed to start server: %s", exc)

        stop = threading.Event()
        previous = {
            sig: signal.signal(sig, lambda *_: stop.set())
            for sig in (signal.SIGINT, signal.SIGTERM)
        }
        serving = threading.Thread(target=server.serve_forever, daemon=True)
        logger.info("Server starting on port %s", port)
        serving.start()
        try:
            while not stop.wait(0.5):
                pass
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
        logger.info("Received shutdown signal. Starting graceful shutdown...")

        timeout = config.server.shutdown_timeout
        logger.info(
            "Server will shutdown after %ss or when all connections are closed", timeout
        )

        def _shutdown() -> None:
            server.shutdown()
            server.server_close()

        stopper = threading.Thread(target=_shutdown, daemon=True)
        stopper.start()
        stopper.join(timeout)
        if stopper.is_alive():
            logger.fatal("Server forced to shutdown: %s", "shutdown timed out")
        logger.info("Server gracefully stopped")


def main(argv: Sequence[str] | None = None) -> int:
    """Parse the command line and run the chosen command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    if args.command == "api":
        run_api(args.config)
    else:
        run_migrate(args.config)
    return 0