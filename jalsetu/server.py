"""Server entry point for the JalSetu API."""

import asyncio
import signal
import sys

from .core.config import get_settings, validate_required_env_vars
from .core.logging import get_logger, setup_logging


class GracefulShutdown:
    """Handle graceful shutdown of the application."""

    def __init__(self):
        self.shutdown_event = asyncio.Event()
        self.logger = get_logger(__name__)

    def setup_signal_handlers(self):
        """Set up signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            self.logger.info(f"Received signal {signum}, initiating graceful shutdown...")
            self.shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        if sys.platform == "win32":
            signal.signal(signal.SIGBREAK, signal_handler)


def validate_environment():
    """Validate configuration and report which chat providers are usable."""
    logger = get_logger(__name__)

    logger.info("Validating environment configuration...")
    warnings = validate_required_env_vars()
    for warning in warnings:
        logger.warning(warning)

    settings = get_settings()
    logger.info(f"✓ Default chat provider: {settings.chat_provider}")
    if not settings.weather_api_key:
        logger.warning("WEATHER_API_KEY is not set; dashboards will show no weather prediction")


async def run_server():
    """Run the FastAPI server with graceful shutdown support."""
    import uvicorn

    from .api.main import create_app

    logger = get_logger(__name__)
    settings = get_settings()
    app = create_app(settings, configure_logging=False)

    shutdown_handler = GracefulShutdown()
    shutdown_handler.setup_signal_handlers()

    logger.info(f"Starting server on {settings.api_host}:{settings.api_port}")

    config = uvicorn.Config(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # Use our custom logging
        access_log=False,  # Access logging happens in the monitoring middleware
    )
    server = uvicorn.Server(config)
    server_task = asyncio.create_task(server.serve())

    done, pending = await asyncio.wait(
        [server_task, asyncio.create_task(shutdown_handler.shutdown_event.wait())],
        return_when=asyncio.FIRST_COMPLETED,
    )

    if shutdown_handler.shutdown_event.is_set():
        logger.info("Shutdown signal received, stopping server...")
        server.should_exit = True
        try:
            await asyncio.wait_for(server_task, timeout=30.0)
            logger.info("Server stopped gracefully")
        except asyncio.TimeoutError:
            logger.warning("Server shutdown timeout, forcing exit")

    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def main():
    """Main application entry point."""
    logger = None

    try:
        settings = get_settings()
        setup_logging(settings.log_level, settings.enable_file_logging)
        logger = get_logger(__name__)

        logger.info("=" * 60)
        logger.info("JalSetu API Starting Up")
        logger.info("=" * 60)

        validate_environment()
        asyncio.run(run_server())

    except KeyboardInterrupt:
        if logger:
            logger.info("Application interrupted by user")
    except SystemExit:
        raise
    except Exception as e:
        error_msg = f"Failed to start application: {e}"
        if logger:
            logger.error(error_msg, exc_info=True)
        else:
            print(error_msg)
        sys.exit(1)
    finally:
        if logger:
            logger.info("JalSetu API shutdown complete")
