# ==============================================================================
# Serve Command
# ==============================================================================
"""
Runs the tracking API (ingestion and summary endpoints) under uvicorn.
"""

import logging
from typing import Annotated, Optional

import typer

from sitetrack.cli.shared import C, I
from sitetrack.utils.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("urllib3", "httpx", "uvicorn.access")


def configure_logging(level: str) -> None:
    """Configure root logging for the API process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind host")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Bind port")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
) -> None:
    """Start the tracking API server.

    Examples:
        sitetrack serve
        sitetrack serve --host 0.0.0.0 --port 8080
    """
    import uvicorn

    settings = get_settings()
    host = host or settings.api.host
    port = port or settings.api.port
    level = "DEBUG" if settings.debug else settings.log_level
    configure_logging(level)

    print(
        f"  {C.BRIGHT_GREEN}{I.CHECK} Serving tracking API on "
        f"{C.WHITE}http://{host}:{port}{C.RESET} "
        f"{C.DIM}(event log: {settings.repository}){C.RESET}"
    )

    if reload:
        uvicorn.run(
            "sitetrack.api.server:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            log_config=None,
        )
        return

    from sitetrack.api.server import create_app

    uvicorn.run(create_app(settings=settings), host=host, port=port, log_config=None)
