# ==============================================================================
# Database Commands
# ==============================================================================
"""
Schema management commands for the sitetrack CLI.
"""

from typing import Annotated

import typer

from sitetrack.cli.shared import C, I
from sitetrack.utils.config import get_settings


def _require_db() -> None:
    from sitetrack.utils.db import check_db_connection

    settings = get_settings()
    if not check_db_connection():
        print(
            f"{C.BRIGHT_RED}{I.CROSS} Cannot connect to PostgreSQL at "
            f"{settings.postgres.host}:{settings.postgres.port}{C.RESET}"
        )
        raise typer.Exit(1)


# ==============================================================================
# Commands
# ==============================================================================


def db_init() -> None:
    """Create the tracking schema and tables if they do not exist.

    Examples:
        sitetrack db init
    """
    from sitetrack.utils.db import ensure_schema

    _require_db()
    schema = get_settings().postgres.schema_name
    try:
        created = ensure_schema()
    except Exception as e:
        print(f"{C.BRIGHT_RED}{I.CROSS} Schema initialization failed: {e}{C.RESET}")
        raise typer.Exit(1)

    if created:
        print(f"{C.BRIGHT_GREEN}{I.CHECK} Created schema '{schema}'{C.RESET}")
    else:
        print(f"{C.DIM}{I.CHECK} Schema '{schema}' already exists{C.RESET}")


def db_reset(
    confirm: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")] = False,
) -> None:
    """Drop and recreate the tracking schema (deletes all events).

    Examples:
        sitetrack db reset       # With confirmation prompt
        sitetrack db reset -y    # Skip confirmation
    """
    from sitetrack.utils.db import reset_schema

    schema = get_settings().postgres.schema_name
    if not confirm:
        typer.confirm(f"Delete all tracking events in schema '{schema}'?", abort=True)

    _require_db()
    try:
        reset_schema()
    except Exception as e:
        print(f"{C.BRIGHT_RED}{I.CROSS} Schema reset failed: {e}{C.RESET}")
        raise typer.Exit(1)
    print(f"{C.BRIGHT_GREEN}{I.CHECK} Schema '{schema}' reset{C.RESET}")
