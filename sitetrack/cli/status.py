# ==============================================================================
# Status Command
# ==============================================================================
"""
Status command for the sitetrack CLI.

Displays the health of the event log (PostgreSQL), the session identifier
store (Valkey) and the tracking API, either as box output or as JSON.

Each check uses light retry (3 attempts, ~7 seconds) for network resilience
and all checks run concurrently.
"""

import json as json_module
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Annotated, Any

import psycopg2
import requests
import typer

from sitetrack.cli.shared import (
    C,
    I,
    _box_bottom,
    _box_header,
    _box_line,
    _empty_line,
)
from sitetrack.core.presentation import format_number
from sitetrack.utils.config import Settings, get_settings
from sitetrack.utils.retry import (
    POSTGRES_RETRY_EXCEPTIONS,
    REDIS_RETRY_EXCEPTIONS,
    retry_light,
)

logger = logging.getLogger(__name__)


# ==============================================================================
# Data Collection
# ==============================================================================


@retry_light(POSTGRES_RETRY_EXCEPTIONS, logger)
def _postgresql_stats(settings: Settings) -> tuple[str, int | None, int | None]:
    """Count recorded events and distinct sessions."""
    schema = settings.postgres.schema_name
    with psycopg2.connect(settings.postgres.connection_string, connect_timeout=5) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT EXISTS (
                    SELECT FROM information_schema.tables
                    WHERE table_schema = %s AND table_name = 'tracking_events'
                )
                """,
                (schema,),
            )
            if not cur.fetchone()[0]:
                return "no_schema", None, None
            cur.execute(f"SELECT count(*), count(DISTINCT session_id) FROM {schema}.tracking_events")
            events, sessions = cur.fetchone()
    return "connected", events, sessions


def _collect_postgresql_data(settings: Settings) -> dict[str, Any]:
    """Collect event log status data."""
    from sitetrack.infrastructure.repositories import check_postgresql_connection

    if settings.repository == "memory":
        return {"status": "disabled", "events": None, "sessions": None}
    if not check_postgresql_connection(settings):
        return {"status": "unreachable", "events": None, "sessions": None}

    try:
        status, events, sessions = _postgresql_stats(settings)
    except Exception as e:
        logger.debug("PostgreSQL stats unavailable: %s", e)
        return {"status": "error", "events": None, "sessions": None}
    return {"status": status, "events": events, "sessions": sessions}


@retry_light(REDIS_RETRY_EXCEPTIONS, logger)
def _count_session_keys(settings: Settings) -> int:
    """Count stored session identifiers under the reserved key prefix."""
    from sitetrack.infrastructure.session_store import get_valkey_client

    client = get_valkey_client(settings.valkey.url)
    try:
        pattern = f"{settings.valkey.session_key_prefix}*"
        return sum(1 for _ in client.scan_iter(match=pattern, count=1000))
    finally:
        client.close()


def _collect_valkey_data(settings: Settings) -> dict[str, Any]:
    """Collect session store status data."""
    from sitetrack.infrastructure.session_store import check_valkey_connection

    if not check_valkey_connection(settings.valkey.url):
        return {"status": "unreachable", "stored_sessions": None}
    try:
        stored = _count_session_keys(settings)
    except Exception as e:
        logger.debug("Valkey key scan failed: %s", e)
        return {"status": "error", "stored_sessions": None}
    return {"status": "connected", "stored_sessions": stored}


def _collect_api_data(settings: Settings) -> dict[str, Any]:
    """Collect tracking API status data from its health endpoint."""
    url = f"{settings.api.base_url.rstrip('/')}/health"
    try:
        response = requests.get(url, timeout=settings.api.request_timeout_seconds)
        body = response.json() if response.ok else {}
    except (requests.RequestException, ValueError) as e:
        logger.debug("API health check failed: %s", e)
        return {"status": "unreachable", "url": url, "repository": None}
    return {
        "status": body.get("status", "error"),
        "url": url,
        "repository": body.get("repository"),
    }


def collect_status(settings: Settings | None = None) -> dict[str, Any]:
    """Run every check concurrently and gather the results."""
    settings = settings or get_settings()
    with ThreadPoolExecutor(max_workers=3) as pool:
        postgresql = pool.submit(_collect_postgresql_data, settings)
        valkey = pool.submit(_collect_valkey_data, settings)
        api = pool.submit(_collect_api_data, settings)
        return {
            "repository": settings.repository,
            "postgresql": postgresql.result(),
            "valkey": valkey.result(),
            "api": api.result(),
        }


# ==============================================================================
# Output
# ==============================================================================


def _status_text(status: str) -> str:
    if status in ("connected", "ok"):
        return f"{C.BRIGHT_GREEN}{I.CHECK} {status}{C.RESET}"
    if status in ("disabled", "no_schema", "degraded"):
        return f"{C.BRIGHT_YELLOW}{I.WARN} {status}{C.RESET}"
    return f"{C.BRIGHT_RED}{I.CROSS} {status}{C.RESET}"


def _print_status(data: dict[str, Any]) -> None:
    pg = data["postgresql"]
    valkey = data["valkey"]
    api = data["api"]

    print()
    print(_box_header("Sitetrack Status"))
    print(_empty_line())
    print(_box_line(f"  {C.CYAN}{I.DATABASE} Event log{C.RESET} {C.DIM}({data['repository']}){C.RESET}"))
    print(_box_line(f"    PostgreSQL  {_status_text(pg['status'])}"))
    if pg["events"] is not None:
        print(
            _box_line(
                f"    Events      {C.WHITE}{format_number(pg['events'])}{C.RESET}"
                f"  {C.DIM}({format_number(pg['sessions'])} sessions){C.RESET}"
            )
        )
    print(_empty_line())
    print(_box_line(f"  {C.CYAN}Session store{C.RESET}"))
    print(_box_line(f"    Valkey      {_status_text(valkey['status'])}"))
    if valkey["stored_sessions"] is not None:
        print(_box_line(f"    Stored ids  {C.WHITE}{format_number(valkey['stored_sessions'])}{C.RESET}"))
    print(_empty_line())
    print(_box_line(f"  {C.CYAN}Tracking API{C.RESET} {C.DIM}{api['url']}{C.RESET}"))
    print(_box_line(f"    Health      {_status_text(api['status'])}"))
    print(_empty_line())
    print(_box_bottom())
    print()


# ==============================================================================
# Commands
# ==============================================================================


def status(
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show event log, session store and API health.

    Examples:
        sitetrack status
        sitetrack status --json
    """
    data = collect_status()
    if json_output:
        print(json_module.dumps(data, indent=2))
        return
    _print_status(data)
