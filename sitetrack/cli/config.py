# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration display command for the sitetrack CLI.
"""

import json
from typing import Annotated

import typer

from sitetrack.cli.shared import C
from sitetrack.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
) -> None:
    """Display current configuration (includes secrets in JSON mode)."""
    settings = get_settings()
    tracking = settings.tracking

    if json_output:
        config = {
            "repository": settings.repository,
            "log_level": settings.log_level,
            "postgresql": {
                "host": settings.postgres.host,
                "port": settings.postgres.port,
                "database": settings.postgres.database,
                "schema": settings.postgres.schema_name,
                "user": settings.postgres.user,
                "password": settings.postgres.password,
                "sslmode": settings.postgres.sslmode,
            },
            "valkey": {
                "host": settings.valkey.host,
                "port": settings.valkey.port,
                "ssl_enabled": settings.valkey.ssl,
                "password": settings.valkey.password,
                "session_key_prefix": settings.valkey.session_key_prefix,
            },
            "tracking": {
                "tracked_prefixes": tracking.tracked_prefixes,
                "min_duration_ms": tracking.min_duration_ms,
                "click_debounce_ms": tracking.click_debounce_ms,
                "label_max_length": tracking.label_max_length,
                "search_engines": tracking.search_engines,
                "search_mediums": tracking.search_mediums,
                "paid_mediums": tracking.paid_mediums,
                "internal_hosts": tracking.internal_hosts,
                "default_range_days": tracking.default_range_days,
                "max_range_days": tracking.max_range_days,
                "insight_min_views": tracking.insight_min_views,
            },
            "api": {
                "host": settings.api.host,
                "port": settings.api.port,
                "cors_origins": settings.api.cors_origins,
                "summary_token": settings.api.summary_token,
                "ingest_url": settings.api.ingest_url,
                "summary_url": settings.api.summary_url,
            },
        }
        print(json.dumps(config, indent=2))
        return

    # Human-readable output
    print()
    print(f"{C.BOLD}Configuration{C.RESET}")
    print()

    print(f"{C.CYAN}Event log{C.RESET}")
    print(f"  Backend:    {C.WHITE}{settings.repository}{C.RESET}")
    print()

    print(f"{C.CYAN}PostgreSQL{C.RESET}")
    print(f"  Host:       {C.WHITE}{settings.postgres.host}{C.RESET}")
    print(f"  Port:       {C.WHITE}{settings.postgres.port}{C.RESET}")
    print(f"  Database:   {C.WHITE}{settings.postgres.database}{C.RESET}")
    print(f"  Schema:     {C.WHITE}{settings.postgres.schema_name}{C.RESET}")
    print(f"  User:       {C.WHITE}{settings.postgres.user}{C.RESET}")
    print(f"  SSL:        {C.WHITE}{settings.postgres.sslmode}{C.RESET}")
    print()

    print(f"{C.CYAN}Valkey{C.RESET}")
    print(f"  Host:       {C.WHITE}{settings.valkey.host}{C.RESET}")
    print(f"  Port:       {C.WHITE}{settings.valkey.port}{C.RESET}")
    valkey_ssl = "enabled" if settings.valkey.ssl else "disabled"
    print(f"  SSL:        {C.WHITE}{valkey_ssl}{C.RESET}")
    print(f"  Key prefix: {C.WHITE}{settings.valkey.session_key_prefix}{C.RESET}")
    print()

    print(f"{C.CYAN}Tracking{C.RESET}")
    print(f"  Prefixes:   {C.WHITE}/, {', '.join(tracking.tracked_prefixes)}{C.RESET}")
    print(f"  Min dwell:  {C.WHITE}{tracking.min_duration_ms} ms{C.RESET}")
    print(f"  Debounce:   {C.WHITE}{tracking.click_debounce_ms} ms{C.RESET}")
    print(f"  Engines:    {C.WHITE}{', '.join(tracking.search_engines)}{C.RESET}")
    print(f"  Range:      {C.WHITE}{tracking.default_range_days} days (max {tracking.max_range_days}){C.RESET}")
    print()

    print(f"{C.CYAN}API{C.RESET}")
    print(f"  Bind:       {C.WHITE}{settings.api.host}:{settings.api.port}{C.RESET}")
    print(f"  Ingest URL: {C.WHITE}{settings.api.ingest_url}{C.RESET}")
    token_status = "required" if settings.api.summary_token else "not required"
    print(f"  Token:      {C.WHITE}{token_status}{C.RESET}")
    print()
