# ==============================================================================
# Sitetrack CLI
# ==============================================================================
"""
Command-line interface for the marketing-page tracking pipeline.

Usage:
    sitetrack --help
    sitetrack serve
    sitetrack status
    sitetrack summary --days 30 --sort ctr
    sitetrack export --path /blog -o blog.csv
    sitetrack config show
    sitetrack db init
    sitetrack db reset -y
"""

import os

import typer

# ==============================================================================
# App Configuration
# ==============================================================================
# Set consistent terminal width for help output formatting
if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="sitetrack",
    help="Marketing-page tracking and analytics CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

# Register config commands from cli.config module
from sitetrack.cli.config import config_show

config_app.command("show")(config_show)

db_app = typer.Typer(
    help="Database schema operations",
    no_args_is_help=True,
)
app.add_typer(db_app, name="db")

from sitetrack.cli.db import db_init, db_reset

db_app.command("init")(db_init)
db_app.command("reset")(db_reset)

# Serve command is imported from sitetrack.cli.serve
from sitetrack.cli.serve import serve

app.command("serve")(serve)

from sitetrack.cli.status import status

app.command("status")(status)

# Summary and export commands share range/filter/sort options
from sitetrack.cli.export import export_pages
from sitetrack.cli.summary import show_summary

app.command("summary")(show_summary)
app.command("export")(export_pages)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
