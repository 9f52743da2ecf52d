#!/usr/bin/env python3
"""
ckptctl - Epoch checkpoint store CLI

Main entrypoint for the ckptctl command-line tool.
"""

import typer
from rich.console import Console
from rich.table import Table

from checkpointing.logging_config import setup_logging
from checkpointing.metrics import (
    metrics_enabled_from_env,
    metrics_port_from_env,
    start_metrics_server,
)
from ckptctl.commands import checkpoint

app = typer.Typer(
    name="ckptctl",
    help="Epoch checkpoint lifecycle store CLI",
    add_completion=False,
)

console = Console()

app.add_typer(checkpoint.app, name="checkpoint", help="Checkpoint records and status")


@app.command()
def version():
    """Show version information."""
    from checkpointing import __version__ as store_version
    from ckptctl import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]ckptctl[/bold]", f"v{__version__}")
    table.add_row("Store", f"v{store_version}")

    console.print(table)


def main():
    """Main entrypoint."""
    setup_logging()
    start_metrics_server(enabled=metrics_enabled_from_env(), port=metrics_port_from_env())
    app()


if __name__ == "__main__":
    main()
