"""Routewise CLI - Main Entry Point.

Commands:
    run     - Boot the application and serve it with uvicorn
    routes  - Print the synthesized route table
"""

import asyncio
import logging
import sys
from typing import Optional

import click

from .application import Application
from .controller.metadata import describe_routes
from .faults.core import Fault


LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(package_name="routewise", prog_name="routewise")
def cli():
    """Convention-routed web applications."""


@cli.command("run")
@click.option("--root", "root", type=click.Path(file_okay=False), default=".", help="Application root directory")
@click.option("--config", "config_file", type=click.Path(dir_okay=False), default=None, help="JSON config file")
@click.option("--host", type=str, default=None, help="Bind host (default: server.host)")
@click.option("--port", type=int, default=None, help="Bind port (default: server.port)")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), default="info", help="Log level")
def run(root: str, config_file: Optional[str], host: Optional[str], port: Optional[int], log_level: str):
    """Boot the application and serve it."""
    _configure_logging(log_level)
    app = Application(root, config_file)
    try:
        app.serve(host=host, port=port, log_level=log_level)
    except Fault as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@cli.command("routes")
@click.option("--root", "root", type=click.Path(file_okay=False), default=".", help="Application root directory")
@click.option("--config", "config_file", type=click.Path(dir_okay=False), default=None, help="JSON config file")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), default="warning", help="Log level")
def routes(root: str, config_file: Optional[str], log_level: str):
    """Print the synthesized route table."""
    _configure_logging(log_level)
    app = Application(root, config_file)
    try:
        asyncio.run(app.run())
    except Fault as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    rows = []
    for registration in app.registry:
        if registration.custom_routes:
            rows.append({
                "verb": "*",
                "path": registration.path_prefix or "/",
                "action": "register_routes",
                "controller": registration.controller_name,
            })
        else:
            rows.extend(describe_routes(registration))

    if not rows:
        click.echo("No routes registered.")
        return

    width = max(len(r["path"]) for r in rows)
    for row in rows:
        click.echo(f"{row['verb']:<7} {row['path']:<{width}}  {row['controller']}.{row['action']}")


def main():
    cli()


if __name__ == "__main__":
    main()
