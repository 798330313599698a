"""Conduit CLI - Main Entry Point.

The ``conduit`` command inspects and serves an application.

Commands:
    routes  - Print the compiled route table
    serve   - Run the application with uvicorn

APP is ``package.module:attribute`` naming a CollectionRegistry.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import ConfigLoader, ConduitConfig
from .faults import Fault
from .server import create_app, create_dispatcher, load_registry, serve as serve_app


def _load(config_path: Optional[str], overrides: dict) -> ConduitConfig:
    try:
        return ConfigLoader.load(path=config_path, overrides=overrides)
    except Fault as e:
        raise click.ClickException(e.message)


def _registry(app: str):
    # Make the working directory importable, like `python -m`
    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)
    try:
        return load_registry(app)
    except Fault as e:
        raise click.ClickException(e.message)


@click.group()
@click.version_option(version=__version__, prog_name="conduit")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML config file")
@click.pass_context
def cli(ctx, config_path: Optional[str]):
    """Conduit - request dispatch for collection-based APIs."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command("routes")
@click.argument("app")
@click.option("--routes-file", type=click.Path(dir_okay=False), help="YAML endpoint file")
@click.pass_context
def routes(ctx, app: str, routes_file: Optional[str]):
    """
    Print the compiled route table.

    Examples:
      conduit routes myapi.collections:registry
      conduit routes myapi:registry --routes-file=routes.yaml
    """
    config = _load(ctx.obj["config_path"], {"routes_file": routes_file})
    dispatcher = create_dispatcher(config, registry=_registry(app))

    try:
        table = asyncio.run(dispatcher.init())
    except Fault as e:
        raise click.ClickException(e.message)

    if not len(table):
        click.echo("No routes")
        return

    width = max(len(route.path) for route in table)
    for route in table:
        click.echo(
            f"{route.method.upper():<7} {route.path:<{width}}  "
            f"{route.collection_name}.{route.handler_name}"
        )


@cli.command("serve")
@click.argument("app")
@click.option("--host", type=str, help="Bind address")
@click.option("--port", type=int, help="Bind port")
@click.option("--mode", type=click.Choice(["development", "production"]), help="Deployment mode")
@click.option("--routes-file", type=click.Path(dir_okay=False), help="YAML endpoint file")
@click.pass_context
def serve(ctx, app: str, host: Optional[str], port: Optional[int], mode: Optional[str], routes_file: Optional[str]):
    """
    Serve APP with uvicorn.

    Examples:
      conduit serve myapi.collections:registry
      conduit --config=conduit.yaml serve myapi:registry --port=9000
    """
    config = _load(
        ctx.obj["config_path"],
        {"host": host, "port": port, "mode": mode, "routes_file": routes_file},
    )
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    serve_app(create_app(config, registry=_registry(app)), config)


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
