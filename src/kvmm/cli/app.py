from __future__ import annotations

from typing import Annotated

import typer

from kvmm.utils.logging import level_for_verbosity, setup_logging

from . import config as config_cmd
from . import thumbnail as thumbnail_cmd
from .devices import register as register_devices
from .info import register as register_info
from .init_cmd import register as register_init

app = typer.Typer(help="kvmm - KVM device manager", no_args_is_help=True)

app.add_typer(config_cmd.app, name="config")
app.add_typer(thumbnail_cmd.app, name="thumbnail")

register_init(app)
register_devices(app)
register_info(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-V", count=True, help="More log output (-VV)"),
    ] = 0,
) -> None:
    """kvmm CLI."""
    setup_logging(level_for_verbosity(verbose))

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"kvmm version {get_version('kvmm')}")
        raise typer.Exit()
