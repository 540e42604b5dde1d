"""Entry point for the ``pcoclient`` command."""

from pathlib import Path
from typing import Annotated

import typer

from pco_client import __version__
from pco_client.cli import api as api_cmd
from pco_client.cli.common import QuietOption, VerboseOption, console
from pco_client.config import get_settings
from pco_client.logging import setup_logging

app = typer.Typer(
    name="pcoclient",
    help="Inspect the Planning Center Online API through the resilient client.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    if value:
        console.print(f"pcoclient version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Apply Settings.logging with the CLI's level overrides."""
    settings = get_settings()
    file_config = settings.logging
    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(file_config.log_file) if file_config.log_file else None,
        rotation=file_config.rotation,
        retention=file_config.retention,
        serialize=file_config.serialize,
    )


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """pcoclient - requests, pages and rate limits against PCO."""
    configure_logging(verbose, quiet)


app.command("get")(api_cmd.get)
app.command("pages")(api_cmd.pages)
app.command("rate-limit")(api_cmd.rate_limit)


if __name__ == "__main__":
    app()
