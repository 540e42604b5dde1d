"""Shared pieces of the pcoclient CLI.

Option aliases use ``Annotated`` so commands can declare plain defaults,
and ``run_async_command`` is the single place async work meets typer.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from enum import StrEnum
from typing import Annotated, TypeVar

import typer
from rich.console import Console

from pco_client.api.exceptions import PcoApiError

console = Console()

T = TypeVar("T")


class OutputFormat(StrEnum):
    TEXT = "text"
    JSON = "json"


def describe_error(error: Exception) -> str:
    """One-line description of a failure for terminal output.

    API errors include their HTTP status, outcome class and request id.
    """
    if isinstance(error, PcoApiError):
        parts = [f"HTTP {error.status}" if error.status else "no response"]
        parts.append(error.classification.value)
        if error.request_id:
            parts.append(error.request_id)
        return f"{error} ({', '.join(parts)})"
    return str(error)


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Run a command's coroutine; print failures in red and exit 1.

    Raises:
        typer.Exit: Passed through from the command, or code 1 on error
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {describe_error(e)}")
        raise typer.Exit(1) from None


def parse_params(pairs: list[str] | None) -> dict[str, str]:
    """Parse repeated ``key=value`` options into query parameters.

    Raises:
        typer.Exit: Code 1 when a pair has no ``=`` or an empty key
    """
    params: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            console.print(f"[red]Error:[/red] Parameter '{pair}' must be key=value")
            raise typer.Exit(1)
        params[key] = value
    return params


# -----------------------------------------------------------------------------
# Option aliases
# -----------------------------------------------------------------------------
EndpointArgument = Annotated[
    str,
    typer.Argument(help="Endpoint path relative to the base URL (e.g. /people)"),
]

ParamOption = Annotated[
    list[str] | None,
    typer.Option("--param", "-p", help="Query parameter as key=value (repeatable)"),
]
"""Usage: ``def get(endpoint: EndpointArgument, param: ParamOption = None)``"""

OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option("--format", "-f", help="Output format"),
]

VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Debug logging, including httpx."),
]

QuietOption = Annotated[
    bool,
    typer.Option("--quiet", "-q", help="Only warnings and errors."),
]
