"""PCO API diagnostic commands."""

import typer
from rich.table import Table

from pco_client.api import PcoClient
from pco_client.cli.common import (
    EndpointArgument,
    OutputFormat,
    OutputFormatOption,
    ParamOption,
    console,
    parse_params,
    run_async_command,
)
from pco_client.config import ClientConfig


def create_client() -> PcoClient:
    """Build a client from environment settings."""
    return PcoClient(ClientConfig.from_settings())


def get(endpoint: EndpointArgument, param: ParamOption = None) -> None:
    """Fetch one endpoint and print the JSON body.

    Examples:
        pcoclient get /people/1
        pcoclient get /people --param where[first_name]=Ada
    """
    params = parse_params(param)

    async def _get() -> None:
        async with create_client() as client:
            response = await client.get(endpoint, params)
        console.print_json(data=response.data)

    run_async_command(_get(), error_prefix="Request failed")


def pages(
    endpoint: EndpointArgument,
    param: ParamOption = None,
    per_page: int = typer.Option(100, "--per-page", min=1, max=100, help="Items per page"),
    max_pages: int | None = typer.Option(None, "--max-pages", min=1, help="Stop after N pages"),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Walk every page of a collection and summarize it.

    Examples:
        pcoclient pages /people
        pcoclient pages /people --per-page 25 --max-pages 4
    """
    params = parse_params(param)

    async def _pages() -> None:
        async with create_client() as client:
            rows: list[tuple[int, int, int | None]] = []
            async for page in client.paginate(
                endpoint, params, per_page=per_page, max_pages=max_pages
            ):
                rows.append((page.number, len(page.items), page.total_count))
            info = client.get_rate_limit_info()

        fetched = sum(count for _, count, _ in rows)
        if output_format == OutputFormat.JSON:
            console.print_json(
                data={
                    "endpoint": endpoint,
                    "pages_fetched": len(rows),
                    "items_fetched": fetched,
                    "pages": [{"number": n, "items": c} for n, c, _ in rows],
                    "rate_limit": info,
                }
            )
            return

        table = Table(title=f"Pages of {endpoint}")
        table.add_column("Page", justify="right")
        table.add_column("Items", justify="right")
        table.add_column("Total", justify="right")
        for number, count, total in rows:
            table.add_row(str(number), str(count), "-" if total is None else str(total))
        console.print(table)
        console.print(f"[green]Fetched {fetched} items across {len(rows)} pages[/green]")

    run_async_command(_pages(), error_prefix="Pagination failed")


def rate_limit(
    endpoint: str = typer.Option("/", "--endpoint", "-e", help="Endpoint to request"),
) -> None:
    """Issue one GET and show the tracked rate limit state.

    Examples:
        pcoclient rate-limit
    """

    async def _rate_limit() -> None:
        async with create_client() as client:
            await client.get(endpoint)
            info = client.get_rate_limit_info()

        table = Table(title="PCO Rate Limit")
        table.add_column("Field")
        table.add_column("Value", justify="right")
        for key in ("limit", "count", "remaining", "period", "retry_after"):
            value = info.get(key)
            table.add_row(key, "-" if value is None else str(value))
        console.print(table)

        remaining = info.get("remaining")
        if isinstance(remaining, int) and remaining < 10:
            console.print("[yellow]Warning:[/yellow] Low rate limit remaining")

    run_async_command(_rate_limit(), error_prefix="Request failed")
