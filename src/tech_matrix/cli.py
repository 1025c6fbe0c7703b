"""Command-line entry points for the Technology Matrix service."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .classification import classify_fit
from .config import ConfigurationError, get_settings
from .pages import render_page
from .records import summarize_customers
from .restdb import (
    Projection,
    RestDbClient,
    StoreFilter,
    UpstreamError,
    UpstreamUnavailable,
)

app = typer.Typer(help="Serve and inspect the Technology Matrix assessments.")
console = Console()


def _store() -> RestDbClient:
    try:
        return RestDbClient.from_settings(get_settings())
    except ConfigurationError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def _fail(exc: Exception) -> None:
    if isinstance(exc, UpstreamError):
        detail = exc.body if isinstance(exc.body, str) else json.dumps(exc.body)
        rprint(f"[red]Store returned HTTP {exc.status_code}: {escape(detail)}[/red]")
    else:
        rprint(f"[red]{escape(str(exc))}[/red]")
    raise typer.Exit(code=1) from exc


def _items_table(items: List[Dict[str, Any]]) -> Table:
    table = Table(title=f"{len(items)} record(s)")
    for column in ("TIME", "Customer", "Category", "Solution", "Vendor", "Fit", "Created"):
        table.add_column(column)
    for item in items:
        table.add_row(
            f"{item.get('timeCode', '?')} {item.get('timeLabel', '')}".strip(),
            str(item.get("customerName") or ""),
            str(item.get("category") or ""),
            str(item.get("solution") or ""),
            str(item.get("vendor") or ""),
            f"{item.get('technicalFit', '?')}/{item.get('functionalFit', '?')}",
            str(item.get("createdAt") or ""),
        )
    return table


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, help="Bind address (defaults to APP_HOST)."),
    port: Optional[int] = typer.Option(None, help="Port (defaults to APP_PORT)."),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes."),
):
    """Run the web app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "tech_matrix.server:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@app.command("render-page")
def render_page_command(
    out: Optional[Path] = typer.Option(
        None, "--out", "-o", help="Write the HTML here instead of stdout."
    ),
):
    """Render the single-page UI with the current settings."""
    html = render_page(get_settings())
    if out:
        out.write_text(html, encoding="utf-8")
        rprint(f"[cyan]Wrote page to {out}[/cyan]")
    else:
        typer.echo(html)


@app.command("classify")
def classify_command(
    technical_fit: str = typer.Argument(..., help="Technical fit rating (1-5)."),
    functional_fit: str = typer.Argument(..., help="Functional fit rating (1-5)."),
):
    """Print the TIME quadrant for a pair of ratings."""
    result = classify_fit(technical_fit, functional_fit)
    rprint(f"[bold]{result.code}[/bold] {result.label}")


@app.command("customers")
def customers_command():
    """Show every customer with its record count."""
    store = _store()
    try:
        documents = store.list(sort=None, projection=Projection(["customerName"]))
    except (UpstreamError, UpstreamUnavailable) as exc:
        _fail(exc)
    summaries = summarize_customers(documents)
    table = Table(title=f"{len(summaries)} customer(s)")
    table.add_column("Customer")
    table.add_column("Records", justify="right")
    for summary in summaries:
        table.add_row(summary.customer_name, str(summary.count))
    console.print(table)


@app.command("items")
def items_command(
    customer: Optional[str] = typer.Option(None, "--customer", "-c", help="Exact customer name."),
    category: Optional[str] = typer.Option(None, "--category", help="Exact category."),
    json_out: Optional[Path] = typer.Option(
        None, "--json", help="Write the records as JSON to this path."
    ),
):
    """List records, newest first."""
    store = _store()
    try:
        items = store.list(StoreFilter.exact(customerName=customer, category=category))
    except (UpstreamError, UpstreamUnavailable) as exc:
        _fail(exc)
    if json_out:
        json_out.write_text(
            json.dumps(items, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        rprint(f"[cyan]Wrote {len(items)} record(s) to {json_out}[/cyan]")
        return
    console.print(_items_table(items))


def main():
    app()


if __name__ == "__main__":
    main()
