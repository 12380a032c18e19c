"""Command-line entry points for inspecting the content store."""

import json
import os
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import BaseModel
from rich import print as rprint

from .client import ContentStoreClient
from .config import get_settings
from .errors import ConfigurationError, ContentError
from .logging import setup_logging
from .models import Collection
from .normalizer import normalize
from .repository import build_repository

app = typer.Typer(help="Fetch and inspect collections from the site's content store.")


def _to_plain(value: Any) -> Any:
    """Convert records, Paths, and date-like objects into JSON-serializable primitives."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_plain(item) for item in value]
    return value


def _write_output(out_path: Path, payload: Any) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(
        json.dumps(_to_plain(payload), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


def _parse_collection(name: str) -> Collection:
    try:
        return Collection.parse(name)
    except ValueError as exc:
        choices = ", ".join(c.value for c in Collection)
        raise typer.BadParameter(f"{exc}. Choose one of: {choices}.") from exc


@app.command("show")
def show_command(
    collection: str = typer.Argument(..., help="Collection name, e.g. articles or events."),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-n", help="Only print the first N records."
    ),
    raw: bool = typer.Option(
        False, "--raw", help="Print rows exactly as the store returns them."
    ),
    out: Optional[Path] = typer.Option(
        None, "--out", "-o", help="Optional path to write the records as JSON."
    ),
):
    """
    Fetch one collection straight from the store (no cache) and print it.

    Store errors are reported and exit with code 1 instead of falling back to
    an empty collection, so broken credentials are visible here.
    """
    resolved = _parse_collection(collection)
    settings = get_settings()
    setup_logging(settings.log_level)
    try:
        with ContentStoreClient.from_settings(settings) as client:
            rows = client.fetch_collection(resolved)
    except ConfigurationError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(code=2)
    except ContentError as exc:
        rprint(f"[red]{exc.kind}: {exc}[/red]")
        raise typer.Exit(code=1)

    records = list(rows) if raw else list(normalize(resolved, rows))
    if limit is not None:
        records = records[: max(limit, 0)]

    if out:
        _write_output(out, records)
        rprint(f"[cyan]Wrote {len(records)} {resolved.value} record(s) to {out}[/cyan]")
    else:
        typer.echo(json.dumps(_to_plain(records), ensure_ascii=False, indent=2))


@app.command("check")
def check_command():
    """
    Validate configuration and fetch every collection in parallel.

    Exits with code 1 when any collection could not be fetched.
    """
    settings = get_settings()
    setup_logging(settings.log_level)
    try:
        repository = build_repository(settings)
    except ConfigurationError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(code=2)

    try:
        loaded = repository.load()
        report = repository.cache.status()
    finally:
        repository.close()
    failures = 0
    for collection, records in loaded.items():
        error = report.get(collection.value, {}).get("last_error")
        if error:
            failures += 1
            rprint(f"[red]{collection.value}: {error}[/red]")
        else:
            rprint(f"[green]{collection.value}: {len(records)} record(s)[/green]")

    rprint(
        f"[cyan]Check complete: {len(loaded) - failures} succeeded, {failures} failed.[/cyan]"
    )
    if failures:
        raise typer.Exit(code=1)


@app.command("serve")
def serve_command(
    host: str = typer.Option(os.getenv("CONTENT_HOST", "0.0.0.0"), help="Bind address."),
    port: int = typer.Option(int(os.getenv("CONTENT_PORT", "8000")), help="Bind port."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
):
    """Run the content API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "site_content.server:create_app", factory=True, host=host, port=port, reload=reload
    )


def main():
    app()


if __name__ == "__main__":
    main()
