"""IWC vessel service CLI: live vessel index and multi-source vessel search.

Commands:
  serve     run the HTTP API
  init-db   create the saved-vessel tables
  stream    collect the live aisstream feed for a while and report
  search    aggregated vessel lookup by MMSI/IMO/name
  status    configuration summary
"""
from __future__ import annotations

import asyncio
import typer
from typing import Optional
from rich.console import Console
from rich.table import Table


app = typer.Typer(
    name="iwc-vessels",
    help="Live vessel index and multi-source vessel search.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Run the HTTP API (the live feed starts with it)."""
    import uvicorn

    console.print(f"API running at [cyan]http://{host}:{port}[/cyan]: press Ctrl+C to stop")
    uvicorn.run("app.main:app", host=host, port=port)


@app.command("init-db")
def init_database():
    """Create the saved-vessel tables."""
    from app.database import init_db

    try:
        with console.status("[bold]Creating database..."):
            init_db()
    except Exception as e:
        console.print(f"[red]Database setup failed: {e}[/red]")
        raise typer.Exit(1)
    console.print("[green]Database ready.[/green]")


@app.command("stream")
def stream(
    stream_time: str = typer.Option("30s", "--stream-time", help="Stream duration (e.g. 30s, 5m, 1h)"),
):
    """Stream the live feed into a fresh index and print what was collected."""
    from app.config import settings
    from app.modules.vessel_index import VesselIndex

    if not settings.AISSTREAM_API_KEY:
        console.print("[yellow]No AISSTREAM_API_KEY: live feed not configured[/yellow]")
        raise typer.Exit(1)

    index = VesselIndex()
    feed = asyncio.run(_stream_feed(index, _parse_duration(stream_time)))
    _print_feed_status(console, feed.status())


@app.command("search")
def search_vessel(
    query: str = typer.Argument(..., help="MMSI, IMO, or vessel name"),
    user_id: Optional[str] = typer.Option(None, "--user-id", help="Only this user's saved vessels"),
    stream_time: str = typer.Option("0", "--stream-time", help="Collect the live feed first (e.g. 30s)"),
):
    """Search every vessel source and print the results in priority order."""
    from app.config import settings

    trimmed = query.strip()
    if len(trimmed) < settings.SEARCH_MIN_QUERY_LENGTH:
        console.print(
            f"[red]Search query must be at least {settings.SEARCH_MIN_QUERY_LENGTH} characters[/red]"
        )
        raise typer.Exit(1)

    saved = _load_saved_vessels(user_id)
    result = asyncio.run(_run_search(trimmed, saved, _parse_duration(stream_time)))

    from app.modules.vessel_aggregator import prioritize

    vessels = prioritize(result)
    if not vessels:
        console.print("[yellow]No vessels found[/yellow]")
        return

    _print_results_table(console, vessels)
    console.print(
        f"[dim]index: {len(result.index_results)} | remote: {len(result.remote_results)} | "
        f"reference: {len(result.reference_results)} | local: {len(result.local_results)}[/dim]"
    )


@app.command("status")
def status():
    """Show which vessel sources are configured."""
    from app.config import settings
    from app.modules.reference_fleet import load_reference_vessels

    def _flag(enabled: bool) -> str:
        return "[green]configured[/green]" if enabled else "[yellow]not configured[/yellow]"

    console.print("[bold]Vessel sources[/bold]")
    console.print(f"  aisstream live feed: {_flag(bool(settings.AISSTREAM_API_KEY))}")
    console.print(f"  Marinesia profiles:  {_flag(bool(settings.MARINESIA_API_KEY))}")
    console.print(f"  Reference fleet:     {len(load_reference_vessels())} vessels")
    console.print(f"  Saved vessels:       {settings.DATABASE_URL}")

    console.print("\n[bold]Feed policy[/bold]")
    console.print(
        f"  Reconnect: up to {settings.AISSTREAM_MAX_RECONNECT_ATTEMPTS} attempts, "
        f"backoff {settings.AISSTREAM_BASE_DELAY_SECONDS:g}s doubling to "
        f"{settings.AISSTREAM_MAX_DELAY_SECONDS:g}s"
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _stream_feed(index, duration_s: int):
    """Run the feed for *duration_s* seconds (or until it gives up)."""
    from app.config import settings
    from app.modules.aisstream_client import AISStreamManager

    feed = AISStreamManager(index, api_key=settings.AISSTREAM_API_KEY)
    await feed.start()
    try:
        await asyncio.wait_for(feed.wait(), timeout=duration_s)
    except asyncio.TimeoutError:
        pass
    finally:
        await feed.stop()
    return feed


async def _run_search(query: str, saved: list, duration_s: int):
    from app.config import settings
    from app.modules.aisstream_client import AISStreamManager
    from app.modules.marinesia_client import MarinesiaClient
    from app.modules.vessel_aggregator import VesselSearchAggregator
    from app.modules.vessel_index import VesselIndex

    index = VesselIndex()
    feed = AISStreamManager(index, api_key=settings.AISSTREAM_API_KEY)
    if duration_s > 0 and feed.is_attached:
        console.print(f"[bold]Collecting live feed for {duration_s}s...[/bold]")
        feed = await _stream_feed(index, duration_s)

    marinesia = MarinesiaClient(api_key=settings.MARINESIA_API_KEY)
    try:
        aggregator = VesselSearchAggregator(index, feed=feed, remote=marinesia)
        return await aggregator.search(query, saved)
    finally:
        await marinesia.aclose()


def _load_saved_vessels(user_id: Optional[str]) -> list:
    from sqlalchemy.exc import SQLAlchemyError
    from app.database import SessionLocal
    from app.models.saved_vessel import list_saved_vessels

    db = SessionLocal()
    try:
        return list_saved_vessels(db, user_id)
    except SQLAlchemyError as e:
        console.print(f"[yellow]Saved vessels unavailable ({e.__class__.__name__}): run init-db[/yellow]")
        return []
    finally:
        db.close()


def _print_results_table(con: Console, vessels) -> None:
    table = Table(title="Vessels")
    table.add_column("Source", style="dim")
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("MMSI", style="cyan", no_wrap=True)
    table.add_column("IMO")
    table.add_column("Type")
    table.add_column("Flag")
    table.add_column("LOA", justify="right")
    for v in vessels:
        table.add_row(
            v.source.value, v.name, v.mmsi, v.imo, v.vessel_type, v.flag,
            f"{v.length:g}" if isinstance(v.length, float) else v.length,
        )
    con.print(table)


def _print_feed_status(con: Console, feed_status) -> None:
    color = "green" if feed_status.total_vessels else "yellow"
    con.print("[bold]Live feed[/bold]")
    con.print(f"  Connection: {feed_status.connection_status}")
    con.print(f"  Vessels indexed: [{color}]{feed_status.total_vessels:,}[/{color}]")
    con.print(f"  Messages: {feed_status.message_count:,}")
    if feed_status.last_update:
        con.print(f"  Last update: {feed_status.last_update:%Y-%m-%d %H:%M:%S} UTC")


def _parse_duration(s: str) -> int:
    """Parse duration string (30s, 5m, 1h) to seconds."""
    s = s.strip().lower()
    if s == "0":
        return 0
    if s.endswith("s"):
        return int(s[:-1])
    if s.endswith("m"):
        return int(s[:-1]) * 60
    if s.endswith("h"):
        return int(s[:-1]) * 3600
    try:
        return int(s)
    except ValueError:
        return 300
