"""
Command-line interface for the Revify admin tool.

Uploads songs to the catalog, lists and deletes them, and runs the backend.
"""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from shared.config import API_URL, PORT, STORAGE_PROVIDER, VERSION
from shared.errors import ServiceError
from shared.models import StorageProvider
from player.api_client import ApiClient
from .provider_factory import StorageProviderFactory

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@click.group()
@click.version_option(version=VERSION)
@click.option('--api-url', default=API_URL, show_default=True, help='Backend base URL')
@click.option('-v', '--verbose', is_flag=True, help='Show debug logging')
@click.pass_context
def cli(ctx, api_url, verbose):
    """
    🎵 Revify Admin Tool

    Upload songs and manage the catalog.
    """
    _setup_logging(verbose)
    ctx.obj = ApiClient(api_url)


@cli.command()
@click.argument('paths', nargs=-1, required=True, type=click.Path(exists=True))
@click.option('--title', help='Song title (single file only)')
@click.option('--artist', help='Artist name (single file only)')
@click.option('--genre', help='Genre (single file only)')
@click.option('--cover', type=click.Path(exists=True, dir_okay=False), help='Cover image (single file only)')
@click.option('--parallel', default=2, type=click.IntRange(1, 8),
              help='Number of parallel uploads')
@click.pass_obj
def upload(api, paths, title, artist, genre, cover, parallel):
    """
    Upload songs from files or directories.

    Tags supply title, artist, genre and cover art; the default cover is used
    when a file has none.
    """
    from .uploader import SongUploader

    uploader = SongUploader(api)
    overrides = any([title, artist, genre, cover])

    if overrides:
        files = uploader.scan(paths)
        if len(files) != 1:
            console.print("[red]Error: --title/--artist/--genre/--cover need exactly one audio file[/red]")
            raise SystemExit(1)
        try:
            track = uploader.upload_song(files[0], title=title, artist=artist, genre=genre, cover_path=cover)
        except (ServiceError, OSError) as e:
            console.print(f"\n[red]❌ Upload failed: {e}[/red]")
            raise SystemExit(1)
        console.print(f"[green]✓[/green] {track.title} by {track.artist} [dim]({track.id})[/dim]")
        return

    console.print(f"\n[bold green]Starting Upload[/bold green] → [cyan]{api.base_url}[/cyan]\n")
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console
    ) as progress:
        results = uploader.run(paths, parallel=parallel, progress=progress)

    if not results:
        console.print("[yellow]No supported audio files found.[/yellow]")
        return

    for result in results:
        if result.ok:
            console.print(f"[green]✓[/green] {result.track.title} by {result.track.artist}")
        else:
            console.print(f"[red]✗[/red] {result.path.name}: {result.error}")

    uploaded = sum(1 for r in results if r.ok)
    console.print(f"\n[bold]{uploaded}/{len(results)}[/bold] songs uploaded.")
    if uploaded < len(results):
        raise SystemExit(1)


@cli.command()
@click.pass_obj
def songs(api):
    """List songs in the catalog."""
    try:
        tracks = api.list_songs()
    except ServiceError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    if not tracks:
        console.print("[yellow]Catalog is empty.[/yellow]")
        return

    table = Table(title=f"Catalog ({len(tracks)} songs)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold white")
    table.add_column("Artist", style="green")
    table.add_column("Genre", style="yellow")
    table.add_column("Added", style="magenta")

    for t in tracks:
        table.add_row(t.id, t.title, t.artist, t.genre, (t.created_at or "")[:10])

    console.print(table)


@cli.command()
@click.argument('song_id')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@click.pass_obj
def delete(api, song_id, yes):
    """Delete a song from the catalog."""
    try:
        track = api.get_song(song_id)
        if not yes and not click.confirm(f"Delete '{track.title}' by {track.artist}?"):
            return
        api.delete_song(song_id)
    except ServiceError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)
    console.print(f"[green]✓[/green] Deleted {track.title}")


@cli.command()
@click.pass_obj
def status(api):
    """Show backend and storage configuration."""
    online = api.check_status()
    song_count = "?"
    if online:
        try:
            song_count = str(len(api.list_songs()))
        except ServiceError:
            pass

    provider = StorageProviderFactory.get_provider_name(StorageProvider(STORAGE_PROVIDER))
    console.print(Panel.fit(
        f"[bold]Backend[/bold]: {api.base_url} "
        f"{'[green]online[/green]' if online else '[red]offline[/red]'}\n"
        f"[bold]Songs[/bold]: {song_count}\n"
        f"[bold]Storage provider[/bold]: {provider}",
        title=" Revify Status "
    ))


@cli.command()
@click.option('--port', default=PORT, show_default=True, help='Port to run the API on')
@click.option('--debug/--no-debug', default=False, help='Run in debug mode')
def serve(port, debug):
    """Run the REST backend."""
    from shared.api import start_api
    logging.getLogger().setLevel(logging.INFO)
    start_api(port=port, debug=debug)


if __name__ == '__main__':
    cli()
