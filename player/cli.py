import asyncio
import logging

import click
from rich.console import Console, Group
from rich.live import Live
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from shared.config import API_URL, LIKE_SYNC_INTERVAL, VERSION
from shared.constants import RECENTLY_ADDED_LIMIT
from shared.errors import ServiceError
from shared.models import RepeatMode
from .api_client import ApiClient
from .coordinator import CoordinatorSnapshot, create_coordinator
from .library import LibraryManager
from .persistence import PersistenceBridge

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _fmt_time(seconds: float) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


def _track_table(title, tracks, liked=frozenset()) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold white")
    table.add_column("Artist", style="green")
    table.add_column("Genre", style="yellow")
    table.add_column("♥", style="red")
    for t in tracks:
        table.add_row(t.id, t.title, t.artist, t.genre, "♥" if t.id in liked else "")
    return table


@click.group()
@click.version_option(version=VERSION)
@click.option('--api-url', default=API_URL, show_default=True, help='Backend base URL')
@click.option('-v', '--verbose', is_flag=True, help='Show debug logging')
@click.pass_context
def cli(ctx, api_url, verbose):
    """🎵 Revify Player"""
    _setup_logging(verbose)
    ctx.obj = ApiClient(api_url)


@cli.command(name='list')
@click.pass_obj
def list_tracks(api):
    """List songs in the catalog."""
    try:
        tracks = LibraryManager(api).list_tracks()
    except ServiceError as e:
        console.print(f"[red]Failed to load catalog: {e}[/red]")
        raise SystemExit(1)
    if not tracks:
        console.print("[yellow]Catalog is empty.[/yellow]")
        return
    liked = frozenset(PersistenceBridge().load().liked)
    console.print(_track_table(f"Catalog ({len(tracks)} songs)", tracks, liked))


@cli.command()
@click.argument('query')
@click.pass_obj
def search(api, query):
    """Search titles, artists and genres."""
    try:
        results = LibraryManager(api).search(query)
    except ServiceError as e:
        console.print(f"[red]Search failed: {e}[/red]")
        raise SystemExit(1)
    if not results:
        console.print("[yellow]No matching songs.[/yellow]")
        return
    console.print(_track_table(f"Results for '{query}'", results))


@cli.command()
@click.option('--limit', default=RECENTLY_ADDED_LIMIT, show_default=True, type=click.IntRange(1, 100))
@click.pass_obj
def recent(api, limit):
    """Show recently added songs."""
    try:
        tracks = LibraryManager(api).recently_added(limit)
    except ServiceError as e:
        console.print(f"[red]Failed to load catalog: {e}[/red]")
        raise SystemExit(1)
    console.print(_track_table("Recently added", tracks))


def _render(snapshot: CoordinatorSnapshot) -> Panel:
    track = snapshot.current_track
    if track is None:
        return Panel(Text("Nothing playing", style="dim"), title="Now Playing")

    title = Text()
    title.append(f"{'▶' if snapshot.is_playing else '⏸'} {track.title}", style="bold green")
    if track.id in snapshot.liked:
        title.append("  ♥", style="red")
    title.append(f"\n{track.artist}", style="cyan")
    title.append(f" · {track.genre}", style="yellow")

    total = snapshot.duration or 1
    percent = min(100.0, snapshot.position / total * 100)
    bar = Text()
    bar.append(f"{_fmt_time(snapshot.position)} ", style="cyan")
    bar.append("━" * int(percent / 2), style="blue")
    bar.append(" " * (50 - int(percent / 2)))
    bar.append(f" {_fmt_time(snapshot.duration)}", style="cyan")

    modes = Text(
        f"shuffle: {'on' if snapshot.shuffle_enabled else 'off'}   "
        f"repeat: {snapshot.repeat_mode.value}   "
        f"volume: {int(snapshot.volume * 100)}%   "
        f"queued: {len(snapshot.manual_queue)}",
        style="dim",
    )
    parts = [title, bar, modes]
    if snapshot.error is not None:
        parts.append(Text(f"⚠ {snapshot.error}", style="red"))
    return Panel(Group(*parts), title="Now Playing", subtitle=snapshot.user or "guest")


async def _play_session(api, query, shuffle, repeat, resume):
    try:
        from .mpv_resource import MpvResource
    except OSError:
        console.print(Panel.fit(
            "[red bold]Missing System Dependency: libmpv[/red bold]\n\n"
            "The music player requires the [cyan]libmpv[/cyan] library to work.\n\n"
            "Please install it:\n"
            "• Ubuntu/Debian: [green]sudo apt install libmpv2[/green]\n"
            "• Fedora: [green]sudo dnf install mpv-libs[/green]\n"
            "• Arch: [green]sudo pacman -S mpv[/green]",
            border_style="red"
        ))
        return

    resource = MpvResource(asyncio.get_running_loop())
    coordinator = create_coordinator(resource, api)
    try:
        session = coordinator.restore()
        try:
            await coordinator.load_catalog()
        except ServiceError as e:
            console.print(f"[red]Failed to load catalog: {e}[/red]")
            return

        if repeat:
            coordinator.queue.set_repeat_mode(RepeatMode(repeat))
        if shuffle:
            coordinator.toggle_shuffle()

        if query:
            matches = coordinator.library.search(query)
            if not matches:
                console.print("[yellow]No matching songs.[/yellow]")
                return
            for track in matches[1:]:
                coordinator.enqueue(track)
            await coordinator.play(matches[0])
        elif resume and session.current_track is not None:
            await coordinator.play(session.current_track)
        else:
            await coordinator.next()

        if session.user:
            coordinator.start_background_sync(LIKE_SYNC_INTERVAL)

        with Live(_render(coordinator.snapshot()), console=console, refresh_per_second=4) as live:
            while True:
                snapshot = coordinator.snapshot()
                live.update(_render(snapshot))
                if snapshot.no_track or (snapshot.error is not None and not snapshot.is_playing):
                    break
                await asyncio.sleep(0.25)
    finally:
        await coordinator.close()
        resource.terminate()


@cli.command()
@click.argument('query', required=False)
@click.option('--shuffle', is_flag=True, help='Start with shuffle on')
@click.option('--repeat', type=click.Choice([m.value for m in RepeatMode]), help='Repeat mode')
@click.option('--resume/--no-resume', default=True, help='Continue the last track where it stopped')
@click.pass_obj
def play(api, query, shuffle, repeat, resume):
    """Play music. Optionally filter by query. Ctrl+C stops."""
    try:
        asyncio.run(_play_session(api, query, shuffle, repeat, resume))
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")


def _start_account(api_call, username, password):
    try:
        user = api_call(username, password)
    except ServiceError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    bridge = PersistenceBridge()
    bridge.save_user(user.username)
    bridge.save_liked(user.liked_songs)
    console.print(f"[green]✓[/green] Logged in as [bold]{user.username}[/bold] "
                  f"({len(user.liked_songs)} liked, {len(user.playlists)} playlists)")


@cli.command()
@click.argument('username')
@click.password_option(confirmation_prompt=False)
@click.pass_obj
def login(api, username, password):
    """Log in and remember the account on this device."""
    _start_account(api.login, username, password)


@cli.command()
@click.argument('username')
@click.password_option()
@click.pass_obj
def register(api, username, password):
    """Create an account."""
    _start_account(api.register, username, password)


@cli.command()
def logout():
    """Forget the account. Playback position and volume are kept."""
    PersistenceBridge().clear_account()
    console.print("[green]✓[/green] Logged out")


def _require_user() -> str:
    user = PersistenceBridge().load().user
    if not user:
        console.print("[yellow]Not logged in. Run 'revify login' first.[/yellow]")
        raise SystemExit(1)
    return user


@cli.command()
@click.pass_obj
def likes(api):
    """List liked songs."""
    username = _require_user()
    try:
        user = api.get_user(username)
        library = LibraryManager(api)
        tracks = [t for t in library.list_tracks() if t.id in set(user.liked_songs)]
    except ServiceError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    PersistenceBridge().save_liked(user.liked_songs)
    if not tracks:
        console.print("[yellow]No liked songs yet.[/yellow]")
        return
    console.print(_track_table(f"Liked by {username}", tracks, frozenset(user.liked_songs)))


@cli.command()
@click.pass_obj
def playlists(api):
    """List your playlists."""
    username = _require_user()
    try:
        items = api.get_playlists(username)
    except ServiceError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    if not items:
        console.print("[yellow]No playlists yet.[/yellow]")
        return
    table = Table(title=f"Playlists of {username}")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold white")
    table.add_column("Songs", style="magenta")
    for p in items:
        table.add_row(p.id, p.name, str(len(p.songs)))
    console.print(table)


if __name__ == '__main__':
    cli()
