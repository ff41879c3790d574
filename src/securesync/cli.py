"""CLI for securesync."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Prompt
from rich.table import Table

from .config import SyncConfig, TransportConfig, load_config, resolve_key, save_config
from .context import ProjectContext
from .core import ChangeRecord, ConflictDecision
from .crypto import generate_key
from .errors import SyncError, WorkspaceNotFoundError
from .resolution import InteractiveResolutionPolicy
from .sync import SyncService
from .transport.factory import make_transport
from .utils import format_ms, humanize_age, humanize_size


app = typer.Typer(help="""\
End-to-end encrypted directory sync with branches and conflict
detection. Everything that leaves this machine is AES-256 encrypted.""")

branch_app = typer.Typer(help="List, create and switch branches")
app.add_typer(branch_app, name="branch")

console = Console()

KEY_HELP = "Encryption key (64 hex chars); defaults to $SECURESYNC_KEY"

_DECISIONS = {
    "l": ConflictDecision.KEEP_LOCAL,
    "r": ConflictDecision.KEEP_REMOTE,
    "b": ConflictDecision.KEEP_BOTH,
    "a": ConflictDecision.ABORT,
}


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """securesync command line."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


def require_project_context() -> ProjectContext:
    """Ensure the workspace is initialized and return its context.

    Raises:
        typer.Exit: If not inside a workspace
    """
    try:
        return ProjectContext()
    except WorkspaceNotFoundError as e:
        console.print(f"[red]✗[/red] {e}")
        console.print()
        console.print("To start syncing this directory, run:")
        console.print("  [cyan]securesync init --remote <dir>[/cyan]")
        raise typer.Exit(1)


def _require_key(key: Optional[str]) -> str:
    try:
        return resolve_key(key)
    except SyncError as e:
        console.print(f"[red]✗[/red] {e}")
        console.print("[dim]Hint: generate one with `securesync keygen` and export SECURESYNC_KEY[/dim]")
        raise typer.Exit(1)


def ask_conflict(record: ChangeRecord) -> ConflictDecision:
    """Ask the user what to do with one conflicting path."""
    console.print(f"\n[yellow]Conflict:[/yellow] {record.path} ({record.change_kind.value})")
    if record.local_timestamp:
        console.print(f"  local  modified {format_ms(record.local_timestamp)}")
    if record.remote_timestamp:
        console.print(f"  remote modified {format_ms(record.remote_timestamp)}")
    answer = Prompt.ask(
        "Keep [bold]l[/bold]ocal, [bold]r[/bold]emote, [bold]b[/bold]oth, or [bold]a[/bold]bort",
        choices=list(_DECISIONS),
        default="b",
        console=console,
    )
    return _DECISIONS[answer]


def _make_service(ctx: ProjectContext, interactive: bool = False) -> SyncService:
    config = load_config(ctx)
    strategy = None
    if interactive or config.resolution == "interactive":
        strategy = InteractiveResolutionPolicy(ask_conflict)
    return SyncService(ctx, config, transport=make_transport(config, ctx), strategy=strategy)


@app.command()
def init(
    path: Optional[str] = typer.Argument(None, help="Directory to sync (default: current directory)"),
    remote: Optional[str] = typer.Option(None, "--remote", "-r", help="Shared directory used as the remote"),
    branch: str = typer.Option("main", "--branch", "-b", help="Default branch"),
    key: Optional[str] = typer.Option(None, "--key", help=KEY_HELP),
):
    """Initialize sync for a directory.

    If the remote already holds a repository, it is cloned and merged into the
    directory; otherwise the directory becomes the first snapshot.

    Examples:
        securesync init --remote /mnt/share/notes
        securesync init ~/notes --remote /mnt/share/notes --branch work
    """
    key = _require_key(key)
    target_dir = Path(path).resolve() if path else Path.cwd()
    if not target_dir.exists():
        target_dir.mkdir(parents=True)
        console.print(f"[green]✓[/green] Created directory: {target_dir}")

    try:
        if ProjectContext.is_initialized(target_dir):
            ctx = ProjectContext(target_dir)
            config = load_config(ctx)
        else:
            ctx = ProjectContext.init(target_dir)
            config = SyncConfig(default_branch=branch)
        if remote:
            config.transport = TransportConfig(provider="directory", location=remote)
        save_config(config, ctx)

        service = SyncService(ctx, config, transport=make_transport(config, ctx))
        result = service.initialize(key)
    except SyncError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Initialized {target_dir} on branch '{result.branch}'")
    console.print(f"[dim]{result.summary()}[/dim]")
    if not config.transport.provider:
        console.print("[dim]No remote configured; snapshots stay local (use --remote to add one)[/dim]")


@app.command()
def sync(
    key: Optional[str] = typer.Option(None, "--key", help=KEY_HELP),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Ask before discarding local edits"),
):
    """Sync the workspace with the remote.

    Local changes are stored as a new snapshot; remote changes are applied to
    the workspace. Conflicting local edits are kept under conflict-local/.
    """
    key = _require_key(key)
    ctx = require_project_context()
    try:
        result = _make_service(ctx, interactive).sync(key)
    except SyncError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    if result.aborted:
        console.print("[yellow]⚠[/yellow] Sync aborted; nothing was committed")
        raise typer.Exit(1)

    if result.resolution and result.resolution.quarantined:
        console.print("[yellow]Conflict copies:[/yellow]")
        for path, copy in sorted(result.resolution.quarantined.items()):
            console.print(f"  {path} → {copy}")

    mark = "[green]✓[/green]" if result.updated else "[dim]·[/dim]"
    console.print(f"{mark} {result.summary()}")


@app.command()
def status():
    """Show local changes since the last sync."""
    ctx = require_project_context()
    try:
        summary = _make_service(ctx).status()
    except SyncError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    console.print(f"On branch [bold]{summary.branch}[/bold]")
    if not summary.is_initialized:
        console.print("[dim]Not synced yet[/dim]")
    console.print(
        f"[dim]{summary.total_tracked} files, {humanize_size(summary.total_size)}[/dim]"
    )

    if not summary.has_changes:
        console.print("[green]✓[/green] No local changes")
        return

    for path in summary.added:
        console.print(f"  [green]+[/green] {path}")
    for path in summary.modified:
        console.print(f"  [yellow]M[/yellow] {path}")
    for path in summary.deleted:
        console.print(f"  [red]-[/red] {path}")


@app.command()
def history(
    key: Optional[str] = typer.Option(None, "--key", help=KEY_HELP),
    limit: int = typer.Option(30, "--limit", "-n", help="Number of snapshots to show"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Only the first-parent chain of a branch"),
):
    """Show snapshot history, newest first."""
    key = _require_key(key)
    ctx = require_project_context()
    try:
        service = _make_service(ctx)
        if branch:
            snapshots = service.branch_history(key, branch)[:limit]
        else:
            snapshots = service.history(key).recent(limit)
    except SyncError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    if not snapshots:
        console.print("[dim]No snapshots yet[/dim]")
        return

    table = Table(title="Snapshots")
    table.add_column("Id", style="cyan")
    table.add_column("Created")
    table.add_column("Files", justify="right")
    table.add_column("Parents", style="dim")
    for snap in snapshots:
        table.add_row(
            snap.id[:13],
            humanize_age(snap.created_at),
            str(len(snap.live_files())),
            ", ".join(p[:13] for p in snap.parent_ids) or "-",
        )
    console.print(table)


@app.command()
def restore(
    path: str = typer.Argument(..., help="Workspace-relative file path"),
    snapshot: str = typer.Option(..., "--snapshot", "-s", help="Snapshot id to restore from"),
    key: Optional[str] = typer.Option(None, "--key", help=KEY_HELP),
):
    """Restore one file as recorded in a snapshot."""
    key = _require_key(key)
    ctx = require_project_context()
    try:
        written = _make_service(ctx).restore_file(ctx.resolve(path), snapshot, key)
    except (SyncError, ValueError) as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)
    if written:
        console.print(f"[green]✓[/green] Restored {path}")
    else:
        console.print(f"[dim]{path} already matches the snapshot[/dim]")


@app.command()
def keygen():
    """Print a new random encryption key."""
    console.print(generate_key(), highlight=False)


@branch_app.command(name="list")
def branch_list():
    """List branches; the current one is marked."""
    ctx = require_project_context()
    service = _make_service(ctx)
    current = service.current_branch()
    branches = service.list_branches()
    if not branches:
        console.print("[dim]No branches yet[/dim]")
        return
    for name in branches:
        if name == current:
            console.print(f"* [green]{name}[/green]")
        else:
            console.print(f"  {name}")


@branch_app.command(name="create")
def branch_create(
    name: str = typer.Argument(..., help="New branch name"),
    from_snapshot: Optional[str] = typer.Option(None, "--from", help="Snapshot id (default: current workspace)"),
    key: Optional[str] = typer.Option(None, "--key", help=KEY_HELP),
):
    """Create a branch at a snapshot."""
    key = _require_key(key)
    ctx = require_project_context()
    try:
        source = _make_service(ctx).create_branch(name, key, from_snapshot)
    except (SyncError, ValueError) as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Created branch '{name}' at {source[:13]}")


@branch_app.command(name="checkout")
def branch_checkout(
    name: str = typer.Argument(..., help="Branch to switch to"),
    force: bool = typer.Option(False, "--force", "-f", help="Discard unsynced local changes"),
    key: Optional[str] = typer.Option(None, "--key", help=KEY_HELP),
):
    """Switch the workspace to another branch."""
    key = _require_key(key)
    ctx = require_project_context()
    try:
        result = _make_service(ctx).checkout_branch(name, key, force=force)
    except SyncError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)
    console.print(
        f"[green]✓[/green] Switched to '{name}' "
        f"({len(result.materialized)} written, {len(result.deleted)} removed)"
    )


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
