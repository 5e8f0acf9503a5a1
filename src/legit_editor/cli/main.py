"""Main CLI interface for legit-editor."""

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import click
from git import Actor
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from legit_editor.config import CONFIG_FILE_NAME, DraftPolicy, EditorConfig, SelectionPolicy
from legit_editor.core.diff import diff_stats, diff_texts
from legit_editor.core.session import EditorSession
from legit_editor.core.store import GitVersionStore
from legit_editor.exceptions import LegitEditorError, StoreWriteError
from legit_editor.models.checkout import CheckoutState
from legit_editor.models.commit import EnrichedCommit
from legit_editor.models.diff import DiffSegment, SegmentKind

console = Console()

_SEGMENT_STYLES = {
    SegmentKind.EQUAL: "",
    SegmentKind.INSERT: "bold green",
    SegmentKind.DELETE: "red strike",
}


def get_store_or_exit(repo_dir: Path, config: EditorConfig) -> GitVersionStore:
    """Get a GitVersionStore for an existing repository or exit with an error."""
    store = GitVersionStore(
        repo_dir,
        namespace=config.namespace,
        author=Actor(config.author_name, config.author_email),
    )
    if not store.exists():
        console.print(
            "[red]No repository found. Run 'legit-editor init' first.[/red]"
        )
        raise click.Abort()
    return store


def _load_config(ctx: click.Context) -> EditorConfig:
    repo_dir: Path = ctx.obj["repo"]
    try:
        return EditorConfig.load(repo_dir / CONFIG_FILE_NAME, ctx.obj["overrides"])
    except LegitEditorError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e


def _open_session(ctx: click.Context) -> EditorSession:
    config = _load_config(ctx)
    store = get_store_or_exit(ctx.obj["repo"], config)
    return EditorSession(store, config)


def _resolve_commit(state: CheckoutState, ref: Optional[str]) -> EnrichedCommit:
    """Find a commit by oid prefix, defaulting to the head."""
    if not state.history:
        console.print("[red]Error: history is empty or unreadable[/red]")
        raise click.Abort()
    if ref is None:
        return state.history[0]

    matches = [c for c in state.history if c.oid.startswith(ref)]
    if not matches:
        console.print(f"[red]Error: unknown commit '{ref}'[/red]")
        raise click.Abort()
    if len(matches) > 1:
        console.print(f"[red]Error: ambiguous commit '{ref}'[/red]")
        raise click.Abort()
    return matches[0]


def render_segments(segments: List[DiffSegment]) -> Text:
    """Render diff segments as styled rich text."""
    text = Text()
    for segment in segments:
        text.append(segment.text, style=_SEGMENT_STYLES[segment.kind])
    return text


def _format_time(commit: EnrichedCommit) -> str:
    return commit.author.when.strftime("%Y-%m-%d %H:%M:%S %z")


@click.group()
@click.version_option(package_name="legit-editor")
@click.option(
    "--repo",
    type=click.Path(file_okay=False),
    default=".",
    help="Path to the backing repository",
)
@click.option("--branch", help="Branch to edit")
@click.option("--file", "file_name", help="Tracked document name")
@click.option("--namespace", help="Name of the hidden namespace directory")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, repo: str, branch, file_name, namespace, verbose: bool):
    """legit-editor - edit a document backed by a versioned store."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["repo"] = Path(repo).resolve()
    ctx.obj["overrides"] = {
        "branch": branch,
        "file_name": file_name,
        "namespace": namespace,
    }


@main.command()
@click.option("--content", default="Hello World", help="Seed content")
@click.option("--message", default="Initial commit", help="Seed commit message")
@click.option(
    "--selection-policy",
    type=click.Choice([p.value for p in SelectionPolicy]),
    help="Keep or move a historical selection when the head advances",
)
@click.option(
    "--draft-policy",
    type=click.Choice([p.value for p in DraftPolicy]),
    help="Reset or keep unsaved edits when the head advances",
)
@click.pass_context
def init(ctx, content: str, message: str, selection_policy, draft_policy):
    """Create a repository with seed content and write its config."""
    repo_dir: Path = ctx.obj["repo"]
    ctx.obj["overrides"].update(
        {"selection_policy": selection_policy, "draft_policy": draft_policy}
    )
    config = _load_config(ctx)
    store = GitVersionStore(
        repo_dir,
        namespace=config.namespace,
        author=Actor(config.author_name, config.author_email),
    )

    try:
        oid = store.bootstrap(
            branch=config.branch,
            file_name=config.file_name,
            content=content,
            message=message,
        )
    except StoreWriteError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e

    config.save(repo_dir / CONFIG_FILE_NAME)
    console.print(f"[green]✅ Initialized {repo_dir} at {oid[:8]}[/green]")


@main.command()
@click.option("--limit", default=20, help="Number of commits to show")
@click.pass_context
def log(ctx, limit: int):
    """Show the document history, newest first."""
    session = _open_session(ctx)
    state = asyncio.run(session.refresh())

    if not state.history:
        console.print("[yellow]No history available[/yellow]")
        return

    table = Table(title=f"{session.paths.branch}:{session.paths.file_name}")
    table.add_column("Commit", style="cyan")
    table.add_column("Message")
    table.add_column("Date")
    table.add_column("+", style="green", justify="right")
    table.add_column("-", style="red", justify="right")

    for commit in state.history[:limit]:
        stats = diff_stats(diff_texts(commit.old_content, commit.new_content))
        marker = " (head)" if commit.oid == state.head else ""
        table.add_row(
            commit.oid[:8] + marker,
            escape(commit.summary),
            _format_time(commit),
            str(stats["inserted"]),
            str(stats["deleted"]),
        )

    console.print(table)


@main.command()
@click.argument("commit_ref", required=False)
@click.pass_context
def show(ctx, commit_ref: Optional[str]):
    """Show a commit and the change it introduced (head by default)."""
    session = _open_session(ctx)
    state = asyncio.run(session.refresh())
    commit = _resolve_commit(state, commit_ref)

    header = (
        f"[bold]commit[/bold] {commit.oid}\n"
        f"[bold]Author:[/bold] {escape(commit.author.name)} <{escape(commit.author.email)}>\n"
        f"[bold]Date:[/bold]   {_format_time(commit)}\n\n"
        f"{escape(commit.message.strip())}"
    )
    console.print(Panel(header, expand=False))

    segments = session.controller.diff_for(commit.oid)
    if not any(s.is_edit for s in segments):
        console.print("[dim]No changes[/dim]")
    console.print(render_segments(segments))


@main.command()
@click.argument("commit_ref", required=False)
@click.pass_context
def cat(ctx, commit_ref: Optional[str]):
    """Print the document as stored at a commit (head by default)."""
    session = _open_session(ctx)
    state = asyncio.run(session.refresh())
    commit = _resolve_commit(state, commit_ref)
    click.echo(commit.new_content, nl=False)


@main.command()
@click.argument("text", required=False)
@click.option(
    "--from-file",
    "source",
    type=click.Path(exists=True, dir_okay=False),
    help="Read the new content from a file",
)
@click.pass_context
def save(ctx, text: Optional[str], source: Optional[str]):
    """Save new document content as a commit on the branch tip.

    Content comes from TEXT, from --from-file, or from stdin.
    """
    if text is None:
        text = Path(source).read_text(encoding="utf-8") if source else sys.stdin.read()

    session = _open_session(ctx)
    try:
        new_head = asyncio.run(_save(session, text))
    except StoreWriteError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e

    if new_head is None:
        console.print("[yellow]Nothing to save[/yellow]")
        return
    console.print(f"[green]✅ Saved as {new_head[:8]}[/green]")


async def _save(session: EditorSession, text: str) -> Optional[str]:
    state = await session.refresh()
    if not state.can_edit:
        console.print("[red]Error: the head commit is not available for editing[/red]")
        raise click.Abort()
    if text == state.effective_content:
        return None

    session.edit(text)
    await session.save()
    # The write is not assumed visible until the head read confirms it
    await session.sync()
    return session.state.head


@main.command()
@click.option("--interval", type=float, help="Seconds between head checks")
@click.option("--duration", type=float, help="Stop after this many seconds")
@click.pass_context
def watch(ctx, interval: Optional[float], duration: Optional[float]):
    """Follow the branch and report every new head."""
    if interval is not None:
        ctx.obj["overrides"]["poll_interval"] = interval
    session = _open_session(ctx)

    last_head: Optional[str] = None

    def report(state: CheckoutState) -> None:
        nonlocal last_head
        commit = state.head_commit
        if commit is None or commit.oid == last_head:
            return
        last_head = commit.oid
        stamp = datetime.now().strftime("%H:%M:%S")
        console.print(f"[dim]{stamp}[/dim] [cyan]{commit.oid[:8]}[/cyan] {escape(commit.summary)}")
        console.print(render_segments(diff_texts(commit.old_content, commit.new_content)))

    session.controller.subscribe(report)

    console.print(f"Watching {session.paths.tip} (Ctrl-C to stop)")
    try:
        asyncio.run(_watch(session, duration))
    except KeyboardInterrupt:
        pass
    console.print("Stopped")


async def _watch(session: EditorSession, duration: Optional[float]) -> None:
    async with session:
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)


if __name__ == "__main__":
    main()
