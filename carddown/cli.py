"""
carddown: Main CLI.

A Rich terminal interface for studying flashcards kept in text files.

Commands:
- carddown scan     - Find cards in files and update the card store
- carddown revise   - Start a revise session
- carddown audit    - List leech and orphaned cards
- carddown delete   - Remove a card from the store
- carddown stats    - Show learning statistics
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from .algorithm import ALGORITHMS, Quality, new_algorithm
from .cards import CardParser
from .config import Settings, get_settings
from .exceptions import CarddownError
from .locking import InstanceLock
from .models import CardEntry, utc_now
from .scan_index import ScanIndex
from .scheduler import LeechPolicy, SessionOptions, SessionScheduler, is_due
from .session import ReviewSession, SessionStats, make_completion
from .store import CardStore, GlobalStateStore, refresh_global_state

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="carddown",
    help="carddown: study flashcards kept in your text files",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Helpers
# =============================================================================

def _load_settings() -> Settings:
    """Load settings or exit on malformed configuration."""
    try:
        return get_settings()
    except ValidationError as e:
        console.print(f"[bold red]Invalid configuration:[/bold red]\n{e}")
        raise typer.Exit(2)


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


def _short_id(card_id: str) -> str:
    return card_id[:12]


# =============================================================================
# Display Helpers
# =============================================================================

def display_card_front(entry: CardEntry, index: int, total: int, warn_leech: bool) -> None:
    """Display the prompt of a card."""
    header = f"Card {index}/{total}  |  {entry.card.file.name}:{entry.card.line + 1}"
    if entry.card.tags:
        header += "  |  " + " ".join(f"#{t}" for t in sorted(entry.card.tags))
    if warn_leech and entry.leech:
        header += "  |  [bold yellow]leech[/bold yellow]"

    console.print(Panel(
        entry.card.prompt,
        title=header,
        title_align="left",
        border_style="yellow" if entry.leech else "cyan",
        padding=(1, 2),
    ))


def display_card_back(entry: CardEntry) -> None:
    """Display the response of a card."""
    console.print(Panel(
        "\n".join(entry.card.response),
        border_style="green",
        padding=(1, 2),
    ))


def _ask_quality() -> Quality | None:
    """Ask for a quality grade; None means quit."""
    console.print("\n[dim]Rate your recall:[/dim]")
    for quality in sorted(Quality, reverse=True):
        console.print(f"  {int(quality)} = {quality.label}")

    answer = Prompt.ask("Grade (q to quit)", choices=["0", "1", "2", "3", "4", "5", "q"])
    if answer == "q":
        return None
    return Quality(int(answer))


def _run_review(session: ReviewSession, warn_leech: bool) -> None:
    total = len(session.entries)
    while not session.done:
        entry = session.current
        console.print()
        display_card_front(entry, session.position + 1, total, warn_leech)

        reveal = Prompt.ask("[dim]Press Enter to reveal (q to quit)[/dim]", default="")
        if reveal.strip().lower() == "q":
            return
        display_card_back(entry)

        quality = _ask_quality()
        if quality is None:
            return
        session.grade(quality)

    if session.expired:
        console.print("\n[yellow]Time is up, ending session.[/yellow]")


def _display_session_summary(stats: SessionStats, cram: bool) -> None:
    """Display end-of-session summary."""
    lines = [
        "[bold]Session Complete![/bold]\n",
        f"Duration: {stats.duration_seconds / 60:.1f} minutes",
        f"Cards reviewed: {stats.reviewed}",
        f"Accuracy: {stats.accuracy_percent:.1f}%",
    ]
    if stats.new_leeches:
        lines.append(f"[yellow]New leeches: {len(stats.new_leeches)}[/yellow]")
    if cram:
        lines.append("[dim]Cram mode: nothing was saved[/dim]")

    console.print(Panel("\n".join(lines), title="Summary", border_style="green"))


# =============================================================================
# Commands
# =============================================================================

@app.command()
def scan(
    path: Path = typer.Argument(..., help="File or directory to search for cards"),
    full: bool = typer.Option(
        False,
        "--full",
        help="Parse every file and mark cards that disappeared as orphans",
    ),
    force: bool = typer.Option(False, "--force", help="Remove a stale lock file"),
) -> None:
    """Find flashcards in text files and update the card store."""
    settings = _load_settings()
    parser = CardParser(settings.file_type_list)

    try:
        with InstanceLock(settings.lock_path, force=force):
            index = ScanIndex(settings.scan_index_path).load()
            cards = parser.scan(path, index=index, full=full)
            report = CardStore(settings.cards_path).reconcile(cards, full=full)
            index.save()
    except CarddownError as e:
        _fail(e)

    console.print(f"[green]Found {len(cards)} cards[/green]")
    console.print(f"  New: {report.new}")
    console.print(f"  Updated: {report.updated}")
    if report.unorphaned:
        console.print(f"  Restored: {report.unorphaned}")
    if report.orphaned:
        console.print(f"  [yellow]Orphaned: {report.orphaned}[/yellow]")


@app.command()
def revise(
    tags: Optional[List[str]] = typer.Option(
        None,
        "--tag", "-t",
        help="Only revise cards with this tag (repeatable)",
    ),
    include_orphans: bool = typer.Option(
        False,
        "--include-orphans",
        help="Also revise cards no longer found in any file",
    ),
    cram: bool = typer.Option(
        False,
        "--cram",
        help="Ignore due dates and do not save results",
    ),
    cram_hours: Optional[int] = typer.Option(
        None,
        "--cram-hours",
        min=0,
        help="Hours since last revision for a card to be crammed",
    ),
    max_cards: Optional[int] = typer.Option(
        None,
        "--max-cards", "-n",
        min=1,
        help="Maximum cards in this session",
    ),
    max_duration: Optional[int] = typer.Option(
        None,
        "--max-duration",
        min=1,
        help="Maximum session length in minutes",
    ),
    algorithm: Optional[str] = typer.Option(
        None,
        "--algorithm", "-a",
        help=f"Spaced repetition algorithm ({', '.join(ALGORITHMS)})",
    ),
    leech_method: Optional[LeechPolicy] = typer.Option(
        None,
        "--leech-method",
        help="Skip leech cards or show them with a warning",
    ),
    force: bool = typer.Option(False, "--force", help="Remove a stale lock file"),
) -> None:
    """
    Start an interactive revise session.

    Selects due cards, shuffles them and records every grade. Results are
    saved when the session ends, including on quit, timeout or Ctrl-C.
    """
    settings = _load_settings()

    try:
        algo = new_algorithm(algorithm or settings.algorithm)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(2)

    options = SessionOptions(
        tags=set(tags or []),
        include_orphans=include_orphans,
        leech_policy=leech_method or LeechPolicy(settings.leech_method),
        cram=cram,
        cram_hours=settings.cram_hours if cram_hours is None else cram_hours,
        max_cards=settings.max_cards if max_cards is None else max_cards,
        max_duration=60 * (
            settings.max_duration_minutes if max_duration is None else max_duration
        ),
    )

    try:
        with InstanceLock(settings.lock_path, force=force):
            card_store = CardStore(settings.cards_path)
            global_store = GlobalStateStore(settings.state_path)

            db = card_store.load()
            global_state = refresh_global_state(global_store.load())
            batch = SessionScheduler(options).select(db.values())

            if not batch:
                console.print("\n[green]Nothing due for review![/green]")
                console.print("All caught up. Check back tomorrow.")
                raise typer.Exit(0)

            console.print(
                f"\n[bold]Session: {len(batch)} cards[/bold] "
                f"({algo.name}{', cram' if cram else ''})"
            )

            session = ReviewSession(
                batch,
                algo,
                global_state,
                make_completion(card_store, global_store, cram=cram),
                leech_threshold=settings.leech_threshold,
                max_duration=options.max_duration,
            )
            try:
                _run_review(session, warn_leech=options.leech_policy is LeechPolicy.WARN)
            except (KeyboardInterrupt, EOFError):
                console.print("\n\n[yellow]Session interrupted.[/yellow]")
            finally:
                stats = session.finish()
    except CarddownError as e:
        _fail(e)

    _display_session_summary(stats, cram)


@app.command()
def audit(
    leeches: bool = typer.Option(False, "--leeches", help="Only list leech cards"),
    orphans: bool = typer.Option(False, "--orphans", help="Only list orphaned cards"),
) -> None:
    """List leech and orphaned cards."""
    settings = _load_settings()
    if not leeches and not orphans:
        leeches = orphans = True

    try:
        db = CardStore(settings.cards_path).load()
    except CarddownError as e:
        _fail(e)

    flagged = [
        e for e in db.values()
        if (leeches and e.leech) or (orphans and e.orphan)
    ]
    if not flagged:
        console.print("[green]No cards need attention.[/green]")
        return

    table = Table(title="Cards needing attention")
    table.add_column("ID")
    table.add_column("Location")
    table.add_column("Prompt")
    table.add_column("Failed", justify="right")
    table.add_column("Flags")

    for entry in sorted(flagged, key=lambda e: (str(e.card.file), e.card.line)):
        flags = []
        if entry.leech:
            flags.append("[red]leech[/red]")
        if entry.orphan:
            flags.append("[yellow]orphan[/yellow]")
        table.add_row(
            _short_id(entry.id),
            f"{entry.card.file}:{entry.card.line + 1}",
            entry.card.prompt,
            str(entry.state.failed_count),
            " ".join(flags),
        )

    console.print(table)


@app.command()
def delete(
    card_id: str = typer.Argument(..., help="Card id, or a unique prefix of it"),
    force: bool = typer.Option(False, "--force", help="Remove a stale lock file"),
) -> None:
    """Remove a card from the store."""
    settings = _load_settings()
    card_id = card_id.strip()
    if not card_id:
        console.print("[bold red]Error:[/bold red] card id must not be empty")
        raise typer.Exit(1)

    try:
        with InstanceLock(settings.lock_path, force=force):
            store = CardStore(settings.cards_path)
            matches = [k for k in store.load() if k.startswith(card_id)]
            if len(matches) > 1:
                console.print(f"[bold red]Error:[/bold red] id prefix '{card_id}' is ambiguous")
                raise typer.Exit(1)
            store.delete(matches[0] if matches else card_id)
    except CarddownError as e:
        _fail(e)

    console.print(f"[green]Deleted card {card_id}[/green]")


@app.command()
def stats() -> None:
    """Show learning statistics."""
    settings = _load_settings()
    try:
        db = CardStore(settings.cards_path).load()
        global_state = GlobalStateStore(settings.state_path).load()
    except CarddownError as e:
        _fail(e)

    now = utc_now()
    entries = list(db.values())
    active = [e for e in entries if not e.orphan and not e.leech]

    console.print("\n[bold cyan]Learning Statistics[/bold cyan]")
    console.print("=" * 40)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Total cards", str(len(entries)))
    table.add_row("Due now", str(sum(1 for e in active if is_due(e, now))))
    table.add_row("Never revised", str(sum(1 for e in entries if e.last_revised is None)))
    table.add_row("Leeches", str(sum(1 for e in entries if e.leech)))
    table.add_row("Orphans", str(sum(1 for e in entries if e.orphan)))
    mean_q = f"{global_state.mean_q:.2f}" if global_state.mean_q is not None else "-"
    table.add_row("Mean quality", mean_q)
    table.add_row("Cards revised (this week)", str(global_state.total_cards_revised))
    last = global_state.last_revise_session
    table.add_row("Last session", last.strftime("%Y-%m-%d %H:%M") if last else "-")

    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point."""
    try:
        level = get_settings().log_level
    except ValidationError:
        level = "WARNING"

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<level>{message}</level>",
    )

    app()


if __name__ == "__main__":
    main()
