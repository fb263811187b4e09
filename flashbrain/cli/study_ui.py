"""
Command-line interface for studying a folder of flashcards.
"""

import logging
import time
from typing import Callable, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from flashbrain.cli.client import ApiClient, ApiError
from flashbrain.constants import AUTO_PLAY_INTERVALS
from flashbrain.models import Flashcard, Folder
from flashbrain.session_manager import (
    SessionStats,
    SessionStatsHandoff,
    StudySessionManager,
)

logger = logging.getLogger(__name__)
console = Console()

_PROMPT = (
    "[bold]f[/bold]:flip [bold]n[/bold]:next [bold]p[/bold]:previous "
    "[bold]a N[/bold]:auto-play [bold]s[/bold]:pause [bold]r[/bold]:reset "
    "[bold]q[/bold]:finish > "
)

# Card style -> panel border color.
_BORDER_STYLES = {
    "yellow": "yellow",
    "pink": "magenta",
    "blue": "blue",
    "green": "green",
    "white": "bright_white",
}


def _display_card(manager: StudySessionManager[Flashcard]) -> None:
    """Show the current card: the question, or the answer once flipped."""
    card = manager.current_card
    console.rule(
        f"[bold]Card {manager.current_index + 1} of {manager.total_cards}[/bold]"
        f" [dim]({manager.progress:.0f}%)[/dim]"
    )
    border = _BORDER_STYLES.get(card.card_style, "green")
    if manager.is_flipped:
        console.print(Panel(card.answer, title="Answer", border_style=border))
    else:
        console.print(Panel(card.question, title="Question", border_style=border))
    if manager.is_auto_play:
        console.print(
            f"[dim]Auto-play every {manager.auto_play_interval:g}s[/dim]"
        )


def _parse_interval(command: str) -> Optional[int]:
    """
    Parse an "a N" command into an auto-play interval.

    A bare "a" picks the shortest interval. Returns None for anything that is
    not one of the offered intervals.
    """
    parts = command.split()
    if parts[0] != "a" or len(parts) > 2:
        return None
    if len(parts) == 1:
        return AUTO_PLAY_INTERVALS[0]
    try:
        interval = int(parts[1])
    except ValueError:
        return None
    return interval if interval in AUTO_PLAY_INTERVALS else None


def _run_auto_play(
    manager: StudySessionManager[Flashcard],
    sleep: Callable[[float], None],
) -> None:
    """
    Block while auto-play runs, redrawing after every tick.

    Stops by itself once the last card shows its answer; Ctrl+C pauses.
    """
    console.print("[dim]Auto-play running. Press Ctrl+C to pause.[/dim]")
    try:
        while manager.is_auto_play:
            sleep(manager.seconds_until_tick() or 0.0)
            if manager.poll():
                _display_card(manager)
            if manager.is_last and manager.is_flipped:
                manager.pause_auto_play()
                console.print("[cyan]Auto-play reached the last card.[/cyan]")
    except KeyboardInterrupt:
        manager.pause_auto_play()
        console.print("[yellow]Auto-play paused.[/yellow]")


def _display_summary(folder: Folder, stats: SessionStats) -> None:
    table = Table(title=f"Session complete: {folder.name}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Cards studied", f"{stats.completed_cards} of {stats.total_cards}")
    table.add_row("Time", f"{stats.duration_minutes} min {stats.duration % 60} s")
    table.add_row("Accuracy", f"{stats.accuracy}%")
    console.print(table)


def finish_session(
    folder: Folder, client: ApiClient, handoff: SessionStatsHandoff
) -> Optional[SessionStats]:
    """
    Completion view: show the pending stats for `folder` and record them.

    The stats are taken out of the handoff first, so they are shown and sent
    at most once.
    """
    stats = handoff.take(folder.id)
    if stats is None:
        console.print("[yellow]No session to record.[/yellow]")
        return None

    _display_summary(folder, stats)
    try:
        client.create_study_session(stats.to_payload(folder.id))
    except ApiError as e:
        logger.error(f"Failed to record study session for folder {folder.id}: {e}")
        console.print(f"[bold red]Could not save the study session: {e}[/bold red]")
        return stats
    console.print("[green]Study session saved.[/green]")
    return stats


def start_study_flow(
    folder: Folder,
    cards: List[Flashcard],
    client: ApiClient,
    auto_play: Optional[int] = None,
    handoff: Optional[SessionStatsHandoff] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[SessionStats]:
    """
    Runs an interactive study pass over `cards` until the user finishes.

    Args:
        folder: The folder being studied; the session is recorded against it.
        cards: Cards in study order.
        client: API client used to record the finished session.
        auto_play: Optional interval to start auto-play with.
        handoff: Carries the stats to the completion view.
        clock, sleep: Time sources, replaceable in tests.

    Returns:
        The recorded stats, or None when the folder has no cards.
    """
    if not cards:
        console.print("[bold yellow]This folder has no flashcards to study.[/bold yellow]")
        return None

    handoff = handoff if handoff is not None else SessionStatsHandoff()
    manager = StudySessionManager(cards, clock=clock)
    console.print(
        f"[bold cyan]Studying {folder.name} ({manager.total_cards} cards)[/bold cyan]"
    )
    _display_card(manager)
    if auto_play:
        manager.enable_auto_play(auto_play)
        _run_auto_play(manager, sleep)

    while True:
        command = console.input(_PROMPT).strip().lower()
        if command == "q":
            break
        if command == "f":
            manager.flip_card()
        elif command == "n":
            manager.next_card()
        elif command == "p":
            manager.previous_card()
        elif command == "s":
            manager.pause_auto_play()
            console.print("[yellow]Auto-play paused.[/yellow]")
            continue
        elif command == "r":
            manager.reset()
        elif command.startswith("a"):
            interval = _parse_interval(command)
            if interval is None:
                options = ", ".join(str(i) for i in AUTO_PLAY_INTERVALS)
                console.print(
                    f"[bold red]Auto-play interval must be one of: {options}.[/bold red]"
                )
                continue
            manager.enable_auto_play(interval)
            _run_auto_play(manager, sleep)
            continue
        else:
            console.print("[bold red]Unknown command.[/bold red]")
            continue
        _display_card(manager)

    handoff.put(folder.id, manager.compute_stats())
    return finish_session(folder, client, handoff)
