"""
CLI entry point for flashbrain.
"""

# Standard library imports
import logging
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional

# Third-party imports
import typer
import uvicorn
from rich.console import Console
from rich.table import Table

# Local application imports
from flashbrain.api import create_app
from flashbrain.cli.client import ApiClient, ApiError
from flashbrain.cli.study_ui import start_study_flow
from flashbrain.config import get_settings
from flashbrain.constants import (
    AUTO_PLAY_INTERVALS,
    CARD_STYLES,
    CATEGORY_COLORS,
    DEFAULT_MAX_GENERATED_CARDS,
    FOLDER_COLORS,
)
from flashbrain.schemas import (
    CategoryCreate,
    CategoryUpdate,
    FieldError,
    FlashcardCreate,
    FlashcardUpdate,
    FolderCreate,
    FolderUpdate,
    GenerateRequest,
    validate_payload,
)
from flashbrain.session_manager import summarize_day

console = Console()

app = typer.Typer(
    name="flashbrain",
    help="Flashbrain: flashcard study server and terminal client.",
    add_completion=False,
    rich_markup_mode="markdown",
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

_api_url_option = typer.Option(  # noqa: B008
    None,
    "--api-url",
    help="Base URL of the flashbrain API. Falls back to FLASHBRAIN_API_URL.",
    envvar="FLASHBRAIN_API_URL",
)

_yes_option = typer.Option(
    False, "--yes", "-y", help="Bypass confirmation prompt."
)


def _api_client(api_url: Optional[str]) -> ApiClient:
    """Client for `api_url`, or the configured default."""
    return ApiClient(api_url or get_settings().api_url)


def _print_field_errors(errors: List[FieldError]) -> None:
    for error in errors:
        field = error.field or "request"
        console.print(f"- [yellow]{field}[/yellow]: {error.message}")


def _fail(e: ApiError) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {e}")
    _print_field_errors(e.errors)
    raise typer.Exit(code=1) from e


def _validated(model_cls, data: Dict[str, Any]):
    """Validate CLI input locally before it is sent; exits on bad input."""
    result = validate_payload(model_cls, data)
    if isinstance(result, list):
        console.print("[bold red]Invalid input:[/bold red]")
        _print_field_errors(result)
        raise typer.Exit(code=1)
    return result


_FOLDER_PALETTE = {color: color for color in FOLDER_COLORS}
_CARD_PALETTE = {style: style for style in CARD_STYLES}


def _palette_help(palette: Dict[str, str]) -> str:
    return f"One of {', '.join(palette)} or any other color value."


def _from_palette(value: Optional[str], palette: Dict[str, str]) -> Optional[str]:
    """Map a palette name, in any case, to its value. Other values pass through."""
    if value is None:
        return None
    by_name = {name.lower(): color for name, color in palette.items()}
    return by_name.get(value.strip().lower(), value)


def _confirm_or_exit(yes: bool, question: str) -> None:
    if not yes and not typer.confirm(question):
        console.print("Operation cancelled.")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Serve
# ---------------------------------------------------------------------------


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port."),
):
    """Run the REST API. All data lives in memory and is lost on exit."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    host = host or settings.host
    port = port or settings.port
    console.print(f"Serving flashbrain API on [cyan]http://{host}:{port}[/cyan]")
    uvicorn.run(
        create_app(settings=settings),
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

categories_app = typer.Typer(name="categories", help="Manage categories.")
app.add_typer(categories_app)


@categories_app.command("list")
def categories_list(api_url: Optional[str] = _api_url_option):
    """List all categories."""
    try:
        with _api_client(api_url) as client:
            categories = client.list_categories()
    except ApiError as e:
        _fail(e)

    if not categories:
        console.print("[yellow]No categories yet.[/yellow]")
        return
    table = Table(title="Categories")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Color")
    for category in categories:
        table.add_row(str(category.id), category.name, category.color)
    console.print(table)


@categories_app.command("add")
def categories_add(
    name: str = typer.Argument(..., help="Category name."),
    color: Optional[str] = typer.Option(
        None, "--color", help=_palette_help(CATEGORY_COLORS)
    ),
    api_url: Optional[str] = _api_url_option,
):
    """Create a category."""
    color = _from_palette(color, CATEGORY_COLORS)
    payload = _validated(CategoryCreate, {"name": name, "color": color})
    try:
        with _api_client(api_url) as client:
            category = client.create_category(payload)
    except ApiError as e:
        _fail(e)
    console.print(
        f"[green]Created category[/green] [bold]{category.name}[/bold] (id {category.id})"
    )


@categories_app.command("rename")
def categories_rename(
    category_id: int = typer.Argument(..., help="Category id."),
    name: Optional[str] = typer.Argument(None, help="New name."),
    color: Optional[str] = typer.Option(
        None, "--color", help=_palette_help(CATEGORY_COLORS)
    ),
    api_url: Optional[str] = _api_url_option,
):
    """Rename and/or recolor a category."""
    color = _from_palette(color, CATEGORY_COLORS)
    changes = {k: v for k, v in {"name": name, "color": color}.items() if v is not None}
    payload = _validated(CategoryUpdate, changes)
    try:
        with _api_client(api_url) as client:
            category = client.update_category(category_id, payload)
    except ApiError as e:
        _fail(e)
    console.print(f"[green]Updated category[/green] [bold]{category.name}[/bold]")


@categories_app.command("delete")
def categories_delete(
    category_id: int = typer.Argument(..., help="Category id."),
    yes: bool = _yes_option,
    api_url: Optional[str] = _api_url_option,
):
    """Delete a category with all of its folders and flashcards."""
    _confirm_or_exit(
        yes,
        f"Delete category {category_id} with all of its folders and flashcards?",
    )
    try:
        with _api_client(api_url) as client:
            client.delete_category(category_id)
    except ApiError as e:
        _fail(e)
    console.print(f"[green]Deleted category {category_id}.[/green]")


# ---------------------------------------------------------------------------
# Folders
# ---------------------------------------------------------------------------

folders_app = typer.Typer(name="folders", help="Manage folders.")
app.add_typer(folders_app)


@folders_app.command("list")
def folders_list(
    category_id: Optional[int] = typer.Argument(
        None, help="Category id. Lists every folder when omitted."
    ),
    api_url: Optional[str] = _api_url_option,
):
    """List the folders of a category."""
    try:
        with _api_client(api_url) as client:
            if category_id is None:
                folders = client.list_all_folders()
            else:
                folders = client.list_folders(category_id)
    except ApiError as e:
        _fail(e)

    if not folders:
        console.print("[yellow]No folders found.[/yellow]")
        return
    table = Table(title="Folders")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Category", style="yellow")
    table.add_column("Color")
    for folder in folders:
        table.add_row(str(folder.id), folder.name, str(folder.category_id), folder.color)
    console.print(table)


@folders_app.command("add")
def folders_add(
    name: str = typer.Argument(..., help="Folder name."),
    category_id: int = typer.Option(..., "--category", "-c", help="Category id."),
    color: Optional[str] = typer.Option(
        None, "--color", help=_palette_help(_FOLDER_PALETTE)
    ),
    api_url: Optional[str] = _api_url_option,
):
    """Create a folder in a category."""
    payload = _validated(
        FolderCreate, {
            "name": name,
            "category_id": category_id,
            "color": _from_palette(color, _FOLDER_PALETTE),
        }
    )
    try:
        with _api_client(api_url) as client:
            folder = client.create_folder(payload)
    except ApiError as e:
        _fail(e)
    console.print(
        f"[green]Created folder[/green] [bold]{folder.name}[/bold] (id {folder.id})"
    )


@folders_app.command("rename")
def folders_rename(
    folder_id: int = typer.Argument(..., help="Folder id."),
    name: Optional[str] = typer.Argument(None, help="New name."),
    color: Optional[str] = typer.Option(
        None, "--color", help=_palette_help(_FOLDER_PALETTE)
    ),
    category_id: Optional[int] = typer.Option(
        None, "--category", "-c", help="Move to another category."
    ),
    api_url: Optional[str] = _api_url_option,
):
    """Rename, recolor or move a folder."""
    candidate = {
        "name": name,
        "color": _from_palette(color, _FOLDER_PALETTE),
        "category_id": category_id,
    }
    changes = {k: v for k, v in candidate.items() if v is not None}
    payload = _validated(FolderUpdate, changes)
    try:
        with _api_client(api_url) as client:
            folder = client.update_folder(folder_id, payload)
    except ApiError as e:
        _fail(e)
    console.print(f"[green]Updated folder[/green] [bold]{folder.name}[/bold]")


@folders_app.command("delete")
def folders_delete(
    folder_id: int = typer.Argument(..., help="Folder id."),
    yes: bool = _yes_option,
    api_url: Optional[str] = _api_url_option,
):
    """Delete a folder and its flashcards."""
    _confirm_or_exit(yes, f"Delete folder {folder_id} and its flashcards?")
    try:
        with _api_client(api_url) as client:
            client.delete_folder(folder_id)
    except ApiError as e:
        _fail(e)
    console.print(f"[green]Deleted folder {folder_id}.[/green]")


# ---------------------------------------------------------------------------
# Flashcards
# ---------------------------------------------------------------------------

cards_app = typer.Typer(name="cards", help="Manage flashcards.")
app.add_typer(cards_app)


@cards_app.command("list")
def cards_list(
    folder_id: int = typer.Argument(..., help="Folder id."),
    api_url: Optional[str] = _api_url_option,
):
    """List the flashcards of a folder."""
    try:
        with _api_client(api_url) as client:
            cards = client.list_flashcards(folder_id)
    except ApiError as e:
        _fail(e)

    if not cards:
        console.print("[yellow]No flashcards in this folder.[/yellow]")
        return
    table = Table(title=f"Flashcards in folder {folder_id}")
    table.add_column("ID", style="cyan")
    table.add_column("Question", style="magenta")
    table.add_column("Answer", style="green")
    table.add_column("Style")
    for card in cards:
        table.add_row(str(card.id), card.question, card.answer, card.card_style)
    console.print(table)


@cards_app.command("add")
def cards_add(
    folder_id: int = typer.Argument(..., help="Folder id."),
    question: str = typer.Option(..., "--question", "-q", help="Question side."),
    answer: str = typer.Option(..., "--answer", "-a", help="Answer side."),
    style: Optional[str] = typer.Option(
        None, "--style", help=_palette_help(_CARD_PALETTE)
    ),
    api_url: Optional[str] = _api_url_option,
):
    """Add a flashcard to a folder."""
    payload = _validated(
        FlashcardCreate,
        {
            "question": question,
            "answer": answer,
            "folder_id": folder_id,
            "card_style": _from_palette(style, _CARD_PALETTE),
        },
    )
    try:
        with _api_client(api_url) as client:
            card = client.create_flashcard(payload)
    except ApiError as e:
        _fail(e)
    console.print(f"[green]Created flashcard {card.id}.[/green]")


@cards_app.command("edit")
def cards_edit(
    flashcard_id: int = typer.Argument(..., help="Flashcard id."),
    question: Optional[str] = typer.Option(None, "--question", "-q"),
    answer: Optional[str] = typer.Option(None, "--answer", "-a"),
    style: Optional[str] = typer.Option(
        None, "--style", help=_palette_help(_CARD_PALETTE)
    ),
    folder_id: Optional[int] = typer.Option(
        None, "--folder", "-f", help="Move to another folder."
    ),
    api_url: Optional[str] = _api_url_option,
):
    """Edit some fields of a flashcard."""
    candidate = {
        "question": question,
        "answer": answer,
        "card_style": _from_palette(style, _CARD_PALETTE),
        "folder_id": folder_id,
    }
    changes = {k: v for k, v in candidate.items() if v is not None}
    payload = _validated(FlashcardUpdate, changes)
    try:
        with _api_client(api_url) as client:
            card = client.update_flashcard(flashcard_id, payload)
    except ApiError as e:
        _fail(e)
    console.print(f"[green]Updated flashcard {card.id}.[/green]")


@cards_app.command("delete")
def cards_delete(
    flashcard_id: int = typer.Argument(..., help="Flashcard id."),
    yes: bool = _yes_option,
    api_url: Optional[str] = _api_url_option,
):
    """Delete a flashcard."""
    _confirm_or_exit(yes, f"Delete flashcard {flashcard_id}?")
    try:
        with _api_client(api_url) as client:
            client.delete_flashcard(flashcard_id)
    except ApiError as e:
        _fail(e)
    console.print(f"[green]Deleted flashcard {flashcard_id}.[/green]")


# ---------------------------------------------------------------------------
# AI generation
# ---------------------------------------------------------------------------


@app.command()
def generate(
    folder_id: int = typer.Argument(..., help="Folder to add the cards to."),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Study material."),
    file: Optional[Path] = typer.Option(  # noqa: B008
        None,
        "--file",
        help="Read the study material from a text file.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    max_cards: int = typer.Option(
        DEFAULT_MAX_GENERATED_CARDS, "--max-cards", help="Upper bound asked of the model."
    ),
    api_url: Optional[str] = _api_url_option,
):
    """Generate flashcards from study material with AI."""
    if (text is None) == (file is None):
        console.print("[bold red]Error: pass exactly one of --text or --file.[/bold red]")
        raise typer.Exit(code=1)
    material = text if text is not None else file.read_text(encoding="utf-8")
    payload = _validated(
        GenerateRequest,
        {"text": material, "folder_id": folder_id, "max_cards": max_cards},
    )

    console.print("[cyan]Generating flashcards...[/cyan]")
    try:
        with _api_client(api_url) as client:
            result = client.generate_flashcards(payload)
    except ApiError as e:
        _fail(e)

    console.print(f"[bold green]{result.message}[/bold green]")
    for card in result.flashcards:
        console.print(f"- [magenta]{card.question}[/magenta] -> {card.answer}")


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------


@app.command()
def study(
    folder_id: int = typer.Argument(..., help="Folder to study."),
    auto: Optional[int] = typer.Option(
        None, "--auto", help="Start auto-play with this interval (3, 5 or 10 s)."
    ),
    api_url: Optional[str] = _api_url_option,
):
    """Study a folder card by card; the session is recorded on finish."""
    if auto is not None and auto not in AUTO_PLAY_INTERVALS:
        options = ", ".join(str(i) for i in AUTO_PLAY_INTERVALS)
        console.print(f"[bold red]Error: --auto must be one of {options}.[/bold red]")
        raise typer.Exit(code=1)
    try:
        with _api_client(api_url) as client:
            folder = client.get_folder(folder_id)
            cards = client.list_flashcards(folder_id)
            start_study_flow(folder, cards, client, auto_play=auto)
    except ApiError as e:
        _fail(e)


@app.command()
def history(
    folder_id: int = typer.Argument(..., help="Folder id."),
    api_url: Optional[str] = _api_url_option,
):
    """Show the recorded study sessions of a folder."""
    try:
        with _api_client(api_url) as client:
            sessions = client.list_study_sessions(folder_id)
    except ApiError as e:
        _fail(e)

    if not sessions:
        console.print("[yellow]No study sessions recorded for this folder.[/yellow]")
        return
    table = Table(title=f"Study sessions for folder {folder_id}")
    table.add_column("When", style="cyan")
    table.add_column("Cards", style="magenta")
    table.add_column("Minutes", style="yellow")
    table.add_column("Accuracy", style="green")
    for session in sessions:
        table.add_row(
            session.created_at.astimezone().strftime("%Y-%m-%d %H:%M"),
            f"{session.completed_cards}/{session.total_cards}",
            str(session.duration_minutes),
            f"{session.accuracy}%",
        )
    console.print(table)


@app.command()
def today(api_url: Optional[str] = _api_url_option):
    """Show library totals and what was studied today."""
    try:
        with _api_client(api_url) as client:
            folders = client.list_all_folders()
            total_cards = 0
            sessions = []
            for folder in folders:
                total_cards += len(client.list_flashcards(folder.id))
                sessions.extend(client.list_study_sessions(folder.id))
    except ApiError as e:
        _fail(e)

    summary = summarize_day(sessions, total_folders=len(folders), total_cards=total_cards)
    table = Table(title=f"Today ({summary.day.isoformat()})", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Total cards", str(summary.total_cards))
    table.add_row("Folders", str(summary.total_folders))
    table.add_row("Study time", f"{summary.study_minutes} min")
    table.add_row("Cards studied", str(summary.cards_studied))
    console.print(table)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """
    Run the CLI application, turning any unexpected exception into exit
    status 1.
    """
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {e}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
