# Standard library imports
import re
from unittest.mock import patch

# Third-party imports
import httpx
import pytest
from fastapi.testclient import TestClient
from typer.testing import CliRunner

# Local application imports
from flashbrain.api import create_app
from flashbrain.cli.client import ApiClient
from flashbrain.cli.main import app
from flashbrain.constants import CATEGORY_COLORS
from flashbrain.schemas import StudySessionCreate


runner = CliRunner()


def normalize_output(text: str) -> str:
    """
    Strip ANSI codes and table borders, then collapse whitespace, so wrapped
    rich output can be matched.
    """
    text = re.sub(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])", "", text)
    text = re.sub(r"[─-╿]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


@pytest.fixture
def api(store, settings, generator):
    """
    Point every CLI command at an in-process app bound to the test store.

    Each command gets its own TestClient because ApiClient closes its HTTP
    client on exit.
    """
    application = create_app(store=store, settings=settings, generator=generator)

    def factory(api_url):
        return ApiClient("http://testserver", http_client=TestClient(application))

    with patch("flashbrain.cli.main._api_client", side_effect=factory):
        yield application


def invoke(*args, input=None):
    result = runner.invoke(app, list(args), input=input)
    return result, normalize_output(result.stdout)


# --- Categories ---


class TestCategoriesCommands:
    def test_add_and_list(self, api, store):
        result, out = invoke("categories", "add", "Biology")
        assert result.exit_code == 0, out
        assert "Created category Biology (id 1)" in out
        assert [c.name for c in store.get_categories()] == ["Biology"]

        result, out = invoke("categories", "list")
        assert result.exit_code == 0
        assert "Biology" in out

    def test_list_empty(self, api):
        result, out = invoke("categories", "list")
        assert result.exit_code == 0
        assert "No categories yet." in out

    def test_add_with_empty_name_is_rejected_locally(self, api, store):
        result, out = invoke("categories", "add", "")
        assert result.exit_code == 1
        assert "Invalid input" in out
        assert "name" in out
        assert store.get_categories() == []

    def test_rename(self, api, category, store):
        result, out = invoke("categories", "rename", str(category.id), "Life", "--color", "blue")
        assert result.exit_code == 0, out
        updated = store.get_category(category.id)
        assert (updated.name, updated.color) == ("Life", CATEGORY_COLORS["Blue"])

    def test_add_with_palette_name(self, api, store):
        result, out = invoke("categories", "add", "Chemistry", "--color", "purple")
        assert result.exit_code == 0, out
        assert store.get_categories()[0].color == "hsl(263, 85%, 68%)"

    def test_add_with_custom_color_passes_through(self, api, store):
        result, out = invoke("categories", "add", "Physics", "--color", "#ff8800")
        assert result.exit_code == 0, out
        assert store.get_categories()[0].color == "#ff8800"

    def test_add_help_lists_palette(self):
        result = runner.invoke(app, ["categories", "add", "--help"])
        out = normalize_output(result.stdout)
        assert "Purple, Blue, Green, Yellow, Pink, Orange" in out

    def test_delete_with_yes(self, api, category, folder, cards, store):
        result, out = invoke("categories", "delete", str(category.id), "--yes")
        assert result.exit_code == 0, out
        assert store.get_categories() == []
        assert store.get_flashcards_by_folder(folder.id) == []

    def test_delete_cancelled(self, api, category, store):
        result, out = invoke("categories", "delete", str(category.id), input="n\n")
        assert result.exit_code == 0
        assert "Operation cancelled." in out
        assert store.get_categories() == [category]

    def test_delete_missing_reports_not_found(self, api):
        result, out = invoke("categories", "delete", "9", "--yes")
        assert result.exit_code == 1
        assert "[404] Category with id 9 not found" in out


# --- Folders ---


class TestFoldersCommands:
    def test_add_and_list(self, api, category, store):
        result, out = invoke("folders", "add", "Genes", "--category", str(category.id))
        assert result.exit_code == 0, out
        assert "Created folder Genes" in out

        result, out = invoke("folders", "list", str(category.id))
        assert result.exit_code == 0
        assert "Genes" in out

    def test_list_all_folders(self, api, store, folder):
        result, out = invoke("folders", "list")
        assert result.exit_code == 0
        assert folder.name in out

    def test_add_to_missing_category(self, api):
        result, out = invoke("folders", "add", "Orphan", "-c", "42")
        assert result.exit_code == 1
        assert "Category with id 42 not found" in out

    def test_rename(self, api, folder, store):
        result, out = invoke(
            "folders", "rename", str(folder.id), "Organelles", "--color", "PINK"
        )
        assert result.exit_code == 0, out
        renamed = store.get_folder(folder.id)
        assert (renamed.name, renamed.color) == ("Organelles", "pink")

    def test_delete(self, api, folder, cards, store):
        result, out = invoke("folders", "delete", str(folder.id), "-y")
        assert result.exit_code == 0, out
        assert store.get_flashcards_by_folder(folder.id) == []


# --- Flashcards ---


class TestCardsCommands:
    def test_add_list_edit_delete(self, api, folder, store):
        result, out = invoke(
            "cards", "add", str(folder.id), "-q", "What is ATP?", "-a", "Energy", "--style", "Pink"
        )
        assert result.exit_code == 0, out
        card = store.get_flashcards_by_folder(folder.id)[0]
        assert card.card_style == "pink"

        result, out = invoke("cards", "list", str(folder.id))
        assert "What is ATP?" in out

        result, out = invoke("cards", "edit", str(card.id), "--answer", "Energy currency")
        assert result.exit_code == 0, out
        edited = store.get_flashcard(card.id)
        assert edited.answer == "Energy currency"
        assert edited.question == "What is ATP?"

        result, out = invoke("cards", "delete", str(card.id), "--yes")
        assert result.exit_code == 0, out
        assert store.get_flashcards_by_folder(folder.id) == []

    def test_list_empty_folder(self, api, folder):
        result, out = invoke("cards", "list", str(folder.id))
        assert result.exit_code == 0
        assert "No flashcards in this folder." in out


# --- Generate ---


class TestGenerateCommand:
    def test_generate_from_text(self, api, folder, completion_api, store):
        completion_api.content = 'Cards: [{"question": "Q1", "answer": "A1"}]'
        result, out = invoke("generate", str(folder.id), "--text", "Notes on cells")
        assert result.exit_code == 0, out
        assert "Generated 1 flashcards" in out
        assert "Q1 -> A1" in out
        assert len(store.get_flashcards_by_folder(folder.id)) == 1

    def test_generate_from_file(self, api, folder, completion_api, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("Ribosomes make proteins.", encoding="utf-8")
        completion_api.content = '[{"question": "Q", "answer": "A"}]'
        result, out = invoke("generate", str(folder.id), "--file", str(notes))
        assert result.exit_code == 0, out
        assert "Ribosomes make proteins." in completion_api.requests[0].content.decode()

    def test_requires_exactly_one_source(self, api, folder):
        result, out = invoke("generate", str(folder.id))
        assert result.exit_code == 1
        assert "exactly one of --text or --file" in out

    def test_upstream_failure(self, api, folder, completion_api):
        completion_api.status_code = 500
        result, out = invoke("generate", str(folder.id), "--text", "Notes")
        assert result.exit_code == 1
        assert "Failed to generate flashcards with AI" in out


# --- Study, history, today ---


class TestStudyCommands:
    def test_study_records_session(self, api, folder, cards, store):
        result, out = invoke("study", str(folder.id), input="f\nn\nf\nq\n")
        assert result.exit_code == 0, out
        assert "Session complete: Cells" in out
        assert "Study session saved." in out

        sessions = store.get_study_sessions_by_folder(folder.id)
        assert len(sessions) == 1
        assert sessions[0].total_cards == 3
        assert sessions[0].completed_cards == 2
        assert sessions[0].accuracy == 67

    def test_study_rejects_unknown_interval(self, api, folder, cards):
        result, out = invoke("study", str(folder.id), "--auto", "4")
        assert result.exit_code == 1
        assert "--auto must be one of 3, 5, 10" in out

    def test_study_empty_folder(self, api, folder, store):
        result, out = invoke("study", str(folder.id))
        assert result.exit_code == 0
        assert "no flashcards to study" in out
        assert store.get_study_sessions_by_folder(folder.id) == []

    def test_study_missing_folder(self, api):
        result, out = invoke("study", "31")
        assert result.exit_code == 1
        assert "Folder with id 31 not found" in out

    def test_history(self, api, folder, store):
        store.create_study_session(
            StudySessionCreate(
                folder_id=folder.id,
                total_cards=4,
                completed_cards=3,
                duration=150,
                accuracy=75,
            )
        )
        result, out = invoke("history", str(folder.id))
        assert result.exit_code == 0, out
        assert "3/4" in out
        assert "75%" in out

    def test_history_empty(self, api, folder):
        result, out = invoke("history", str(folder.id))
        assert "No study sessions recorded" in out

    def test_today(self, api, folder, cards, store):
        store.create_study_session(
            StudySessionCreate(
                folder_id=folder.id,
                total_cards=3,
                completed_cards=2,
                duration=150,
                accuracy=67,
            )
        )
        result, out = invoke("today")
        assert result.exit_code == 0, out
        assert "Total cards 3" in out
        assert "Folders 1" in out
        assert "Study time 3 min" in out
        assert "Cards studied 2" in out


# --- Serve and connectivity ---


def test_serve_runs_uvicorn():
    with patch("flashbrain.cli.main.uvicorn.run") as mock_run:
        result = runner.invoke(app, ["serve", "--port", "5055"])
    assert result.exit_code == 0, result.stdout
    mock_run.assert_called_once()
    _, kwargs = mock_run.call_args
    assert kwargs["host"] == "127.0.0.1"
    assert kwargs["port"] == 5055


def test_unreachable_api_exits_with_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    def factory(api_url):
        return ApiClient("http://testserver", transport=httpx.MockTransport(refuse))

    with patch("flashbrain.cli.main._api_client", side_effect=factory):
        result, out = invoke("categories", "list")
    assert result.exit_code == 1
    assert "Could not reach the API" in out
