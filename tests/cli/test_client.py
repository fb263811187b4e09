"""
Tests for ApiClient request/response handling over httpx.MockTransport.
"""

import json

import httpx
import pytest

from flashbrain.cli.client import ApiClient, ApiError
from flashbrain.schemas import CategoryCreate, FlashcardUpdate, StudySessionCreate

CATEGORY_JSON = {
    "id": 1,
    "name": "Biology",
    "color": "hsl(207, 90%, 54%)",
    "createdAt": "2024-05-01T12:00:00Z",
}


def make_client(handler):
    return ApiClient("http://api.test", transport=httpx.MockTransport(handler))


def test_list_categories_parses_models():
    def handler(request):
        assert request.method == "GET"
        assert request.url.path == "/api/categories"
        return httpx.Response(200, json=[CATEGORY_JSON])

    with make_client(handler) as client:
        categories = client.list_categories()
    assert categories[0].name == "Biology"
    assert categories[0].created_at.tzinfo is not None


def test_create_sends_camel_case_without_nulls():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json=CATEGORY_JSON)

    with make_client(handler) as client:
        client.create_category(CategoryCreate(name="Biology"))
    assert seen["body"] == {"name": "Biology"}


def test_update_sends_only_supplied_fields():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "id": 3,
                "question": "Q",
                "answer": "new",
                "folderId": 2,
                "cardStyle": "blue",
                "createdAt": "2024-05-01T12:00:00Z",
            },
        )

    with make_client(handler) as client:
        card = client.update_flashcard(3, FlashcardUpdate(answer="new", card_style="blue"))
    assert seen["method"] == "PUT"
    assert seen["path"] == "/api/flashcards/3"
    assert seen["body"] == {"answer": "new", "cardStyle": "blue"}
    assert card.answer == "new"


def test_delete_handles_empty_204():
    with make_client(lambda request: httpx.Response(204)) as client:
        assert client.delete_flashcard(5) is None


def test_error_response_raises_api_error_with_field_errors():
    def handler(request):
        return httpx.Response(
            400,
            json={
                "message": "Invalid study session data",
                "errors": [{"field": "accuracy", "message": "too big", "type": "less_than_equal"}],
            },
        )

    payload = StudySessionCreate(
        folder_id=1, total_cards=1, completed_cards=1, duration=1, accuracy=100
    )
    with make_client(handler) as client:
        with pytest.raises(ApiError) as excinfo:
            client.create_study_session(payload)
    error = excinfo.value
    assert error.status_code == 400
    assert error.message == "Invalid study session data"
    assert error.errors[0].field == "accuracy"
    assert str(error) == "[400] Invalid study session data"


def test_non_json_error_uses_reason_phrase():
    with make_client(lambda request: httpx.Response(502, text="<html>")) as client:
        with pytest.raises(ApiError) as excinfo:
            client.get_folder(1)
    assert excinfo.value.status_code == 502
    assert excinfo.value.message == "Bad Gateway"


def test_list_all_folders_walks_categories():
    folder_json = {
        "id": 4,
        "name": "Cells",
        "categoryId": 1,
        "color": "yellow",
        "createdAt": "2024-05-01T12:00:00Z",
    }

    def handler(request):
        if request.url.path == "/api/categories":
            return httpx.Response(200, json=[CATEGORY_JSON])
        assert request.url.path == "/api/folders/category/1"
        return httpx.Response(200, json=[folder_json])

    with make_client(handler) as client:
        folders = client.list_all_folders()
    assert [f.id for f in folders] == [4]
