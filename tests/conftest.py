from typing import Generator, List

import httpx
import pytest
from fastapi.testclient import TestClient

from flashbrain.api import create_app
from flashbrain.config import Settings
from flashbrain.db import FlashcardStore
from flashbrain.generation import FlashcardGenerator
from flashbrain.models import Category, Flashcard, Folder
from flashbrain.schemas import CategoryCreate, FlashcardCreate, FolderCreate


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCompletionAPI:
    """
    Stand-in for the chat-completions endpoint, served through
    httpx.MockTransport.

    Set `content` to the reply text, or `status_code` to simulate a failure.
    """

    def __init__(self) -> None:
        self.content = "[]"
        self.status_code = 200
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "upstream failed"})
        return httpx.Response(
            200, json={"choices": [{"message": {"content": self.content}}]}
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of the settings under test."""
    for name in (
        "OPENROUTER_API_KEY",
        "FLASHBRAIN_OPENROUTER_API_KEY",
        "FLASHBRAIN_API_URL",
        "FLASHBRAIN_PORT",
        "FLASHBRAIN_HOST",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> Generator[FlashcardStore, None, None]:
    """A fresh in-memory store per test."""
    s = FlashcardStore().open()
    try:
        yield s
    finally:
        s.close_connection()


@pytest.fixture
def settings(monkeypatch) -> Settings:
    monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
    return Settings(_env_file=None)


@pytest.fixture
def completion_api() -> FakeCompletionAPI:
    return FakeCompletionAPI()


@pytest.fixture
def generator(
    store: FlashcardStore, settings: Settings, completion_api: FakeCompletionAPI
) -> FlashcardGenerator:
    return FlashcardGenerator.from_settings(
        store, settings, transport=completion_api.transport
    )


@pytest.fixture
def client(
    store: FlashcardStore, settings: Settings, generator: FlashcardGenerator
) -> Generator[TestClient, None, None]:
    """TestClient bound to the per-test store and fake completion API."""
    app = create_app(store=store, settings=settings, generator=generator)
    with TestClient(app) as test_client:
        yield test_client


# --- Sample data ---


@pytest.fixture
def category(store: FlashcardStore) -> Category:
    return store.create_category(CategoryCreate(name="Biology"))


@pytest.fixture
def folder(store: FlashcardStore, category: Category) -> Folder:
    return store.create_folder(FolderCreate(name="Cells", category_id=category.id))


@pytest.fixture
def cards(store: FlashcardStore, folder: Folder) -> List[Flashcard]:
    return [
        store.create_flashcard(
            FlashcardCreate(question=f"Q{i}", answer=f"A{i}", folder_id=folder.id)
        )
        for i in range(1, 4)
    ]
