"""
HTTP client for the flashbrain REST API, used by the terminal client.
"""

import logging
from typing import Any, List, Optional

import httpx
from pydantic import BaseModel

from flashbrain.models import Category, Flashcard, Folder, StudySession
from flashbrain.schemas import (
    CategoryCreate,
    CategoryUpdate,
    FieldError,
    FlashcardCreate,
    FlashcardUpdate,
    FolderCreate,
    FolderUpdate,
    GenerateRequest,
    GenerateResponse,
    StudySessionCreate,
)

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A non-2xx response (or no response at all) from the API."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        errors: Optional[List[FieldError]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or []

    def __str__(self) -> str:
        prefix = f"[{self.status_code}] " if self.status_code else ""
        return f"{prefix}{self.message}"


def _body(payload: BaseModel, partial: bool = False) -> dict:
    if partial:
        return payload.model_dump(by_alias=True, exclude_unset=True)
    return payload.model_dump(by_alias=True, exclude_none=True)


class ApiClient:
    """
    Thin wrapper over httpx.Client, one method per endpoint.

    Responses are parsed into the domain models; any failure raises ApiError.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 120.0,
        transport: Optional[httpx.BaseTransport] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        # An existing client (e.g. FastAPI's TestClient) wins over base_url.
        self._client = http_client or httpx.Client(
            base_url=base_url, timeout=timeout, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _request(self, method: str, url: str, json: Any = None) -> Any:
        try:
            response = self._client.request(method, url, json=json)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise ApiError(f"Could not reach the API: {e}") from e

        if response.is_success:
            return None if response.status_code == 204 else response.json()

        message = response.reason_phrase or "Request failed"
        errors: List[FieldError] = []
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            message = data.get("message", message)
            errors = [FieldError.model_validate(e) for e in data.get("errors") or []]
        raise ApiError(message, status_code=response.status_code, errors=errors)

    # --- Categories ---

    def list_categories(self) -> List[Category]:
        return [Category.model_validate(c) for c in self._request("GET", "/api/categories")]

    def create_category(self, payload: CategoryCreate) -> Category:
        data = self._request("POST", "/api/categories", _body(payload))
        return Category.model_validate(data)

    def update_category(self, category_id: int, payload: CategoryUpdate) -> Category:
        data = self._request(
            "PUT", f"/api/categories/{category_id}", _body(payload, partial=True)
        )
        return Category.model_validate(data)

    def delete_category(self, category_id: int) -> None:
        self._request("DELETE", f"/api/categories/{category_id}")

    # --- Folders ---

    def list_folders(self, category_id: int) -> List[Folder]:
        data = self._request("GET", f"/api/folders/category/{category_id}")
        return [Folder.model_validate(f) for f in data]

    def list_all_folders(self) -> List[Folder]:
        folders: List[Folder] = []
        for category in self.list_categories():
            folders.extend(self.list_folders(category.id))
        return folders

    def get_folder(self, folder_id: int) -> Folder:
        return Folder.model_validate(self._request("GET", f"/api/folders/{folder_id}"))

    def create_folder(self, payload: FolderCreate) -> Folder:
        return Folder.model_validate(self._request("POST", "/api/folders", _body(payload)))

    def update_folder(self, folder_id: int, payload: FolderUpdate) -> Folder:
        data = self._request(
            "PUT", f"/api/folders/{folder_id}", _body(payload, partial=True)
        )
        return Folder.model_validate(data)

    def delete_folder(self, folder_id: int) -> None:
        self._request("DELETE", f"/api/folders/{folder_id}")

    # --- Flashcards ---

    def list_flashcards(self, folder_id: int) -> List[Flashcard]:
        data = self._request("GET", f"/api/flashcards/folder/{folder_id}")
        return [Flashcard.model_validate(c) for c in data]

    def create_flashcard(self, payload: FlashcardCreate) -> Flashcard:
        data = self._request("POST", "/api/flashcards", _body(payload))
        return Flashcard.model_validate(data)

    def update_flashcard(self, flashcard_id: int, payload: FlashcardUpdate) -> Flashcard:
        data = self._request(
            "PUT", f"/api/flashcards/{flashcard_id}", _body(payload, partial=True)
        )
        return Flashcard.model_validate(data)

    def delete_flashcard(self, flashcard_id: int) -> None:
        self._request("DELETE", f"/api/flashcards/{flashcard_id}")

    def generate_flashcards(self, payload: GenerateRequest) -> GenerateResponse:
        data = self._request("POST", "/api/flashcards/generate", _body(payload))
        return GenerateResponse.model_validate(data)

    # --- Study sessions ---

    def list_study_sessions(self, folder_id: int) -> List[StudySession]:
        data = self._request("GET", f"/api/study-sessions/folder/{folder_id}")
        return [StudySession.model_validate(s) for s in data]

    def create_study_session(self, payload: StudySessionCreate) -> StudySession:
        data = self._request("POST", "/api/study-sessions", _body(payload))
        return StudySession.model_validate(data)
