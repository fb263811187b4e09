"""
REST API for flashbrain.

create_app() builds a FastAPI application around one FlashcardStore. Every
handler is a coroutine, so requests touching the store run one at a time on
the event loop and each mutation is atomic per request.
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .db import FlashcardStore
from .exceptions import DatabaseError, GenerationError, RecordNotFoundError
from .generation import FlashcardGenerator
from .models import Category, Flashcard, Folder, StudySession
from .schemas import (
    CategoryCreate,
    CategoryUpdate,
    ErrorResponse,
    FlashcardCreate,
    FlashcardUpdate,
    FolderCreate,
    FolderUpdate,
    GenerateRequest,
    GenerateResponse,
    StudySessionCreate,
    field_errors_from,
)

logger = logging.getLogger(__name__)

_VERBS = {"GET": "fetch", "POST": "create", "PUT": "update", "DELETE": "delete"}

_GENERATE_PATH = "/api/flashcards/generate"
_GENERATION_FAILED = "Failed to generate flashcards with AI"

# Path prefix -> entity label used in error messages.
_ENTITIES: Tuple[Tuple[str, str], ...] = (
    ("/api/study-sessions", "study session"),
    ("/api/flashcards", "flashcard"),
    ("/api/categories", "category"),
    ("/api/folders", "folder"),
)


def _entity_for(request: Request) -> str:
    path = request.url.path
    for prefix, entity in _ENTITIES:
        if path.startswith(prefix):
            return entity
    return "request"


async def get_store(request: Request) -> FlashcardStore:
    return request.app.state.store


async def get_generator(request: Request) -> FlashcardGenerator:
    return request.app.state.generator


router = APIRouter(prefix="/api")
_errors = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# --- Categories ---


@router.get("/categories", response_model=List[Category])
async def list_categories(store: FlashcardStore = Depends(get_store)):
    return store.get_categories()


@router.post(
    "/categories", response_model=Category, status_code=201, responses=_errors
)
async def create_category(
    payload: CategoryCreate, store: FlashcardStore = Depends(get_store)
):
    return store.create_category(payload)


@router.put("/categories/{category_id}", response_model=Category, responses=_errors)
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    store: FlashcardStore = Depends(get_store),
):
    return store.update_category(category_id, payload.changes())


@router.delete("/categories/{category_id}", status_code=204, responses=_errors)
async def delete_category(
    category_id: int, store: FlashcardStore = Depends(get_store)
):
    store.delete_category(category_id)
    return Response(status_code=204)


# --- Folders ---


@router.get("/folders/category/{category_id}", response_model=List[Folder])
async def list_folders(category_id: int, store: FlashcardStore = Depends(get_store)):
    return store.get_folders_by_category(category_id)


@router.get("/folders/{folder_id}", response_model=Folder, responses=_errors)
async def get_folder(folder_id: int, store: FlashcardStore = Depends(get_store)):
    return store.get_folder(folder_id)


@router.post("/folders", response_model=Folder, status_code=201, responses=_errors)
async def create_folder(
    payload: FolderCreate, store: FlashcardStore = Depends(get_store)
):
    return store.create_folder(payload)


@router.put("/folders/{folder_id}", response_model=Folder, responses=_errors)
async def update_folder(
    folder_id: int,
    payload: FolderUpdate,
    store: FlashcardStore = Depends(get_store),
):
    return store.update_folder(folder_id, payload.changes())


@router.delete("/folders/{folder_id}", status_code=204, responses=_errors)
async def delete_folder(folder_id: int, store: FlashcardStore = Depends(get_store)):
    store.delete_folder(folder_id)
    return Response(status_code=204)


# --- Flashcards ---


@router.get("/flashcards/folder/{folder_id}", response_model=List[Flashcard])
async def list_flashcards(folder_id: int, store: FlashcardStore = Depends(get_store)):
    return store.get_flashcards_by_folder(folder_id)


@router.post(
    "/flashcards/generate", response_model=GenerateResponse, responses=_errors
)
async def generate_flashcards(
    payload: GenerateRequest,
    generator: FlashcardGenerator = Depends(get_generator),
):
    flashcards = await generator.generate(
        payload.text, payload.folder_id, payload.max_cards
    )
    return GenerateResponse(
        message=f"Generated {len(flashcards)} flashcards", flashcards=flashcards
    )


@router.post(
    "/flashcards", response_model=Flashcard, status_code=201, responses=_errors
)
async def create_flashcard(
    payload: FlashcardCreate, store: FlashcardStore = Depends(get_store)
):
    return store.create_flashcard(payload)


@router.put("/flashcards/{flashcard_id}", response_model=Flashcard, responses=_errors)
async def update_flashcard(
    flashcard_id: int,
    payload: FlashcardUpdate,
    store: FlashcardStore = Depends(get_store),
):
    return store.update_flashcard(flashcard_id, payload.changes())


@router.delete("/flashcards/{flashcard_id}", status_code=204, responses=_errors)
async def delete_flashcard(
    flashcard_id: int, store: FlashcardStore = Depends(get_store)
):
    store.delete_flashcard(flashcard_id)
    return Response(status_code=204)


# --- Study sessions ---


@router.get("/study-sessions/folder/{folder_id}", response_model=List[StudySession])
async def list_study_sessions(
    folder_id: int, store: FlashcardStore = Depends(get_store)
):
    return store.get_study_sessions_by_folder(folder_id)


@router.post(
    "/study-sessions", response_model=StudySession, status_code=201, responses=_errors
)
async def create_study_session(
    payload: StudySessionCreate, store: FlashcardStore = Depends(get_store)
):
    return store.create_study_session(payload)


# --- Error mapping ---


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    if request.url.path == _GENERATE_PATH:
        message = "Text and folder ID are required"
    else:
        message = f"Invalid {_entity_for(request)} data"
    body = ErrorResponse(message=message, errors=field_errors_from(exc.errors()))
    return JSONResponse(status_code=400, content=body.model_dump())


async def _not_found_handler(request: Request, exc: RecordNotFoundError):
    return JSONResponse(
        status_code=404, content=ErrorResponse(message=str(exc)).model_dump(exclude_none=True)
    )


async def _database_error_handler(request: Request, exc: DatabaseError):
    verb = _VERBS.get(request.method, "process")
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    if request.url.path == _GENERATE_PATH:
        message = _GENERATION_FAILED
    else:
        message = f"Failed to {verb} {_entity_for(request)}"
    return JSONResponse(
        status_code=500, content=ErrorResponse(message=message).model_dump(exclude_none=True)
    )


async def _generation_error_handler(request: Request, exc: GenerationError):
    logger.error(f"AI generation error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(message=_GENERATION_FAILED).model_dump(exclude_none=True),
    )


def create_app(
    store: Optional[FlashcardStore] = None,
    settings: Optional[Settings] = None,
    generator: Optional[FlashcardGenerator] = None,
) -> FastAPI:
    """
    Build the API around `store` (a fresh in-memory store by default).

    A store passed in by the caller is left open at shutdown; one created
    here is closed, and its data discarded, with the app.
    """
    settings = settings or get_settings()
    owns_store = store is None
    store = store or FlashcardStore()
    generator = generator or FlashcardGenerator.from_settings(store, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.open()
        if not generator.is_configured:
            logger.warning("AI generation disabled: no API key configured.")
        yield
        if owns_store:
            store.close_connection()

    app = FastAPI(
        title="Flashbrain API",
        description="Categories, folders, flashcards and study sessions.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.generator = generator

    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(RecordNotFoundError, _not_found_handler)
    app.add_exception_handler(DatabaseError, _database_error_handler)
    app.add_exception_handler(GenerationError, _generation_error_handler)

    @app.get("/")
    async def read_root():
        return {"status": "Flashbrain API is running"}

    app.include_router(router)
    return app
