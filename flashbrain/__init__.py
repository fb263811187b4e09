"""Flashbrain - flashcard study server with AI card generation."""

from .models import Category, Folder, Flashcard, StudySession
from .db import FlashcardStore
from .session_manager import StudySessionManager, SessionStats
from .generation import FlashcardGenerator
from .api import create_app

__all__ = [
    "Category",
    "Folder",
    "Flashcard",
    "StudySession",
    "FlashcardStore",
    "StudySessionManager",
    "SessionStats",
    "FlashcardGenerator",
    "create_app",
]
