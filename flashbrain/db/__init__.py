"""Database package for flashbrain.

Only FlashcardStore is exported as the public API.
"""

from .database import FlashcardStore

__all__ = ["FlashcardStore"]
