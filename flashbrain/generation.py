"""
AI flashcard generation.

Study material is wrapped in a fixed prompt and sent to an OpenAI-compatible
chat-completions endpoint (OpenRouter by default). The first JSON array in
the reply is turned into flashcards in the target folder.
"""

import json
import logging
import re
from typing import Any, List, Optional, Union

import httpx
from pydantic import SecretStr

from .config import Settings
from .constants import (
    DEFAULT_CARD_STYLE,
    DEFAULT_MAX_GENERATED_CARDS,
    MAX_GENERATED_TEXT_LENGTH,
    MAX_WORDS_PER_SIDE,
)
from .db import FlashcardStore
from .exceptions import ContentError, GenerationConfigError, UpstreamError
from .models import Flashcard
from .schemas import FlashcardCreate, GeneratedCard, validate_payload

logger = logging.getLogger(__name__)

# Greedy: spans from the first "[" to the last "]".
_JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")

PROMPT_TEMPLATE = """
Analyze the following study material and generate concise flashcards.

Each flashcard should have:
- A question and an answer
- Maximum {max_words} words per side
- Focus on key concepts and facts

Generate up to {max_cards} flashcards.

Return the response as a JSON array in this exact format:
[
  {{"question": "...", "answer": "..."}},
  {{"question": "...", "answer": "..."}}
]

Study material:
{text}
"""


def build_prompt(text: str, max_cards: int = DEFAULT_MAX_GENERATED_CARDS) -> str:
    return PROMPT_TEMPLATE.format(
        max_words=MAX_WORDS_PER_SIDE, max_cards=max_cards, text=text
    )


def extract_json_array(content: str) -> List[Any]:
    """
    Pull the bracket-delimited JSON array out of a model reply.

    Raises:
        ContentError: If no array is present, it is not valid JSON, or it
            decodes to something other than a list.
    """
    match = _JSON_ARRAY_PATTERN.search(content)
    if not match:
        raise ContentError("Could not extract JSON from AI response")
    try:
        items = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ContentError(f"AI response JSON could not be parsed: {e}") from e
    if not isinstance(items, list):
        raise ContentError("AI response JSON is not an array")
    return items


def _message_content(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    if not content or not isinstance(content, str):
        raise ContentError("No content received from AI")
    return content


class FlashcardGenerator:
    """
    Turns free text into flashcards via an external completion API.

    Flashcards are created one by one; when a later step fails the cards
    already created stay in the store.
    """

    def __init__(
        self,
        store: FlashcardStore,
        api_key: Optional[Union[SecretStr, str]],
        endpoint: str,
        model: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if isinstance(api_key, str):
            api_key = SecretStr(api_key)
        self.store = store
        self._api_key = api_key
        self.endpoint = endpoint
        self.model = model
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        store: FlashcardStore,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "FlashcardGenerator":
        return cls(
            store,
            api_key=settings.openrouter_api_key,
            endpoint=settings.generation_endpoint,
            model=settings.generation_model,
            timeout=settings.generation_timeout,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return self._api_key is not None and bool(self._api_key.get_secret_value())

    async def request_completion(self, prompt: str) -> str:
        """
        Send one user message and return the reply text.

        Raises:
            GenerationConfigError: If no API key is configured.
            UpstreamError: On transport failure or a non-success status.
            ContentError: If the reply carries no message content.
        """
        if not self.is_configured:
            raise GenerationConfigError(
                "No API key configured for AI generation "
                "(set OPENROUTER_API_KEY)."
            )
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key.get_secret_value()}",
        }
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.timeout
            ) as client:
                response = await client.post(self.endpoint, headers=headers, json=body)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Completion request failed: {e}") from e

        if not response.is_success:
            raise UpstreamError(
                f"Completion API error: {response.status_code}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise ContentError("Completion API returned a non-JSON body") from e
        return _message_content(data)

    async def generate(
        self,
        text: str,
        folder_id: int,
        max_cards: int = DEFAULT_MAX_GENERATED_CARDS,
    ) -> List[Flashcard]:
        """
        Generate flashcards for `text` into folder `folder_id`.

        Items missing a question or answer are skipped; both sides are cut to
        200 characters and styled "white".

        Raises:
            RecordNotFoundError: If the folder does not exist (checked before
                calling out).
            GenerationConfigError, UpstreamError, ContentError: See
                request_completion and extract_json_array.
        """
        self.store.get_folder(folder_id)

        content = await self.request_completion(build_prompt(text, max_cards))
        items = extract_json_array(content)

        created: List[Flashcard] = []
        for index, item in enumerate(items):
            card = validate_payload(GeneratedCard, item)
            if isinstance(card, list):
                logger.debug(f"Skipping malformed generated item {index}: {card}")
                continue
            # Truncation counts code points, not UTF-16 units.
            created.append(
                self.store.create_flashcard(
                    FlashcardCreate(
                        question=card.question[:MAX_GENERATED_TEXT_LENGTH],
                        answer=card.answer[:MAX_GENERATED_TEXT_LENGTH],
                        folder_id=folder_id,
                        card_style=DEFAULT_CARD_STYLE,
                    )
                )
            )
        logger.info(
            f"Generated {len(created)} flashcards for folder {folder_id} "
            f"from {len(items)} items"
        )
        return created
