"""
Static defaults and palettes for flashbrain.

Pure constants only; runtime configuration lives in flashbrain.config.
"""
from typing import Dict, Tuple

# Defaults applied by the store when the optional field is omitted.
DEFAULT_CATEGORY_COLOR: str = "hsl(207, 90%, 54%)"
DEFAULT_FOLDER_COLOR: str = "yellow"
DEFAULT_CARD_STYLE: str = "white"

# Palettes offered by the client. The API accepts any non-empty string.
CATEGORY_COLORS: Dict[str, str] = {
    "Purple": "hsl(263, 85%, 68%)",
    "Blue": "hsl(215, 93%, 68%)",
    "Green": "hsl(142, 93%, 68%)",
    "Yellow": "hsl(45, 93%, 68%)",
    "Pink": "hsl(330, 93%, 68%)",
    "Orange": "hsl(25, 93%, 68%)",
}
FOLDER_COLORS: Tuple[str, ...] = ("yellow", "pink", "blue", "green", "white")
CARD_STYLES: Tuple[str, ...] = ("yellow", "pink", "blue", "green", "white")

# Auto-play intervals (seconds) offered in study sessions.
AUTO_PLAY_INTERVALS: Tuple[int, ...] = (3, 5, 10)

# AI generation.
DEFAULT_MAX_GENERATED_CARDS: int = 20
MAX_WORDS_PER_SIDE: int = 10
MAX_GENERATED_TEXT_LENGTH: int = 200
