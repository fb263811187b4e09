"""
Study-session state and statistics for flashbrain.

StudySessionManager is the client-side state machine behind a flip-card
study pass over one folder:

- current card index and flip state
- manual navigation (next/previous/flip) and reset
- a cooperative auto-play timer: the UI loop calls poll() and due ticks fire
  on the caller's thread, at most one timer is active at a time
- completion tracking and the stats handed to the completion view

Nothing here talks to the server; the finished SessionStats are persisted
as a StudySession record by whoever consumes the SessionStatsHandoff.
"""

import logging
import time
from dataclasses import asdict, dataclass
from datetime import date
from typing import Callable, Dict, Generic, Iterable, List, Optional, Set, TypeVar

from .models import StudySession
from .schemas import StudySessionCreate

logger = logging.getLogger(__name__)

CardT = TypeVar("CardT")


def _round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half-up (12.5 -> 13), for non-negative input."""
    return (2 * numerator + denominator) // (2 * denominator)


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return _round_half_up(100 * part, whole)


@dataclass(frozen=True)
class SessionStats:
    """Snapshot of a study session, as shown on the completion view."""

    total_cards: int
    completed_cards: int
    duration: int  # whole seconds
    accuracy: int  # percentage, 0-100

    @property
    def duration_minutes(self) -> int:
        return self.duration // 60

    def to_payload(self, folder_id: int) -> StudySessionCreate:
        """Build the request body that records this session."""
        return StudySessionCreate(folder_id=folder_id, **asdict(self))


class StudySessionManager(Generic[CardT]):
    """
    Drives one study pass over a fixed list of cards.

    The clock is injectable (seconds, monotonic) so that timing and auto-play
    can be tested without sleeping.
    """

    def __init__(
        self,
        cards: List[CardT],
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cards: List[CardT] = list(cards)
        self._clock = clock
        self.start_time: float = clock()
        self.current_index: int = 0
        self.is_flipped: bool = False
        self.auto_play_interval: Optional[float] = None
        self._next_tick_at: Optional[float] = None
        self._completed: Set[int] = set()

    # --- State queries ---

    @property
    def total_cards(self) -> int:
        return len(self.cards)

    @property
    def current_card(self) -> Optional[CardT]:
        if not self.cards:
            return None
        return self.cards[self.current_index]

    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    @property
    def is_last(self) -> bool:
        return self.current_index >= self.total_cards - 1

    @property
    def is_auto_play(self) -> bool:
        return self.auto_play_interval is not None

    @property
    def progress(self) -> float:
        """Percentage of the deck reached, counting the current card."""
        if not self.cards:
            return 0.0
        return (self.current_index + 1) / self.total_cards * 100

    def seconds_until_tick(self) -> Optional[float]:
        """Time left before the next auto-play tick, or None when paused."""
        if self._next_tick_at is None:
            return None
        return max(0.0, self._next_tick_at - self._clock())

    # --- Manual transitions ---

    def next_card(self) -> None:
        """
        Move to the next card.

        A flipped card is counted as completed when leaving it, once per
        index. On the last card nothing changes.
        """
        if self.current_index < self.total_cards - 1:
            if self.is_flipped:
                self._completed.add(self.current_index)
            self.current_index += 1
            self.is_flipped = False

    def previous_card(self) -> None:
        if self.current_index > 0:
            self.current_index -= 1
            self.is_flipped = False

    def flip_card(self) -> None:
        self.is_flipped = not self.is_flipped

    def reset(self) -> None:
        """Back to the first card with auto-play off and nothing completed."""
        self.current_index = 0
        self.is_flipped = False
        self.pause_auto_play()
        self._completed.clear()
        logger.debug("Study session reset")

    # --- Auto-play ---

    def enable_auto_play(self, interval: float) -> None:
        """
        Start auto-play with a period of `interval` seconds.

        Replaces any timer already running; the first tick is due one full
        interval from now.
        """
        if interval <= 0:
            raise ValueError("Auto-play interval must be positive.")
        self.auto_play_interval = interval
        self._next_tick_at = self._clock() + interval
        logger.debug(f"Auto-play enabled every {interval}s")

    def pause_auto_play(self) -> None:
        self.auto_play_interval = None
        self._next_tick_at = None

    def tick(self) -> None:
        """One auto-play step: reveal the answer, or move on if revealed."""
        if not self.cards:
            return
        if self.is_flipped:
            self.next_card()
        else:
            self.is_flipped = True

    def poll(self) -> int:
        """
        Fire every auto-play tick whose deadline has passed.

        Returns:
            int: Number of ticks fired.
        """
        if self._next_tick_at is None or self.auto_play_interval is None:
            return 0
        now = self._clock()
        fired = 0
        while self._next_tick_at is not None and self._next_tick_at <= now:
            self.tick()
            fired += 1
            if self.auto_play_interval is None:
                break
            self._next_tick_at += self.auto_play_interval
        return fired

    # --- Statistics ---

    def completed_count(self) -> int:
        """Completed cards, including the current one if it is showing its answer."""
        count = len(self._completed)
        if self.is_flipped and self.current_index not in self._completed:
            count += 1
        return count

    def compute_stats(self) -> SessionStats:
        total = self.total_cards
        completed = self.completed_count()
        accuracy = _percent(completed, total)
        return SessionStats(
            total_cards=total,
            completed_cards=completed,
            duration=int(self._clock() - self.start_time),
            accuracy=accuracy,
        )


class SessionStatsHandoff:
    """
    Single transient slot carrying the latest session's stats from the study
    view to the completion view. Taking the stats clears the slot.
    """

    def __init__(self) -> None:
        self._slots: Dict[int, SessionStats] = {}

    def put(self, folder_id: int, stats: SessionStats) -> None:
        # Only the most recent session is kept.
        self._slots = {folder_id: stats}

    def take(self, folder_id: int) -> Optional[SessionStats]:
        stats = self._slots.pop(folder_id, None)
        self._slots.clear()
        return stats


@dataclass(frozen=True)
class DailySummary:
    """Home-screen overview: library size plus what was studied on one day."""

    day: date
    total_folders: int
    total_cards: int
    study_minutes: int
    cards_studied: int
    sessions: int


def summarize_day(
    sessions: Iterable[StudySession],
    total_folders: int,
    total_cards: int,
    day: Optional[date] = None,
) -> DailySummary:
    """
    Aggregate the study sessions recorded on `day` (local time, default
    today). Each session's duration is rounded to whole minutes before summing.
    """
    day = day or date.today()
    todays = [s for s in sessions if s.created_at.astimezone().date() == day]
    return DailySummary(
        day=day,
        total_folders=total_folders,
        total_cards=total_cards,
        study_minutes=sum(_round_half_up(s.duration, 60) for s in todays),
        cards_studied=sum(s.completed_cards for s in todays),
        sessions=len(todays),
    )
