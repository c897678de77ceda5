import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from studyhub.utils import get_logger, log_review

from .errors import UnknownFlashcard
from .exporter import ExportFormat, export_flashcards
from .models import Flashcard, FlashcardReview, FlashcardSet, GenerationSettings, Snapshot, assume_utc, utcnow
from .scheduler import compute_next_review
from .selector import due_cards

LOG = get_logger()

Listener = Callable[['FlashcardStore'], None]


class FlashcardStore:
    """Owns flashcards, sets and reviews plus transient review-session state.

    Every mutation notifies subscribers with the store itself. All access
    goes through one re-entrant lock so the store can be shared with the
    persistence worker and request handlers.
    """

    def __init__(self, snapshot: Optional[Snapshot] = None):
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._init_state()
        if snapshot is not None:
            self._apply_snapshot(snapshot)

    def _init_state(self):
        self._flashcards: List[Flashcard] = []
        self._flashcard_sets: List[FlashcardSet] = []
        self._reviews: List[FlashcardReview] = []
        self._generation_settings = GenerationSettings()
        self._init_transient()

    def _init_transient(self):
        self.current_set: Optional[FlashcardSet] = None
        self.current_card: Optional[Flashcard] = None
        self.is_generating = False
        self.is_reviewing = False
        self.show_answer = False
        self.generation_progress = 0

    def _apply_snapshot(self, snapshot: Snapshot):
        self._flashcards = list(snapshot.flashcards)
        self._flashcard_sets = list(snapshot.flashcard_sets)
        self._reviews = list(snapshot.reviews)
        self._generation_settings = snapshot.generation_settings
        self._init_transient()

    # observers

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                LOG.exception('store_listener_failed', exc_info=True)

    def _mutate(self, fn: Callable[[], None]):
        with self._lock:
            fn()
        self._notify()

    # read views

    @property
    def flashcards(self) -> Tuple[Flashcard, ...]:
        with self._lock:
            return tuple(self._flashcards)

    @property
    def flashcard_sets(self) -> Tuple[FlashcardSet, ...]:
        with self._lock:
            return tuple(self._flashcard_sets)

    @property
    def reviews(self) -> Tuple[FlashcardReview, ...]:
        with self._lock:
            return tuple(self._reviews)

    @property
    def generation_settings(self) -> GenerationSettings:
        with self._lock:
            return self._generation_settings

    def get_flashcard(self, flashcard_id: int) -> Optional[Flashcard]:
        with self._lock:
            return next((c for c in self._flashcards if c.id == flashcard_id), None)

    # flashcards

    def set_flashcards(self, flashcards: Sequence[Flashcard]):
        def apply():
            self._flashcards = list(flashcards)
        self._mutate(apply)

    def add_flashcard(self, flashcard: Flashcard):
        self._mutate(lambda: self._flashcards.append(flashcard))

    def remove_flashcard(self, flashcard_id: int):
        # set-embedded copies and reviews of the card are left untouched
        def apply():
            self._flashcards = [c for c in self._flashcards if c.id != flashcard_id]
        self._mutate(apply)

    def update_flashcard(self, flashcard_id: int, **updates: Any):
        def apply():
            self._flashcards = [c.model_copy(update=updates) if c.id == flashcard_id else c for c in self._flashcards]
        self._mutate(apply)

    # sets

    def set_flashcard_sets(self, sets: Sequence[FlashcardSet]):
        def apply():
            self._flashcard_sets = list(sets)
        self._mutate(apply)

    def add_flashcard_set(self, flashcard_set: FlashcardSet):
        self._mutate(lambda: self._flashcard_sets.append(flashcard_set))

    def remove_flashcard_set(self, set_id: int):
        def apply():
            self._flashcard_sets = [s for s in self._flashcard_sets if s.id != set_id]
        self._mutate(apply)

    def update_flashcard_set(self, set_id: int, **updates: Any):
        def apply():
            self._flashcard_sets = [s.model_copy(update=updates) if s.id == set_id else s for s in self._flashcard_sets]
        self._mutate(apply)

    # transient state

    def set_current_set(self, flashcard_set: Optional[FlashcardSet]):
        self._mutate(lambda: setattr(self, 'current_set', flashcard_set))

    def set_current_card(self, flashcard: Optional[Flashcard]):
        self._mutate(lambda: setattr(self, 'current_card', flashcard))

    def set_show_answer(self, show: bool):
        self._mutate(lambda: setattr(self, 'show_answer', show))

    def set_is_generating(self, generating: bool):
        self._mutate(lambda: setattr(self, 'is_generating', generating))

    def set_is_reviewing(self, reviewing: bool):
        self._mutate(lambda: setattr(self, 'is_reviewing', reviewing))

    def set_generation_progress(self, progress: Union[int, Callable[[int], int]]):
        def apply():
            self.generation_progress = progress(self.generation_progress) if callable(progress) else progress
        self._mutate(apply)

    def set_generation_settings(self, **updates: Any):
        def apply():
            self._generation_settings = self._generation_settings.model_copy(update=updates)
        self._mutate(apply)

    # reviews

    def add_review(self, review: FlashcardReview):
        self._mutate(lambda: self._reviews.append(review))

    def _next_review_id(self) -> int:
        return max((r.id for r in self._reviews), default=0) + 1

    def record_answer(self, flashcard_id: int, learner_id: str, is_correct: bool, difficulty_rating: int, response_time_ms: Optional[int] = None, now: Optional[datetime] = None) -> FlashcardReview:
        """Schedule the card from its review history and append the review.

        History is every review of the card regardless of who answered it;
        ``learner_id`` only tags the new record.

        Raises:
            UnknownFlashcard: no card with this id in the store
            InvalidRating: rating outside [0, 5]; nothing is appended
        """
        now = assume_utc(now or utcnow())
        with self._lock:
            if self.get_flashcard(flashcard_id) is None:
                raise UnknownFlashcard(flashcard_id)
            history = [r for r in self._reviews if r.flashcard_id == flashcard_id]
            schedule = compute_next_review(history, is_correct, difficulty_rating, now)
            review = FlashcardReview(
                id=self._next_review_id(),
                flashcard_id=flashcard_id,
                user_id=learner_id,
                is_correct=is_correct,
                response_time_ms=response_time_ms,
                difficulty_rating=difficulty_rating,
                created_at=now,
                **schedule.model_dump(),
            )
            self.add_review(review)
        log_review(flashcard_id, learner_id, is_correct, schedule.interval_days, schedule.ease_factor, schedule.repetition_count)
        return review

    # queries

    def due_cards(self, learner_id: str, now: Optional[datetime] = None, sort: bool = False) -> List[Flashcard]:
        with self._lock:
            return due_cards(self._flashcards, self._reviews, learner_id, assume_utc(now or utcnow()), sort=sort)

    def export(self, export_format: Union[str, ExportFormat] = ExportFormat.JSON) -> str:
        """Export the current set's cards when one is selected, else all cards."""
        with self._lock:
            if self.current_set is not None and self.current_set.flashcards is not None:
                cards = self.current_set.flashcards
            else:
                cards = self._flashcards
            return export_flashcards(list(cards), export_format)

    # snapshot

    def snapshot(self) -> Snapshot:
        with self._lock:
            return Snapshot(
                flashcards=list(self._flashcards),
                flashcard_sets=list(self._flashcard_sets),
                reviews=list(self._reviews),
                generation_settings=self._generation_settings,
            )

    def restore(self, snapshot: Snapshot):
        self._mutate(lambda: self._apply_snapshot(snapshot))

    def reset(self):
        self._mutate(self._init_state)
