"""
SM-2 review scheduling.

Pure functions: given the prior reviews of one card and a fresh answer,
compute the spacing parameters for the next review record.
"""

import math
from datetime import datetime, timedelta
from typing import Iterable, Optional

from .errors import InvalidRating
from .models import FlashcardReview, ReviewSchedule

DEFAULT_INTERVAL_DAYS = 1
DEFAULT_EASE_FACTOR = 2.5
DEFAULT_REPETITION_COUNT = 0
MIN_EASE_FACTOR = 1.3
SECOND_INTERVAL_DAYS = 6
MIN_RATING = 0
MAX_RATING = 5


def review_sort_key(review: FlashcardReview):
    # newest first ordering uses created_at, then the higher id on ties
    return (review.created_at, review.id)


def latest_review(reviews: Iterable[FlashcardReview], flashcard_id: Optional[int] = None, learner_id: Optional[str] = None) -> Optional[FlashcardReview]:
    """Most recent review, optionally restricted to one card and/or learner."""
    candidates = [
        r for r in reviews
        if (flashcard_id is None or r.flashcard_id == flashcard_id)
        and (learner_id is None or r.user_id == learner_id)
    ]
    if not candidates:
        return None
    return max(candidates, key=review_sort_key)


def validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRating(rating)
    if rating < MIN_RATING or rating > MAX_RATING:
        raise InvalidRating(rating)
    return rating


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def next_ease_factor(ease_factor: float, rating: int) -> float:
    """SM-2 ease update, floored at 1.3 with no upper bound."""
    distance = MAX_RATING - validate_rating(rating)
    ease = ease_factor + (0.1 - distance * (0.08 + distance * 0.02))
    return max(MIN_EASE_FACTOR, ease)


def compute_next_review(history: Iterable[FlashcardReview], is_correct: bool, difficulty_rating: int, now: datetime) -> ReviewSchedule:
    """Compute the schedule for a new answer.

    Args:
        history: prior reviews of the card being answered
        is_correct: whether the answer was correct
        difficulty_rating: self-rating in [0, 5]
        now: timestamp of the answer; the next review keeps its time of day

    Returns:
        ReviewSchedule with interval, ease, repetition count and next date

    Raises:
        InvalidRating: rating is not an integer in [0, 5]
    """
    validate_rating(difficulty_rating)

    interval = DEFAULT_INTERVAL_DAYS
    ease = DEFAULT_EASE_FACTOR
    repetitions = DEFAULT_REPETITION_COUNT

    prior = latest_review(history)
    if prior is not None:
        interval = prior.interval_days
        ease = prior.ease_factor
        repetitions = prior.repetition_count

    if is_correct:
        if repetitions == 0:
            interval = DEFAULT_INTERVAL_DAYS
        elif repetitions == 1:
            interval = SECOND_INTERVAL_DAYS
        else:
            interval = _round_half_up(interval * ease)
        repetitions += 1
    else:
        repetitions = 0
        interval = DEFAULT_INTERVAL_DAYS

    ease = next_ease_factor(ease, difficulty_rating)

    return ReviewSchedule(
        interval_days=interval,
        ease_factor=ease,
        repetition_count=repetitions,
        next_review_date=now + timedelta(days=interval),
    )
