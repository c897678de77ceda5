from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence

from .models import DailyAccuracy, DailyStats, Flashcard, FlashcardReview, assume_utc
from .scheduler import review_sort_key


def _latest_by_card(reviews: Iterable[FlashcardReview], learner_id: str) -> Dict[int, FlashcardReview]:
    latest: Dict[int, FlashcardReview] = {}
    for r in reviews:
        if r.user_id != learner_id:
            continue
        current = latest.get(r.flashcard_id)
        if current is None or review_sort_key(r) > review_sort_key(current):
            latest[r.flashcard_id] = r
    return latest


def due_cards(flashcards: Sequence[Flashcard], reviews: Iterable[FlashcardReview], learner_id: str, now: datetime, sort: bool = False) -> List[Flashcard]:
    """Cards the learner should review now.

    A card never reviewed by the learner is always due. Otherwise it is due
    once the next review date of its latest review has passed. Input order is
    kept unless ``sort`` is set, in which case never-reviewed cards come
    first followed by the most overdue. A naive ``now`` is read as UTC.
    """
    now = assume_utc(now)
    latest = _latest_by_card(reviews, learner_id)
    due = [c for c in flashcards if c.id not in latest or latest[c.id].next_review_date <= now]
    if sort:
        # stable sort keeps input order for cards with equal keys
        due.sort(key=lambda c: (c.id in latest, latest[c.id].next_review_date if c.id in latest else now))
    return due


def review_day(review: FlashcardReview, tz: tzinfo) -> date:
    return review.created_at.astimezone(tz).date()


def streak(reviews: Iterable[FlashcardReview], now: datetime, tz: tzinfo) -> int:
    """Consecutive study days ending today, in the given reference zone."""
    days = {review_day(r, tz) for r in reviews}
    count = 0
    day = assume_utc(now).astimezone(tz).date()
    while day in days:
        count += 1
        day -= timedelta(days=1)
    return count


def format_study_time(minutes: float) -> str:
    whole = int(minutes)
    if whole >= 60:
        return f'{whole // 60}h {whole % 60}m'
    return f'{whole}m'


def _accuracy(correct: int, total: int) -> int:
    if total == 0:
        return 0
    return int(correct * 100 / total + 0.5)


def today_stats(reviews: Iterable[FlashcardReview], now: datetime, tz: tzinfo, learner_id: Optional[str] = None) -> DailyStats:
    today = assume_utc(now).astimezone(tz).date()
    todays = [
        r for r in reviews
        if review_day(r, tz) == today and (learner_id is None or r.user_id == learner_id)
    ]
    correct = sum(1 for r in todays if r.is_correct)
    total = len(todays)
    # a missing latency counts as zero
    minutes = sum(r.response_time_ms or 0 for r in todays) / 60000
    return DailyStats(
        day=today,
        correct=correct,
        incorrect=total - correct,
        total=total,
        accuracy=_accuracy(correct, total),
        study_time_minutes=minutes,
        study_time_formatted=format_study_time(minutes),
    )


def daily_history(reviews: Iterable[FlashcardReview], now: datetime, tz: tzinfo, days: int = 7, learner_id: Optional[str] = None) -> List[DailyAccuracy]:
    """Per-day accuracy for the ``days`` days before today, newest first.

    Days without reviews are left out.
    """
    today = assume_utc(now).astimezone(tz).date()
    earliest = today - timedelta(days=days)
    buckets: Dict[date, List[int]] = {}
    for r in reviews:
        if learner_id is not None and r.user_id != learner_id:
            continue
        day = review_day(r, tz)
        if earliest <= day < today:
            bucket = buckets.setdefault(day, [0, 0])
            bucket[0] += 1 if r.is_correct else 0
            bucket[1] += 1
    return [
        DailyAccuracy(day=day, correct=correct, total=total, accuracy=_accuracy(correct, total))
        for day, (correct, total) in sorted(buckets.items(), reverse=True)
    ]


def average_accuracy(history: Sequence[DailyAccuracy]) -> int:
    if not history:
        return 0
    return int(sum(h.accuracy for h in history) / len(history) + 0.5)
