"""
Flashcard review scheduling (SM-2).
Entity store, scheduler, due-set selection, export and snapshot persistence.
"""

from .errors import (
	FlashcardStoreError,
	InvalidRating,
	UnknownFormat,
	UnknownFlashcard,
	CorruptSnapshot,
)
from .models import (
	Flashcard,
	FlashcardReview,
	FlashcardSet,
	GenerationSettings,
	ReviewSchedule,
	DailyStats,
	DailyAccuracy,
	Snapshot,
)
from .scheduler import compute_next_review, latest_review, next_ease_factor
from .selector import due_cards, streak, today_stats, daily_history, average_accuracy
from .exporter import ExportFormat, export_flashcards
from .store import FlashcardStore
from .persistence import SnapshotStore, LoadResult

__all__ = [
	'FlashcardStoreError',
	'InvalidRating',
	'UnknownFormat',
	'UnknownFlashcard',
	'CorruptSnapshot',
	'Flashcard',
	'FlashcardReview',
	'FlashcardSet',
	'GenerationSettings',
	'ReviewSchedule',
	'DailyStats',
	'DailyAccuracy',
	'Snapshot',
	'compute_next_review',
	'latest_review',
	'next_ease_factor',
	'due_cards',
	'streak',
	'today_stats',
	'daily_history',
	'average_accuracy',
	'ExportFormat',
	'export_flashcards',
	'FlashcardStore',
	'SnapshotStore',
	'LoadResult',
]
