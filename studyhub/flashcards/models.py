from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Set

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def assume_utc(value: datetime) -> datetime:
    # naive timestamps from older snapshots are read as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


Timestamp = Annotated[datetime, AfterValidator(assume_utc)]


class Difficulty(str, Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'


class QuestionType(str, Enum):
    OPEN = 'open'
    MULTIPLE_CHOICE = 'multiple_choice'
    FILL_BLANK = 'fill_blank'


class TargetDifficulty(str, Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'
    MIXED = 'mixed'


class Flashcard(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    id: int
    document_id: int
    question: str
    answer: str
    difficulty: Difficulty = Difficulty.MEDIUM
    question_type: QuestionType = QuestionType.OPEN
    options: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def choices_for_multiple_choice(self):
        if self.question_type == QuestionType.MULTIPLE_CHOICE.value and not self.options:
            raise ValueError('multiple_choice flashcards need at least one option')
        return self


class FlashcardReview(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    flashcard_id: int
    user_id: str
    is_correct: bool
    response_time_ms: Optional[int] = Field(None, ge=0)
    difficulty_rating: int = Field(..., ge=0, le=5)
    next_review_date: Timestamp
    interval_days: int = Field(..., ge=1)
    ease_factor: float = Field(..., ge=1.3)
    repetition_count: int = Field(..., ge=0)
    created_at: Timestamp = Field(default_factory=utcnow)


class FlashcardSet(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    document_id: int
    user_id: str
    settings: Dict[str, Any] = Field(default_factory=dict)
    flashcards: Optional[List[Flashcard]] = None
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)


class GenerationSettings(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    count: int = Field(15, ge=1)
    difficulty: TargetDifficulty = TargetDifficulty.MIXED
    question_types: Set[QuestionType] = Field(default_factory=lambda: {QuestionType.OPEN, QuestionType.MULTIPLE_CHOICE}, validation_alias=AliasChoices('question_types', 'questionTypes'))
    focus_areas: List[str] = Field(default_factory=list, validation_alias=AliasChoices('focus_areas', 'focusAreas'))

    @field_validator('question_types')
    @classmethod
    def at_least_one_type(cls, v):
        if not v:
            raise ValueError('question_types must not be empty')
        return v


class ReviewSchedule(BaseModel):
    """Spacing parameters computed for a new review record."""
    model_config = ConfigDict(frozen=True)

    interval_days: int
    ease_factor: float
    repetition_count: int
    next_review_date: Timestamp


class DailyStats(BaseModel):
    day: date
    correct: int = 0
    incorrect: int = 0
    total: int = 0
    accuracy: int = 0
    study_time_minutes: float = 0.0
    study_time_formatted: str = '0m'

    @property
    def has_reviews(self) -> bool:
        return self.total > 0


class DailyAccuracy(BaseModel):
    day: date
    correct: int
    total: int
    accuracy: int


class Snapshot(BaseModel):
    """Persisted subset of the store state. Missing fields load as empty."""
    model_config = ConfigDict(extra='ignore')

    flashcards: List[Flashcard] = Field(default_factory=list)
    flashcard_sets: List[FlashcardSet] = Field(default_factory=list, validation_alias=AliasChoices('flashcard_sets', 'flashcardSets'))
    reviews: List[FlashcardReview] = Field(default_factory=list)
    generation_settings: GenerationSettings = Field(default_factory=GenerationSettings, validation_alias=AliasChoices('generation_settings', 'generationSettings'))
