from datetime import datetime, timedelta, timezone

from studyhub.flashcards import Flashcard, FlashcardReview, FlashcardSet

NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)


def make_card(card_id, question=None, answer=None, **kw):
    return Flashcard(
        id=card_id,
        document_id=kw.pop('document_id', 1),
        question=question or f'Question {card_id}?',
        answer=answer or f'Answer {card_id}',
        **kw,
    )


def make_review(review_id, flashcard_id, created_at, next_review_date=None, user_id='learner-1', is_correct=True, **kw):
    return FlashcardReview(
        id=review_id,
        flashcard_id=flashcard_id,
        user_id=user_id,
        is_correct=is_correct,
        difficulty_rating=kw.pop('difficulty_rating', 4),
        next_review_date=next_review_date or created_at + timedelta(days=1),
        interval_days=kw.pop('interval_days', 1),
        ease_factor=kw.pop('ease_factor', 2.5),
        repetition_count=kw.pop('repetition_count', 1),
        created_at=created_at,
        **kw,
    )


def make_set(set_id, cards=None, **kw):
    return FlashcardSet(
        id=set_id,
        name=kw.pop('name', f'Set {set_id}'),
        document_id=kw.pop('document_id', 1),
        user_id=kw.pop('user_id', 'learner-1'),
        flashcards=cards,
        **kw,
    )


def sample_cards():
    return [
        make_card(1, 'What is photosynthesis?', 'Conversion of light to chemical energy', difficulty='easy'),
        make_card(2, 'Chlorophyll absorbs which colours?', 'Red and blue', difficulty='medium'),
        make_card(3, 'Pick the organelle', 'Chloroplast', question_type='multiple_choice', options=['Nucleus', 'Chloroplast']),
    ]
