class FlashcardStoreError(Exception):
    pass


class InvalidRating(FlashcardStoreError, ValueError):
    """Difficulty self-rating outside the 0-5 integer scale."""

    def __init__(self, rating):
        self.rating = rating
        super().__init__(f'difficulty rating must be an integer in [0, 5], got {rating!r}')


class UnknownFormat(FlashcardStoreError, ValueError):
    def __init__(self, value):
        self.value = value
        super().__init__(f'unknown export format: {value!r}')


class UnknownFlashcard(FlashcardStoreError, LookupError):
    def __init__(self, flashcard_id):
        self.flashcard_id = flashcard_id
        super().__init__(f'flashcard {flashcard_id} not found')


class CorruptSnapshot(FlashcardStoreError):
    """Persisted snapshot could not be parsed or failed shape validation.

    Never raised past the persistence adapter; it is attached to the load
    result so callers can warn the user.
    """
