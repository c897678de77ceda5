import os
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from studyhub.flashcards import (
    Flashcard,
    FlashcardSet,
    GenerationSettings,
    FlashcardStore,
    FlashcardReview,
    SnapshotStore,
    ExportFormat,
    InvalidRating,
    UnknownFormat,
    UnknownFlashcard,
    streak,
    today_stats,
    daily_history,
    average_accuracy,
)
from studyhub.flashcards.models import utcnow
from studyhub.utils import get_logger, get_settings, log_error, log_request, set_request_context

LOG = get_logger()

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    LOG.info('Review service starting', extra={'env': settings.ENVIRONMENT})
    snapshots = SnapshotStore()
    result = snapshots.load()
    if result.error is not None:
        LOG.warning('Persisted snapshot is corrupt; starting empty', extra={'error': str(result.error)})
    store = FlashcardStore(result.snapshot)
    app.state.snapshots = snapshots
    app.state.store = store
    stop_autosave = snapshots.autosave(store)
    LOG.info('FlashcardStore ready', extra={'backend': snapshots.backend, 'flashcards': len(store.flashcards), 'reviews': len(store.reviews)})
    yield
    LOG.info('Review service shutting down')
    stop_autosave()
    snapshots.flush(timeout=settings.SHUTDOWN_TIMEOUT_MS / 1000)
    snapshots.close()


app = FastAPI(title='Study Hub Review Service', version='1.0.0', description='Spaced-repetition review scheduler', lifespan=lifespan)

origins = [o.strip() for o in settings.CORS_ORIGIN.split(',') if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware('http')
async def add_request_id_and_logging(request: Request, call_next):
    request_id = request.headers.get('x-request-id') or os.urandom(8).hex()
    request.state.request_id = request_id
    set_request_context(request_id)
    start = time.time()
    LOG.info('http_request_start', extra={'method': request.method, 'path': request.url.path, 'request_id': request_id})
    try:
        response: Response = await call_next(request)
    except Exception:
        LOG.exception('Unhandled exception in request', exc_info=True)
        body = {'success': False, 'error': {'message': 'Internal server error', 'request_id': request_id}}
        return JSONResponse(status_code=500, content=body)
    duration = int((time.time() - start) * 1000)
    log_request(request_id, request.method, request.url.path, response.status_code, duration, request.client.host if request.client else None)
    response.headers['X-Request-ID'] = request_id
    return response


def _store(request: Request) -> FlashcardStore:
    return request.app.state.store


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', None) or os.urandom(8).hex()


def _error(status_code: int, error: str, details: str, request_id: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'success': False, 'error': error, 'details': details, 'request_id': request_id})


def _dump(items) -> List[Dict[str, Any]]:
    return [i.model_dump(mode='json') for i in items]


class RecordAnswerRequest(BaseModel):
    flashcard_id: int
    learner_id: Optional[str] = None
    is_correct: bool
    difficulty_rating: Any = Field(..., description='Self-rating, integer 0-5')
    response_time_ms: Optional[int] = Field(None, ge=0)


class RecordAnswerResponse(BaseModel):
    success: bool
    review: FlashcardReview
    request_id: str


class FlashcardUpdateRequest(BaseModel):
    question: Optional[str] = None
    answer: Optional[str] = None
    difficulty: Optional[str] = None
    question_type: Optional[str] = None
    options: Optional[List[str]] = None
    tags: Optional[List[str]] = None


class GenerationSettingsUpdate(BaseModel):
    count: Optional[int] = Field(None, ge=1)
    difficulty: Optional[str] = None
    question_types: Optional[List[str]] = None
    focus_areas: Optional[List[str]] = None


@app.get('/health')
async def health():
    return {'status': 'ok', 'timestamp': utcnow().isoformat(), 'service': 'review-scheduler'}


@app.get('/flashcards')
async def list_flashcards(request: Request):
    return {'success': True, 'flashcards': _dump(_store(request).flashcards), 'request_id': _request_id(request)}


@app.put('/flashcards')
async def replace_flashcards(cards: List[Flashcard], request: Request):
    _store(request).set_flashcards(cards)
    return {'success': True, 'count': len(cards), 'request_id': _request_id(request)}


@app.post('/flashcards', status_code=201)
async def add_flashcard(card: Flashcard, request: Request):
    _store(request).add_flashcard(card)
    return {'success': True, 'flashcard': card.model_dump(mode='json'), 'request_id': _request_id(request)}


@app.patch('/flashcards/{flashcard_id}')
async def update_flashcard(flashcard_id: int, req: FlashcardUpdateRequest, request: Request):
    store = _store(request)
    request_id = _request_id(request)
    updates = req.model_dump(exclude_unset=True)
    current = store.get_flashcard(flashcard_id)
    if current is None:
        return _error(404, 'Flashcard not found', f'no flashcard with id {flashcard_id}', request_id)
    try:
        merged = Flashcard.model_validate({**current.model_dump(), **updates, 'updated_at': utcnow()})
    except ValueError as e:
        return _error(422, 'Validation failed', str(e), request_id)
    store.update_flashcard(flashcard_id, **merged.model_dump(exclude={'id'}))
    return {'success': True, 'flashcard': merged.model_dump(mode='json'), 'request_id': request_id}


@app.delete('/flashcards/{flashcard_id}')
async def remove_flashcard(flashcard_id: int, request: Request):
    _store(request).remove_flashcard(flashcard_id)
    return {'success': True, 'request_id': _request_id(request)}


@app.get('/flashcard-sets')
async def list_flashcard_sets(request: Request):
    return {'success': True, 'flashcard_sets': _dump(_store(request).flashcard_sets), 'request_id': _request_id(request)}


@app.post('/flashcard-sets', status_code=201)
async def add_flashcard_set(flashcard_set: FlashcardSet, request: Request):
    _store(request).add_flashcard_set(flashcard_set)
    return {'success': True, 'flashcard_set': flashcard_set.model_dump(mode='json'), 'request_id': _request_id(request)}


@app.delete('/flashcard-sets/{set_id}')
async def remove_flashcard_set(set_id: int, request: Request):
    _store(request).remove_flashcard_set(set_id)
    return {'success': True, 'request_id': _request_id(request)}


@app.post('/reviews', response_model=RecordAnswerResponse)
async def record_answer(req: RecordAnswerRequest, request: Request):
    request_id = _request_id(request)
    learner_id = req.learner_id or settings.DEFAULT_LEARNER_ID
    try:
        review = _store(request).record_answer(req.flashcard_id, learner_id, req.is_correct, req.difficulty_rating, req.response_time_ms)
        return RecordAnswerResponse(success=True, review=review, request_id=request_id)
    except InvalidRating as e:
        LOG.warning('invalid_rating', extra={'request_id': request_id, 'rating': repr(e.rating)})
        return _error(422, 'Invalid rating', str(e), request_id)
    except UnknownFlashcard as e:
        return _error(404, 'Flashcard not found', str(e), request_id)
    except Exception as e:
        log_error(e, {'request_id': request_id, 'flashcard_id': req.flashcard_id})
        return _error(500, 'Unexpected error', str(e), request_id)


@app.get('/reviews/due/{learner_id}')
async def due_for_review(learner_id: str, request: Request, sort: bool = False, limit: Optional[int] = None):
    cards = _store(request).due_cards(learner_id, sort=sort)
    if limit is not None:
        cards = cards[:max(limit, 0)]
    return {'success': True, 'count': len(cards), 'flashcards': _dump(cards), 'request_id': _request_id(request)}


@app.get('/stats/{learner_id}')
async def study_stats(learner_id: str, request: Request, days: int = 7):
    now = utcnow()
    tz = settings.study_tz
    reviews = [r for r in _store(request).reviews if r.user_id == learner_id]
    history = daily_history(reviews, now, tz, days=days)
    return {
        'success': True,
        'streak': streak(reviews, now, tz),
        'today': today_stats(reviews, now, tz).model_dump(mode='json'),
        'history': _dump(history),
        'average_accuracy': average_accuracy(history),
        'request_id': _request_id(request),
    }


@app.get('/export')
async def export_flashcards_endpoint(request: Request, format: str = 'json'):
    try:
        export_format = ExportFormat.parse(format)
    except UnknownFormat:
        LOG.warning('export_unknown_format', extra={'format': format, 'request_id': _request_id(request)})
        export_format = ExportFormat.JSON
    payload = _store(request).export(export_format)
    media_type = 'application/json' if export_format == ExportFormat.JSON else 'text/plain'
    return PlainTextResponse(payload, media_type=media_type, headers={'X-Request-ID': _request_id(request)})


@app.patch('/settings/generation')
async def update_generation_settings(req: GenerationSettingsUpdate, request: Request):
    request_id = _request_id(request)
    store = _store(request)
    try:
        merged = GenerationSettings.model_validate({**store.generation_settings.model_dump(), **req.model_dump(exclude_unset=True)})
    except ValueError as e:
        return _error(422, 'Validation failed', str(e), request_id)
    store.set_generation_settings(**merged.model_dump())
    return {'success': True, 'generation_settings': merged.model_dump(mode='json'), 'request_id': request_id}


@app.post('/reset')
async def reset_store(request: Request):
    _store(request).reset()
    return {'success': True, 'request_id': _request_id(request)}


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'main:app',
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.ENVIRONMENT == 'development',
    )
