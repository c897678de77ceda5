import os
import json
import time
import pathlib
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

import redis
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from studyhub.utils import get_logger, get_settings, log_snapshot

from .errors import CorruptSnapshot
from .models import Snapshot

LOG = get_logger()

_TRANSIENT_REDIS_ERRORS = (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError)


class LoadResult:
    """Outcome of a snapshot load. ``error`` is set when the slot was corrupt."""

    def __init__(self, snapshot: Snapshot, error: Optional[CorruptSnapshot] = None, found: bool = False):
        self.snapshot = snapshot
        self.error = error
        self.found = found

    @property
    def ok(self) -> bool:
        return self.error is None


class SnapshotStore:
    """Durable key-value slot for the persisted part of a FlashcardStore.

    Uses redis when REDIS_URL is set and reachable, otherwise a JSON file in
    SNAPSHOT_DIR. Saves run on a single background worker in submission
    order and never raise.
    """

    def __init__(self, store_name: Optional[str] = None, snapshot_dir: Optional[str] = None, redis_url: Optional[str] = None):
        settings = get_settings()
        self.store_name = store_name or settings.STORE_NAME
        self._client = None
        self._use_redis = False
        self._path = pathlib.Path(snapshot_dir or settings.SNAPSHOT_DIR) / f'{self.store_name}.json'
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='snapshot')

        url = redis_url if redis_url is not None else settings.REDIS_URL
        if url:
            try:
                self._client = redis.from_url(url, decode_responses=True)
                self._client.ping()
                self._use_redis = True
                LOG.info('SnapshotStore using Redis', extra={'store_name': self.store_name})
            except Exception as e:
                LOG.warning('Redis not available for SnapshotStore, using local file', extra={'error': str(e), 'path': str(self._path)})
                self._client = None

        self._write_redis = retry(
            stop=stop_after_attempt(settings.REDIS_RETRY_ATTEMPTS),
            wait=wait_exponential(multiplier=settings.REDIS_RETRY_MULTIPLIER, max=settings.REDIS_RETRY_MAX_WAIT),
            retry=retry_if_exception_type(_TRANSIENT_REDIS_ERRORS),
            reraise=True,
        )(self._client_set)

    @property
    def backend(self) -> str:
        return 'redis' if self._use_redis else 'file'

    def _client_set(self, payload: str):
        self._client.set(self.store_name, payload)

    def _read_raw(self) -> Optional[str]:
        if self._use_redis:
            return self._client.get(self.store_name)
        if not self._path.exists():
            return None
        return self._path.read_text(encoding='utf-8')

    def _write_raw(self, payload: str):
        if self._use_redis:
            self._write_redis(payload)
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix('.tmp')
        tmp.write_text(payload, encoding='utf-8')
        os.replace(tmp, self._path)

    def load(self) -> LoadResult:
        start = time.time()
        try:
            raw = self._read_raw()
        except Exception as e:
            LOG.warning('snapshot_read_failed', extra={'store_name': self.store_name, 'error': str(e)})
            return LoadResult(Snapshot(), CorruptSnapshot(f'could not read snapshot: {e}'))
        if raw is None:
            return LoadResult(Snapshot())
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise CorruptSnapshot('snapshot is not a JSON object')
            snapshot = Snapshot.model_validate(data)
        except (ValueError, ValidationError, CorruptSnapshot) as e:
            LOG.warning('snapshot_corrupt', extra={'store_name': self.store_name, 'error': str(e)})
            error = e if isinstance(e, CorruptSnapshot) else CorruptSnapshot(str(e))
            return LoadResult(Snapshot(), error, found=True)
        log_snapshot('loaded', self.store_name, self.backend, int((time.time() - start) * 1000), len(snapshot.flashcards), len(snapshot.reviews))
        return LoadResult(snapshot, found=True)

    def save_now(self, snapshot: Snapshot) -> bool:
        start = time.time()
        try:
            self._write_raw(snapshot.model_dump_json())
        except Exception as e:
            LOG.error('snapshot_save_failed', extra={'store_name': self.store_name, 'backend': self.backend, 'error': str(e)})
            return False
        log_snapshot('saved', self.store_name, self.backend, int((time.time() - start) * 1000), len(snapshot.flashcards), len(snapshot.reviews))
        return True

    def save(self, snapshot: Snapshot) -> Future:
        """Queue a save. The returned future resolves to True on success."""
        return self._executor.submit(self.save_now, snapshot)

    def flush(self, timeout: Optional[float] = None) -> bool:
        # saves run in order on one worker, so a marker job waits for all earlier ones
        try:
            self._executor.submit(lambda: None).result(timeout=timeout)
        except Exception as e:
            LOG.warning('snapshot_flush_failed', extra={'store_name': self.store_name, 'error': str(e)})
            return False
        return True

    def clear(self) -> bool:
        try:
            if self._use_redis:
                self._client.delete(self.store_name)
            elif self._path.exists():
                self._path.unlink()
        except Exception as e:
            LOG.warning('snapshot_clear_failed', extra={'store_name': self.store_name, 'error': str(e)})
            return False
        return True

    def close(self):
        self._executor.shutdown(wait=True)

    def autosave(self, store) -> Callable[[], None]:
        """Save the store's snapshot after each of its mutations."""
        return store.subscribe(lambda s: self.save(s.snapshot()))
