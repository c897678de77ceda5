import json

from studyhub.flashcards import CorruptSnapshot, FlashcardStore, Snapshot, SnapshotStore
from tests.fixtures.mock_redis import MockRedisClient


def test_load_missing_slot_gives_defaults(tmp_path):
    result = SnapshotStore(snapshot_dir=str(tmp_path)).load()
    assert result.ok
    assert not result.found
    assert result.snapshot == Snapshot()


def test_file_round_trip(tmp_path, store, now):
    store.record_answer(1, 'learner-1', True, 4, response_time_ms=1500, now=now)
    snapshots = SnapshotStore(snapshot_dir=str(tmp_path))
    assert snapshots.backend == 'file'
    assert snapshots.save(store.snapshot()).result(timeout=5) is True

    result = snapshots.load()
    assert result.ok and result.found
    restored = FlashcardStore(result.snapshot)
    assert [c.question for c in restored.flashcards] == [c.question for c in store.flashcards]
    assert restored.reviews == store.reviews
    snapshots.close()


def test_snapshot_missing_reviews_field(tmp_path, sample_cards):
    path = tmp_path / 'flashcard-store.json'
    path.write_text(json.dumps({'flashcards': [c.model_dump(mode='json') for c in sample_cards]}))
    result = SnapshotStore(snapshot_dir=str(tmp_path)).load()
    assert result.ok
    assert result.snapshot.reviews == []
    assert len(result.snapshot.flashcards) == 3


def test_camel_case_snapshot_fields(tmp_path):
    path = tmp_path / 'flashcard-store.json'
    path.write_text(json.dumps({'flashcardSets': [], 'generationSettings': {'count': 5, 'questionTypes': ['fill_blank']}}))
    result = SnapshotStore(snapshot_dir=str(tmp_path)).load()
    assert result.ok
    assert result.snapshot.generation_settings.count == 5
    assert result.snapshot.generation_settings.question_types == {'fill_blank'}


def test_unparseable_snapshot_reports_corrupt(tmp_path):
    (tmp_path / 'flashcard-store.json').write_text('{not json')
    result = SnapshotStore(snapshot_dir=str(tmp_path)).load()
    assert not result.ok
    assert isinstance(result.error, CorruptSnapshot)
    assert result.snapshot == Snapshot()


def test_invalid_shape_reports_corrupt(tmp_path):
    (tmp_path / 'flashcard-store.json').write_text(json.dumps({'reviews': [{'id': 'x'}]}))
    result = SnapshotStore(snapshot_dir=str(tmp_path)).load()
    assert isinstance(result.error, CorruptSnapshot)
    assert result.snapshot.reviews == []


def test_non_object_snapshot_reports_corrupt(tmp_path):
    (tmp_path / 'flashcard-store.json').write_text('[]')
    assert isinstance(SnapshotStore(snapshot_dir=str(tmp_path)).load().error, CorruptSnapshot)


def test_autosave_writes_after_mutation(tmp_path, store, now):
    snapshots = SnapshotStore(snapshot_dir=str(tmp_path))
    stop = snapshots.autosave(store)
    store.record_answer(3, 'learner-1', True, 5, now=now)
    assert snapshots.flush(timeout=5)
    assert len(snapshots.load().snapshot.reviews) == 1

    stop()
    store.record_answer(3, 'learner-1', True, 5, now=now)
    snapshots.flush(timeout=5)
    assert len(snapshots.load().snapshot.reviews) == 1
    snapshots.close()


def test_save_failure_is_reported_not_raised(tmp_path, store):
    blocker = tmp_path / 'blocker'
    blocker.write_text('a file, not a directory')
    snapshots = SnapshotStore(snapshot_dir=str(blocker / 'nested'))
    assert snapshots.save(store.snapshot()).result(timeout=5) is False
    snapshots.close()


def test_redis_backend(mock_redis_client, store):
    snapshots = SnapshotStore(redis_url='redis://test:6379/0')
    assert snapshots.backend == 'redis'
    assert snapshots.save_now(store.snapshot())
    assert 'flashcard-store' in mock_redis_client.store
    assert len(snapshots.load().snapshot.flashcards) == 3
    assert snapshots.clear()
    assert snapshots.load().snapshot == Snapshot()
    snapshots.close()


def test_redis_write_retries_transient_errors(monkeypatch, store):
    monkeypatch.setenv('REDIS_RETRY_MULTIPLIER', '0')
    from studyhub.utils.config import get_settings
    get_settings.cache_clear()
    client = MockRedisClient(fail_writes=2)
    monkeypatch.setattr('redis.from_url', lambda *a, **k: client)
    snapshots = SnapshotStore(redis_url='redis://test:6379/0')
    assert snapshots.save_now(store.snapshot())
    assert client.set_calls == 3
    snapshots.close()


def test_unreachable_redis_falls_back_to_file(monkeypatch, tmp_path):
    class DownRedis(MockRedisClient):
        def ping(self):
            raise ConnectionError('refused')

    monkeypatch.setattr('redis.from_url', lambda *a, **k: DownRedis())
    snapshots = SnapshotStore(snapshot_dir=str(tmp_path), redis_url='redis://down:6379/0')
    assert snapshots.backend == 'file'
    snapshots.close()
