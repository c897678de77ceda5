import os
import pytest
from pathlib import Path

from dotenv import load_dotenv

# load test env first
env_path = Path(__file__).resolve().parents[1] / '.env.test'
if env_path.exists():
    load_dotenv(env_path)

os.environ.setdefault('TESTING', '1')
os.environ.setdefault('LOG_LEVEL', 'WARNING')
os.environ.setdefault('LOG_FILE_PATH', '')


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    # every test gets its own snapshot directory and no redis
    from studyhub.utils.config import get_settings
    monkeypatch.setenv('SNAPSHOT_DIR', str(tmp_path / 'snapshots'))
    monkeypatch.setenv('REDIS_URL', '')
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now():
    from tests.fixtures.sample_data import NOW
    return NOW


@pytest.fixture
def sample_cards():
    from tests.fixtures.sample_data import sample_cards
    return sample_cards()


@pytest.fixture
def store(sample_cards):
    from studyhub.flashcards import FlashcardStore
    s = FlashcardStore()
    s.set_flashcards(sample_cards)
    return s


@pytest.fixture
def mock_redis_client(monkeypatch):
    from tests.fixtures.mock_redis import MockRedisClient
    client = MockRedisClient()
    monkeypatch.setattr('redis.from_url', lambda *a, **k: client)
    return client
