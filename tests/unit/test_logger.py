import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from studyhub.utils import get_logger, set_request_context
from studyhub.utils.config import get_settings


@pytest.fixture
def fresh_logger():
    created = []

    def make(name):
        logger = get_logger(name)
        created.append(logger)
        return logger

    yield make
    for logger in created:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_logger_follows_settings(fresh_logger, tmp_path, monkeypatch):
    log_dir = tmp_path / 'service-logs'
    monkeypatch.setenv('LOG_FILE_PATH', str(log_dir))
    monkeypatch.setenv('LOG_FORMAT', 'text')
    monkeypatch.setenv('LOG_LEVEL', 'DEBUG')
    monkeypatch.setenv('LOG_MAX_FILES', '2')
    get_settings.cache_clear()

    logger = fresh_logger('studyhub.tests.files')
    assert logger.level == logging.DEBUG
    files = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
    assert sorted(Path(h.baseFilename).name for h in files) == ['errors.log', 'reviews.log']
    assert all(Path(h.baseFilename).parent == log_dir for h in files)
    assert all(h.backupCount == 2 for h in files)

    set_request_context('req-42')
    logger.error('snapshot write failed')
    logger.info('review recorded')
    for h in files:
        h.flush()
    errors = (log_dir / 'errors.log').read_text()
    assert '[req-42] snapshot write failed' in errors
    assert 'review recorded' not in errors
    assert 'review recorded' in (log_dir / 'reviews.log').read_text()


def test_empty_log_path_logs_to_stdout_only(fresh_logger, monkeypatch):
    monkeypatch.setenv('LOG_FILE_PATH', '')
    get_settings.cache_clear()
    logger = fresh_logger('studyhub.tests.stdout')
    assert len(logger.handlers) == 1
    assert not isinstance(logger.handlers[0], RotatingFileHandler)
