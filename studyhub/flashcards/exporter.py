import csv
import io
import json
from enum import Enum
from typing import Sequence, Union

from studyhub.utils import get_logger, log_export

from .errors import UnknownFormat
from .models import Flashcard

LOG = get_logger()

CSV_HEADER = 'Question,Answer,Difficulty,Type'


class ExportFormat(str, Enum):
    CSV = 'csv'
    JSON = 'json'
    ANKI = 'anki'

    @classmethod
    def parse(cls, value: Union[str, 'ExportFormat']) -> 'ExportFormat':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownFormat(value)


def _plain(value) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _to_csv(cards: Sequence[Flashcard]) -> str:
    buf = io.StringIO()
    # QUOTE_ALL doubles embedded quote characters
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator='\n')
    for card in cards:
        writer.writerow([card.question, card.answer, _plain(card.difficulty), _plain(card.question_type)])
    rows = buf.getvalue().rstrip('\n')
    if not rows:
        return CSV_HEADER + '\n'
    return CSV_HEADER + '\n' + rows


def _to_json(cards: Sequence[Flashcard]) -> str:
    return json.dumps([c.model_dump(mode='json') for c in cards], indent=2, ensure_ascii=False)


def _to_anki(cards: Sequence[Flashcard]) -> str:
    return '\n'.join(f'{c.question}\t{c.answer}' for c in cards)


_ENCODERS = {
    ExportFormat.CSV: _to_csv,
    ExportFormat.JSON: _to_json,
    ExportFormat.ANKI: _to_anki,
}


def export_flashcards(cards: Sequence[Flashcard], export_format: Union[str, ExportFormat] = ExportFormat.JSON) -> str:
    """Serialize cards to csv, json or anki text. Unknown formats give json."""
    try:
        fmt = ExportFormat.parse(export_format)
    except UnknownFormat as e:
        LOG.warning('export_unknown_format', extra={'format': str(e.value), 'fallback': ExportFormat.JSON.value})
        fmt = ExportFormat.JSON
    payload = _ENCODERS[fmt](cards)
    log_export(fmt.value, len(cards), len(payload))
    return payload
