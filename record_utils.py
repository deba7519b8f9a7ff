"""
Shared record utilities for the Sanctions Law Reference Service

Pure helpers used by the query operations, the seed loader and the HTTP
layer: limit clamping, filter-list normalization, FTS5 query escaping,
JSON column encode/decode, date-age computation and the freshness
threshold table.
"""

import json
import logging
import math
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

MIN_LIMIT = 1
MAX_LIMIT = 50

# Days a source may go without an update before it is no longer "fresh".
FREQUENCY_THRESHOLDS: Dict[str, int] = {
    'daily': 30,
    'weekly': 60,
    'monthly': 120,
    'on_change': 90,
}
DEFAULT_FREQUENCY_THRESHOLD = 30

JURISDICTION_PREFIXES = (
    ('UN_', 'UN'),
    ('EU_', 'EU'),
    ('US_', 'US'),
    ('UK_', 'UK'),
)
DEFAULT_JURISDICTION = 'INTL'

FTS_OPERATORS = frozenset({'AND', 'OR', 'NOT', 'NEAR'})

_BAREWORD_RE = re.compile(r'^[\w]+$')
_CONTROL_CHARS_RE = re.compile(r'[\x00-\x1f\x7f]')


def normalize_limit(value: Any, default: int) -> int:
    """Clamp a requested result limit to [1, 50]

    Args:
        value: Requested limit (anything a caller might send)
        default: Value used when the request is missing or not a number

    Returns:
        Integer limit within bounds
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float):
        if math.isnan(value):
            return default
        if math.isinf(value):
            return MAX_LIMIT if value > 0 else MIN_LIMIT
        value = math.floor(value)
    return min(max(int(value), MIN_LIMIT), MAX_LIMIT)


def normalize_string_list(values: Optional[Iterable[Any]]) -> List[str]:
    """Trim, drop empties and deduplicate while keeping first-seen order"""
    if not values:
        return []
    seen = set()
    normalized = []
    for value in values:
        if not isinstance(value, str):
            continue
        trimmed = value.strip()
        if trimmed and trimmed not in seen:
            seen.add(trimmed)
            normalized.append(trimmed)
    return normalized


def clean_text(value: Optional[str]) -> Optional[str]:
    """Return the trimmed string, or None when blank."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def escape_fts_query(query: Optional[str]) -> str:
    """Make free user text safe to pass to an FTS5 MATCH expression

    Plain words pass through unchanged so FTS5 ANDs them together. Any word
    carrying syntax characters (parentheses, ``*``, ``:``, ``^``, quotes,
    hyphens) or spelling an operator keyword is quoted as a phrase, with
    embedded double quotes doubled. Words without a single letter or digit
    contribute no tokens and are dropped.

    Args:
        query: Raw search text

    Returns:
        Escaped MATCH expression, or an empty string when nothing is left
    """
    if not isinstance(query, str):
        return ''

    terms = []
    for word in query.split():
        if not any(ch.isalnum() for ch in word):
            continue
        if _BAREWORD_RE.match(word) and word not in FTS_OPERATORS:
            terms.append(word)
        else:
            terms.append('"' + word.replace('"', '""') + '"')
    return ' '.join(terms).strip()


def parse_json_field(value: Optional[str]) -> Optional[Any]:
    """Decode a JSON text column, returning None when empty or malformed"""
    if not value:
        return None
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring malformed JSON column value")
        return None


def parse_json_array(value: Optional[str]) -> List[str]:
    """Decode a JSON array column into its non-empty string items

    Anything that is not a JSON list decodes to an empty list.
    """
    parsed = parse_json_field(value)
    if not isinstance(parsed, list):
        return []
    return [item for item in parsed if isinstance(item, str) and item]


def encode_json_array(values: Optional[Iterable[Any]]) -> str:
    """Serialize a list column for storage"""
    return json.dumps(list(values or []), ensure_ascii=False)


def encode_json_object(value: Optional[Any]) -> Optional[str]:
    """Serialize an optional object column; falsy values are stored as NULL"""
    if not value:
        return None
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def like_pattern(term: str) -> str:
    """Build a case-insensitive substring pattern for LIKE."""
    return f"%{term.lower()}%"


def parse_iso_date(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime string into an aware datetime

    Naive values are taken as UTC. Returns None for anything unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def age_in_days(from_date: Any, to_date: Any) -> float:
    """Whole days elapsed between two ISO dates

    Args:
        from_date: Earlier date (e.g. a source's last update)
        to_date: Reference date

    Returns:
        Floored day count, never below zero, or ``math.inf`` when either
        date cannot be parsed
    """
    start = parse_iso_date(from_date)
    end = parse_iso_date(to_date)
    if start is None or end is None:
        return math.inf
    elapsed = (end - start).total_seconds() / 86400
    return max(0, math.floor(elapsed))


def frequency_threshold_days(frequency: Optional[str]) -> int:
    """Map an update frequency to its freshness threshold in days."""
    return FREQUENCY_THRESHOLDS.get(frequency or '', DEFAULT_FREQUENCY_THRESHOLD)


def infer_jurisdiction(source_id: Optional[str]) -> str:
    """Infer a jurisdiction code from a source id naming convention

    Used only when a record has no regime link to read it from.
    """
    for prefix, jurisdiction in JURISDICTION_PREFIXES:
        if source_id and source_id.startswith(prefix):
            return jurisdiction
    return DEFAULT_JURISDICTION


def sanitize_for_logging(value: Any, max_length: int = 200) -> str:
    """Strip control characters and truncate text before logging it

    Args:
        value: Any value; converted with str()
        max_length: Maximum length of the returned text

    Returns:
        Single-line text safe to interpolate into a log record
    """
    text = _CONTROL_CHARS_RE.sub(' ', str(value))
    if len(text) > max_length:
        text = text[:max_length] + '...'
    return text
