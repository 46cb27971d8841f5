"""Due/creation date helpers.

Remote timestamps are normalized on the way in: a timezone-aware timestamp
becomes local ``YYYY-MM-DD HH:MM``, anything that merely starts with a date
keeps its first 10 characters. ``parse_due_date`` turns user input such as
``tomorrow``, ``next friday`` or ``in 3 days`` into the same local format.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional

DATE_FMT = '%Y-%m-%d'
DATETIME_FMT = '%Y-%m-%d %H:%M'

WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday',
            'saturday', 'sunday']
_WEEKDAY_ABBR = {d[:3]: i for i, d in enumerate(WEEKDAYS)}

_UNIT_ALIASES = {
    'm': 'minutes', 'min': 'minutes', 'mins': 'minutes', 'minute': 'minutes',
    'minutes': 'minutes',
    'h': 'hours', 'hr': 'hours', 'hrs': 'hours', 'hour': 'hours',
    'hours': 'hours',
    'd': 'days', 'day': 'days', 'days': 'days',
    'w': 'weeks', 'week': 'weeks', 'weeks': 'weeks',
}


def _parse_aware(s: str) -> Optional[datetime]:
    try:
        dt = datetime.fromisoformat(s.strip().replace('Z', '+00:00'))
    except ValueError:
        return None
    if dt.tzinfo is None:
        return None
    return dt


def _looks_like_date(s: str) -> bool:
    return len(s) >= 10 and s[4] == '-'


def format_remote_due(raw: Optional[str]) -> Optional[str]:
    """Normalize a remote due timestamp for local display; ``None`` if unusable."""
    if not raw:
        return None
    dt = _parse_aware(raw)
    if dt is not None:
        return dt.astimezone().strftime(DATETIME_FMT)
    if _looks_like_date(raw):
        return raw[:10]
    return None


def format_remote_created(raw: Optional[str]) -> str:
    """Normalize a remote creation timestamp to a local date, today if unusable."""
    if raw:
        dt = _parse_aware(raw)
        if dt is not None:
            return dt.astimezone().strftime(DATE_FMT)
        if _looks_like_date(raw):
            return raw[:10]
    return datetime.now().strftime(DATE_FMT)


def due_to_utc_iso(due: Optional[str]) -> Optional[str]:
    """Convert a local due string back to a UTC ISO-8601 timestamp for the wire."""
    if not due:
        return None
    dt = _parse_aware(due)
    if dt is None:
        for fmt in (DATETIME_FMT, DATE_FMT):
            try:
                dt = datetime.strptime(due.strip(), fmt).astimezone()
                break
            except ValueError:
                continue
    if dt is None:
        raise ValueError(f"Unrecognized due date: {due!r}")
    return dt.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.000Z')


# -- natural-language input ---------------------------------------------------

def _weekday_index(word: str) -> Optional[int]:
    if word in WEEKDAYS:
        return WEEKDAYS.index(word)
    return _WEEKDAY_ABBR.get(word)


def _next_weekday(idx: int, start: date, skip_today: bool) -> date:
    ahead = (idx - start.weekday()) % 7
    if ahead == 0 and skip_today:
        ahead = 7
    return start + timedelta(days=ahead)


def _parse_time(s: str) -> Optional[tuple]:
    m = re.fullmatch(r'(\d{1,2}):(\d{2})', s)
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        return None
    return hour, minute


def _offset(num: str, unit: str) -> timedelta:
    try:
        n = int(num)
    except ValueError:
        raise ValueError(f"Not a number: {num!r}")
    key = _UNIT_ALIASES.get(unit)
    if key is None:
        raise ValueError(f"Unknown time unit: {unit!r}")
    return timedelta(**{key: n})


def _format(value, has_time: bool) -> str:
    return value.strftime(DATETIME_FMT if has_time else DATE_FMT)


def parse_due_date(text: str, now: Optional[datetime] = None) -> str:
    """Parse user due-date input into ``YYYY-MM-DD`` or ``YYYY-MM-DD HH:MM``.

    Raises ``ValueError`` with a readable message on anything it does not
    understand.
    """
    words = text.strip().lower().split()
    if not words:
        raise ValueError("Please enter a due date")
    now = now or datetime.now()
    today_ = now.date()

    if words == ['now']:
        return _format(now, True)
    if words == ['today']:
        return _format(today_, False)
    if words in (['tomorrow'], ['tmr']):
        return _format(today_ + timedelta(days=1), False)
    if words == ['yesterday']:
        return _format(today_ - timedelta(days=1), False)
    if words in (['week'], ['next', 'week']):
        return _format(today_ + timedelta(days=7), False)
    if words in (['month'], ['next', 'month']):
        return _format(today_ + timedelta(days=30), False)

    if words[0] == 'in':
        words = words[1:]
        if len(words) not in (2, 4):
            raise ValueError(f"Could not parse due date: {text!r}")

    # "3 days", "1 day 2 hours"
    if len(words) in (2, 4) and words[0].isdigit():
        delta = _offset(words[0], words[1])
        if len(words) == 4:
            delta += _offset(words[2], words[3])
        has_time = delta.seconds != 0
        return _format(now + delta, has_time)

    # "friday", "next friday", "this friday 15:30"
    modifier = None
    if words[0] in ('next', 'this') and len(words) > 1:
        modifier, words = words[0], words[1:]
    idx = _weekday_index(words[0])
    if idx is not None and len(words) <= 2:
        day = _next_weekday(idx, today_, skip_today=(modifier == 'next'))
        if len(words) == 2:
            hm = _parse_time(words[1])
            if hm is None:
                raise ValueError(f"Could not parse time: {words[1]!r}")
            return _format(datetime.combine(day, datetime.min.time()).replace(
                hour=hm[0], minute=hm[1]), True)
        return _format(day, False)
    if modifier:
        raise ValueError(f"Could not parse due date: {text!r}")

    # "2025-03-01", "2025-03-01 14:00", "14:00"
    if len(words) == 2:
        try:
            return _format(datetime.strptime(' '.join(words), DATETIME_FMT), True)
        except ValueError:
            pass
    if len(words) == 1:
        try:
            return _format(datetime.strptime(words[0], DATE_FMT), False)
        except ValueError:
            pass
        hm = _parse_time(words[0])
        if hm is not None:
            at = now.replace(hour=hm[0], minute=hm[1], second=0, microsecond=0)
            if at < now:
                at += timedelta(days=1)
            return _format(at, True)
    raise ValueError(f"Could not parse due date: {text!r}")
