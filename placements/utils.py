import math
from datetime import date, datetime

from django.utils.dateparse import parse_date, parse_datetime


def round_half_up(value):
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def as_date(value):
    """
    Coerce a date, datetime or ISO string to a `date`.

    Returns None for anything that does not parse.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_datetime(value)
            if parsed is not None:
                return parsed.date()
            return parse_date(value)
        except ValueError:
            return None
    return None


def newest_first(rows, field='placement_date'):
    """Rows sorted by `field` descending; undated rows go last."""
    dated = [(as_date(row.get(field)), row) for row in rows]
    dated.sort(key=lambda pair: pair[0] or date.min, reverse=True)
    return [row for _, row in dated]
