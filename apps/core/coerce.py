"""
Conversions from JSON request values to model values.

Each helper accepts the already-typed Python value as well (services are
called directly from tests and management commands) and raises a
field-keyed ValidationError on bad input.
"""

import datetime
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime


def _invalid(field, message):
    return ValidationError({field: [message]})


def to_date(value, field):
    if value in (None, ''):
        return None
    if isinstance(value, datetime.datetime):
        return timezone.localtime(value).date() if timezone.is_aware(value) else value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        parsed = parse_date(str(value)[:10])
    except ValueError:
        parsed = None
    if parsed is None:
        raise _invalid(field, 'Enter a valid date (YYYY-MM-DD).')
    return parsed


def to_datetime(value, field):
    """
    Parse a datetime; naive values and bare dates are taken in TIME_ZONE.

    A bare date means the end of that day.
    """
    if value in (None, ''):
        return None
    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, datetime.date):
        parsed = datetime.datetime.combine(value, datetime.time(23, 59, 59))
    else:
        text = str(value).strip()
        try:
            day = parse_date(text)
        except ValueError:
            day = None
        if day is not None:
            parsed = datetime.datetime.combine(day, datetime.time(23, 59, 59))
        else:
            try:
                parsed = parse_datetime(text)
            except ValueError:
                parsed = None
            if parsed is None:
                raise _invalid(field, 'Enter a valid date and time.')

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def to_decimal(value, field):
    if value in (None, ''):
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise _invalid(field, 'Enter a number.')
    if not number.is_finite():
        raise _invalid(field, 'Enter a number.')
    if number < 0:
        raise _invalid(field, 'Must not be negative.')
    return number


def to_pk(value, field):
    """Accept a model instance or an integer-like id."""
    if value in (None, ''):
        return None
    if hasattr(value, 'pk'):
        return value.pk
    try:
        return int(value)
    except (TypeError, ValueError):
        raise _invalid(field, 'Enter a valid id.')
