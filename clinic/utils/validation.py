# /clinic/utils/validation.py
"""Request validation helpers.

Controllers call these before touching the database so that bad input is
reported as a 400 with per-field reasons instead of surfacing as a
constraint violation.
"""
import re
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import request

CENTS = Decimal('0.01')
# Numeric(10, 2) upper bound
MAX_AMOUNT = Decimal('99999999.99')
TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


class ValidationError(Exception):
    """Raised for input that fails validation; rendered as a 400."""
    status_code = 400

    def __init__(self, message, fields=None):
        super().__init__(message)
        self.message = message
        self.fields = fields or {}

    def to_dict(self):
        body = {'error': self.message}
        if self.fields:
            body['fields'] = self.fields
        return body


def get_json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def require_fields(data, fields):
    missing = [field for field in fields if data.get(field) in (None, '')]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            {field: 'required' for field in missing}
        )


def parse_decimal(value, field, minimum=None, maximum=MAX_AMOUNT):
    """Parses a monetary value and rounds it to cents."""
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be a number', {field: 'invalid'})
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{field} must be a number', {field: 'invalid'})
    if not amount.is_finite():
        raise ValidationError(f'{field} must be a number', {field: 'invalid'})

    amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if minimum is not None and amount < minimum:
        raise ValidationError(f'{field} must be at least {minimum}', {field: 'out_of_range'})
    if maximum is not None and amount > maximum:
        raise ValidationError(f'{field} must not exceed {maximum}', {field: 'out_of_range'})
    return amount


def parse_int(value, field, minimum=None):
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be an integer', {field: 'invalid'})
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer', {field: 'invalid'})
    if isinstance(value, float) and value != number:
        raise ValidationError(f'{field} must be an integer', {field: 'invalid'})
    if minimum is not None and number < minimum:
        raise ValidationError(f'{field} must be at least {minimum}', {field: 'out_of_range'})
    return number


def parse_date(value, field):
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f'{field} must be a date (YYYY-MM-DD)', {field: 'invalid'})


def parse_time(value, field):
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValidationError(f'{field} must be a time (HH:MM)', {field: 'invalid'})
    return value


def parse_bool(value, field, default=None):
    """Accepts JSON booleans or "true"/"false"; a missing or null value gives ``default``."""
    if value is None and default is not None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ('true', 'false'):
        return value.lower() == 'true'
    raise ValidationError(f'{field} must be a boolean', {field: 'invalid'})


def parse_choice(value, field, choices):
    if value not in choices:
        raise ValidationError(
            f"{field} must be one of: {', '.join(choices)}",
            {field: 'invalid_choice'}
        )
    return value


def optional(data, field, parser, *args, **kwargs):
    """Applies a parser to an optional field, passing None through."""
    value = data.get(field)
    if value is None or value == '':
        return None
    return parser(value, field, *args, **kwargs)


def query_int(name):
    """Reads an optional integer query-string parameter."""
    value = request.args.get(name)
    if value is None or value == '':
        return None
    return parse_int(value, name)


def query_date(name):
    value = request.args.get(name)
    if value is None or value == '':
        return None
    return parse_date(value, name)
