import uuid

from doccustody.exceptions import ValidationError


def coerce_uuid(value):
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid identifier: {value}")


def apply_pagination(query, limit, offset):
    return query.limit(limit).offset(offset)
