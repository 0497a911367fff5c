from marshmallow import ValidationError


def normalize_email(raw):
    """Lowercase and trim an email so lookups and storage agree."""
    return raw.strip().lower() if isinstance(raw, str) else raw


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_not_blank(value) -> None:
    if is_blank(value):
        raise ValidationError("Field may not be blank.")
