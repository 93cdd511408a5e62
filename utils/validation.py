from services.errors import ValidationError

_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}


def parse_int(value, field: str) -> int:
    """JSON ints and numeric strings only; bools and floats are rejected."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{field} must be an integer")


def parse_bool(value, field: str, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
        return value.strip().lower() in _TRUE
    raise ValidationError(f"{field} must be true or false")
