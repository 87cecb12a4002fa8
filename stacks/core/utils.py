import datetime
from stacks.core.exceptions import ValidationError

PATRON_ID_MAX_LENGTH = 50


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, the representation every stored date uses."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)

def to_naive_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)

def require_datetime(value, label="Date") -> datetime.datetime:
    """Naive UTC form of `value`, which must be a datetime."""
    if not isinstance(value, datetime.datetime):
        raise ValidationError(f"{label} must be a datetime, got {value!r}.", reason="INVALID_DATE")
    return to_naive_utc(value)

def require_period(days, default, label="Period") -> int:
    """`days` as a positive whole number of days; `default` when None."""
    if days is None:
        return default
    # bool is an int subclass
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise ValidationError(
            f"{label} must be a whole number of days, at least one; got {days!r}.",
            reason="INVALID_PERIOD"
        )
    return days

def require_patron_id(patron_id) -> str:
    if not isinstance(patron_id, str) or not patron_id.strip():
        raise ValidationError(f"Invalid patron id {patron_id!r}.", reason="INVALID_PATRON_ID")
    if len(patron_id) > PATRON_ID_MAX_LENGTH:
        raise ValidationError(
            f"Patron id is longer than {PATRON_ID_MAX_LENGTH} characters.", reason="INVALID_PATRON_ID"
        )
    return patron_id

def coerce_enum(enum_cls, value, reason="INVALID_STATUS"):
    """`value` (a member or its value) as a member of `enum_cls`; None passes through."""
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {enum_cls.__name__} {value!r}.", reason=reason)
