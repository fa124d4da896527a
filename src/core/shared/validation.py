"""
Shared validation predicates.

Entities call these from their `create` factories and mutators so that
construction and update apply exactly the same rules. Each helper returns
the normalized value or raises ValidationError naming the field.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
import re
from typing import Optional

from .exceptions import ValidationError


VIN_LENGTH = 17
VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")

PHONE_MIN_LENGTH = 10
PHONE_MAX_LENGTH = 15

MIN_CAR_YEAR = 1900
MONEY_DECIMAL_PLACES = 2


def _label(field: str) -> str:
    return field.replace("_", " ").capitalize()


def require_text(
    value: Optional[str],
    field: str,
    max_length: int,
    min_length: int = 1,
) -> str:
    """
    Validate a mandatory string and return it stripped.

    Raises:
        ValidationError: If blank, shorter than min_length or longer than max_length
    """
    if value is None or not str(value).strip():
        raise ValidationError(f"{_label(field)} is required", field=field)

    cleaned = str(value).strip()
    if len(cleaned) < min_length:
        raise ValidationError(
            f"{_label(field)} must be at least {min_length} characters",
            field=field,
        )
    if len(cleaned) > max_length:
        raise ValidationError(
            f"{_label(field)} cannot exceed {max_length} characters",
            field=field,
        )
    return cleaned


def optional_text(value: Optional[str], field: str, max_length: int) -> Optional[str]:
    """Validate an optional string; blank values become None."""
    if value is None or not str(value).strip():
        return None
    cleaned = str(value).strip()
    if len(cleaned) > max_length:
        raise ValidationError(
            f"{_label(field)} cannot exceed {max_length} characters",
            field=field,
        )
    return cleaned


def require_positive_id(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{_label(field)} must be a positive integer", field=field)
    return value


def optional_positive_id(value, field: str) -> Optional[int]:
    if value is None:
        return None
    return require_positive_id(value, field)


def to_decimal(value, field: str, decimal_places: Optional[int] = None) -> Decimal:
    """
    Convert a money or rate value to Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    With `decimal_places`, values needing more places are rejected rather
    than rounded, so what is stored is what was given (trailing zeros are
    fine: 10.500 passes with 2 places).
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{_label(field)} must be a number", field=field)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{_label(field)} must be a number", field=field)
    if not result.is_finite():
        raise ValidationError(f"{_label(field)} must be a number", field=field)
    if decimal_places is not None and result.normalize().as_tuple().exponent < -decimal_places:
        raise ValidationError(
            f"{_label(field)} cannot have more than {decimal_places} decimal places",
            field=field,
        )
    return result


def to_money(value, field: str) -> Decimal:
    return to_decimal(value, field, decimal_places=MONEY_DECIMAL_PLACES)


def require_range(value, field: str, minimum=None, maximum=None) -> None:
    """Inclusive range check; either bound may be omitted."""
    if minimum is not None and value < minimum:
        raise ValidationError(
            f"{_label(field)} must be at least {minimum}", field=field
        )
    if maximum is not None and value > maximum:
        raise ValidationError(
            f"{_label(field)} cannot exceed {maximum}", field=field
        )


def require_email(value: Optional[str], field: str = "email", max_length: int = 256) -> str:
    email = require_text(value, field, max_length=max_length)
    if "@" not in email:
        raise ValidationError("Invalid email format", field=field)
    return email.lower()


def require_vin(value: Optional[str], field: str = "vin_number") -> str:
    """
    Validate a vehicle identification number.

    VINs are 17 characters, digits and capital letters except I, O and Q.
    Lowercase input is accepted and upper-cased.
    """
    vin = require_text(value, field, max_length=VIN_LENGTH).upper()
    if len(vin) != VIN_LENGTH:
        raise ValidationError(
            f"VIN must be exactly {VIN_LENGTH} characters", field=field
        )
    if not VIN_PATTERN.match(vin):
        raise ValidationError(
            "VIN may only contain digits and letters other than I, O and Q",
            field=field,
        )
    return vin


def require_phone(value: Optional[str], field: str = "phone_number") -> str:
    phone = require_text(value, field, max_length=PHONE_MAX_LENGTH)
    if len(phone) < PHONE_MIN_LENGTH:
        raise ValidationError(
            f"Phone number must be between {PHONE_MIN_LENGTH} and "
            f"{PHONE_MAX_LENGTH} characters",
            field=field,
        )
    return phone


def require_year(value, now: datetime, field: str = "year") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Year must be an integer", field=field)
    max_year = now.year + 1
    if value < MIN_CAR_YEAR or value > max_year:
        raise ValidationError(
            f"Year must be between {MIN_CAR_YEAR} and {max_year}", field=field
        )
    return value
