"""Helpers used by output DTOs to build JSON-safe dictionaries."""

from datetime import datetime
from decimal import Decimal
from typing import Optional


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def decimal_str(value: Optional[Decimal]) -> Optional[str]:
    """Money and rates travel as strings to keep their exact value."""
    return str(value) if value is not None else None
