from datetime import date, datetime
from typing import Optional

from ..errors import InvalidArgument


def parse_int(value: Optional[str]) -> Optional[int]:
    """Lenient integer query param: anything that is not a plain non-negative integer is ignored."""
    if value is None:
        return None
    value = value.strip()
    return int(value) if value.isdigit() else None


def parse_date(value: Optional[str]) -> date:
    """Parse a YYYY-MM-DD query param, defaulting to today."""
    if not value:
        return date.today()
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidArgument(f"Data inválida: {value}. Use o formato YYYY-MM-DD") from exc
