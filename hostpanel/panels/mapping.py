"""
Table-driven mapping from canonical request fields to vendor payload keys.

Each adapter declares a tuple of ``FieldMap`` entries per operation; only
fields actually present on the request are emitted, so server-side defaults
are never overridden by accident.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


def as_str(value: Any) -> str:
    return str(value)


def as_flag(on: Any = 1, off: Any = 0) -> Callable[[Any], Any]:
    """Converter for booleans rendered as vendor tokens (1/0, ON/OFF, y/n)."""

    def convert(value: Any) -> Any:
        return on if value else off

    return convert


def mb_to_bytes(value: int) -> int:
    return int(value) * 1024 * 1024


def mb_to_kb(value: int) -> int:
    return int(value) * 1024


def bytes_to_mb(value: Any) -> float | None:
    number = to_number(value)
    return None if number is None else round(number / (1024 * 1024), 2)


def to_number(value: Any) -> float | None:
    """Parse a vendor numeric field; ``None`` for blanks and "unlimited"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    text = str(value).strip().rstrip("Mm").strip()
    if not text or text.lower() in {"unlimited", "none", "-1"}:
        return None
    try:
        return float(text)
    except ValueError:
        return None


@dataclass(frozen=True)
class FieldMap:
    """One canonical field and the vendor key it maps to."""

    canonical: str
    vendor: str
    convert: Callable[[Any], Any] = lambda value: value


def map_fields(request: BaseModel, table: Iterable[FieldMap]) -> dict[str, Any]:
    """Emit ``{vendor_key: converted_value}`` for fields present on ``request``."""
    payload: dict[str, Any] = {}
    for entry in table:
        value = getattr(request, entry.canonical, None)
        if value is None:
            continue
        payload[entry.vendor] = entry.convert(value)
    return payload


def merge_additional(
    payload: dict[str, Any], additional: dict[str, Any], *, stringify: bool = False
) -> dict[str, Any]:
    """Pass ``additional_settings`` through without overriding mapped keys."""
    for key, value in additional.items():
        if key in payload or value is None:
            continue
        payload[key] = str(value) if stringify else value
    return payload


def stringify_values(payload: dict[str, Any]) -> dict[str, str]:
    """Render values for query-string and form bodies."""
    rendered: dict[str, str] = {}
    for key, value in payload.items():
        if isinstance(value, bool):
            rendered[key] = "1" if value else "0"
        else:
            rendered[key] = "" if value is None else str(value)
    return rendered
