"""Coerces the model's parsed JSON into ExtractedFields.

Unlike strict validation, every field is best effort: a malformed value is
dropped (set to ``None``) rather than failing the whole extraction. Only a
payload that is not a JSON object at all is rejected.
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from app.extraction.dates import normalize_date
from app.extraction.exceptions import ExtractionValidationError
from app.extraction.text_normalization import fold_width
from app.records.models import ExtractedFields, LineItem

DEFAULT_CONFIDENCE = 0.8
_MAX_LINE_ITEMS = 200

_AMOUNT_NOISE_RE = re.compile(r"[,\s¥￥円]|JPY|YEN", re.IGNORECASE)
_AMOUNT_RE = re.compile(r"^-?\d+(\.\d+)?$")
_TAX_ID_NOISE_RE = re.compile(r"[\s\-‐―−]")
_TAX_ID_RE = re.compile(r"^T\d{13}$")


def build_fields(data: Any, raw_text: str) -> ExtractedFields:
    """Build ExtractedFields from the model's parsed JSON object.

    Raises:
        ExtractionValidationError: if *data* is not a JSON object.
    """
    if not isinstance(data, dict):
        raise ExtractionValidationError("Extraction result must be a JSON object")
    return ExtractedFields(
        raw_text=raw_text,
        confidence=coerce_confidence(data.get("confidence")),
        vendor=_clean_str(data.get("vendor")),
        date=normalize_date(data["date"]) if isinstance(data.get("date"), str) else None,
        amount=coerce_amount(data.get("amount")),
        tax_id=normalize_tax_id(data.get("taxId", data.get("tNumber"))),
        line_items=build_line_items(data.get("items", data.get("lineItems"))),
    )


def coerce_confidence(value: Any) -> float:
    """Return *value* if it is a number in [0, 1], else the default."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    if not 0.0 <= float(value) <= 1.0:
        return DEFAULT_CONFIDENCE
    return float(value)


def coerce_amount(value: Any) -> int | None:
    """Coerce an amount to an integer, rounding half up.

    Accepts numbers and strings such as ``"1,000"``, ``"￥1,280円"`` or ``"462.5"``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return _round_half_up(Decimal(str(value)))
    if not isinstance(value, str):
        return None
    cleaned = _AMOUNT_NOISE_RE.sub("", fold_width(value))
    if not _AMOUNT_RE.match(cleaned):
        return None
    return _round_half_up(Decimal(cleaned))


def normalize_tax_id(value: Any) -> str | None:
    """Normalize a qualified-invoice registration number to ``T`` + 13 digits.

    OCR often reads the leading ``T`` as ``1``; a 14-digit number starting
    with ``1`` and a ``T1`` + 13-digit string are both repaired.
    """
    if not isinstance(value, str):
        return None
    cleaned = _TAX_ID_NOISE_RE.sub("", fold_width(value)).upper()
    if not cleaned:
        return None
    if _TAX_ID_RE.match(cleaned):
        return cleaned
    if len(cleaned) == 15 and cleaned.startswith("T1") and cleaned[1:].isdigit():
        return "T" + cleaned[2:]
    if len(cleaned) == 14 and cleaned.startswith("1") and cleaned.isdigit():
        return "T" + cleaned[1:]
    if len(cleaned) == 13 and cleaned.isdigit():
        return "T" + cleaned
    return None


def build_line_items(raw: Any) -> list[LineItem]:
    if not isinstance(raw, list):
        return []
    items: list[LineItem] = []
    for entry in raw[:_MAX_LINE_ITEMS]:
        item = _build_line_item(entry)
        if item is not None:
            items.append(item)
    return items


def _build_line_item(raw: Any) -> LineItem | None:
    if not isinstance(raw, dict):
        return None
    description = _clean_str(raw.get("description"))
    price = coerce_amount(raw.get("price"))
    if description is None or price is None:
        return None
    quantity = coerce_amount(raw.get("quantity"))
    return LineItem(
        description=description,
        price=price,
        quantity=quantity if quantity and quantity > 0 else None,
    )


def _clean_str(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _round_half_up(value: Decimal) -> int | None:
    # quantize rejects values wider than the context precision
    try:
        return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return None
