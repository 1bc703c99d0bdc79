"""Rule-based field extraction for when no language model is configured.

Works line by line on the OCR text. The amount falls back to the largest
number on the receipt when no total line is found, which can pick up
change or tendered amounts.
"""

import re

from app.extraction.base import BaseFieldExtractor
from app.extraction.dates import find_date
from app.extraction.parsing import coerce_amount, normalize_tax_id
from app.extraction.text_normalization import fold_width
from app.records.models import ExtractedFields, LineItem

HEURISTIC_CONFIDENCE = 0.5

_VENDOR_RE = re.compile(
    r"株式会社|有限会社|合同会社|\(株\)|（株）|商店|maruetsu|イオン|ローソン|ファミリーマート|セブン",
    re.IGNORECASE,
)
_TOTAL_KEYWORDS = ("合計", "お買上げ金額", "お買上金額", "ご利用金額", "支払金額")
_NUMBER = r"(\d{1,3}(?:,\d{3})+|\d{1,7})"
_AMOUNT_RE = re.compile(r"(?<![\d,])[¥￥]?" + _NUMBER + r"(?![\d,])")
_ITEM_RE = re.compile(r"^(.+?)\s+[¥￥]?" + _NUMBER + r"\s*円?$")
_NON_ITEM_WORDS = ("合計", "小計", "税", "お預", "預り", "釣", "登録番号", "現金")
_TAX_ID_RE = re.compile(r"(?:登録番号|事業者番号)[^0-9T]*([T1][\d\-]{12,17})")
_BARE_TAX_ID_RE = re.compile(r"T\d{13}(?!\d)")


class HeuristicFieldExtractor(BaseFieldExtractor):
    """Regex extraction of receipt fields, without any external service."""

    async def extract(self, raw_text: str) -> ExtractedFields:
        text = fold_width(raw_text)
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        return ExtractedFields(
            raw_text=raw_text,
            confidence=HEURISTIC_CONFIDENCE,
            vendor=extract_vendor(lines),
            date=find_date(text),
            amount=extract_amount(lines),
            tax_id=extract_tax_id(text),
            line_items=extract_line_items(lines),
        )


def extract_vendor(lines: list[str]) -> str | None:
    for line in lines:
        if _VENDOR_RE.search(line):
            return line
    return lines[0] if lines else None


def extract_amount(lines: list[str]) -> int | None:
    for index, line in enumerate(lines):
        if not any(keyword in line for keyword in _TOTAL_KEYWORDS):
            continue
        for candidate in (line, lines[index + 1] if index + 1 < len(lines) else ""):
            match = _AMOUNT_RE.search(candidate.split("合計", 1)[-1])
            if match:
                return coerce_amount(match.group(1))

    amounts = [coerce_amount(m.group(1)) for line in lines for m in _AMOUNT_RE.finditer(line)]
    known = [amount for amount in amounts if amount is not None]
    return max(known) if known else None


def extract_tax_id(text: str) -> str | None:
    match = _TAX_ID_RE.search(text)
    if match:
        normalized = normalize_tax_id(match.group(1))
        if normalized:
            return normalized
    bare = _BARE_TAX_ID_RE.search(text)
    return bare.group(0) if bare else None


def extract_line_items(lines: list[str]) -> list[LineItem]:
    items: list[LineItem] = []
    for line in lines:
        if any(word in line for word in _NON_ITEM_WORDS):
            continue
        match = _ITEM_RE.match(line)
        if not match:
            continue
        price = coerce_amount(match.group(2))
        if price is not None:
            items.append(LineItem(description=match.group(1).strip(), price=price))
    return items
