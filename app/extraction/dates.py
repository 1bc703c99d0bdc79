"""Receipt date normalization to ISO ``YYYY-MM-DD``.

Japanese era years map to Gregorian years as ``era_start + era_year - 1``
(``元年`` is era year 1):

    明治 / M  1868      大正 / T  1912      昭和 / S  1926
    平成 / H  1989      令和 / R  2019

so 令和5年 is 2023 and 平成31年 is 2019. Two-digit years (``23-10-1``) are
taken as 20YY.
"""

import re
from datetime import date

from dateutil import parser as date_parser

from app.extraction.text_normalization import fold_width

ERA_START_YEARS: dict[str, int] = {
    "明治": 1868,
    "大正": 1912,
    "昭和": 1926,
    "平成": 1989,
    "令和": 2019,
    "M": 1868,
    "T": 1912,
    "S": 1926,
    "H": 1989,
    "R": 2019,
}

_SEP = r"\s*[年./\-]\s*"
_ERA_RE = re.compile(
    r"(?<![A-Za-z0-9])(明治|大正|昭和|平成|令和|[MTSHRmtshr])\s*(元|\d{1,2})"
    + _SEP
    + r"(\d{1,2})\s*[月./\-]\s*(\d{1,2})\s*日?"
)
_YMD_RE = re.compile(
    r"(?<!\d)(\d{4})" + _SEP + r"(\d{1,2})\s*[月./\-]\s*(\d{1,2})(?!\d)\s*日?"
)
_SHORT_YMD_RE = re.compile(r"^(\d{2})[./\-](\d{1,2})[./\-](\d{1,2})$")
_HAS_YEAR_RE = re.compile(r"\d{4}")


def era_to_gregorian(era: str, era_year: int) -> int:
    """Convert an era name or initial plus era year to a Gregorian year.

    Raises:
        KeyError: for an unknown era.
    """
    return ERA_START_YEARS[era.upper() if len(era) == 1 else era] + era_year - 1


def normalize_date(raw: str | None) -> str | None:
    """Normalize a receipt date string; ``None`` when it cannot be understood."""
    if not raw:
        return None
    text = fold_width(raw).strip()
    if not text:
        return None

    parsed = _parse_era(text) or _parse_ymd(text) or _parse_short(text)
    if parsed is None:
        parsed = _parse_fallback(text)
    return parsed.isoformat() if parsed else None


def find_date(text: str) -> str | None:
    """Find the first era or four-digit-year date anywhere in free text."""
    folded = fold_width(text or "")
    parsed = _parse_era(folded) or _parse_ymd(folded)
    return parsed.isoformat() if parsed else None


def _parse_era(text: str) -> date | None:
    match = _ERA_RE.search(text)
    if not match:
        return None
    era, era_year, month, day = match.groups()
    year = era_to_gregorian(era, 1 if era_year == "元" else int(era_year))
    return _safe_date(year, int(month), int(day))


def _parse_ymd(text: str) -> date | None:
    match = _YMD_RE.search(text)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    return _safe_date(year, month, day)


def _parse_short(text: str) -> date | None:
    match = _SHORT_YMD_RE.match(text)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    return _safe_date(2000 + year, month, day)


def _parse_fallback(text: str) -> date | None:
    # Without an explicit year dateutil would silently fill in the current one.
    if not _HAS_YEAR_RE.search(text):
        return None
    try:
        return date_parser.parse(text, fuzzy=False).date()
    except (ValueError, OverflowError):
        return None


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None
