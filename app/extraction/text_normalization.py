"""Width folding for OCR and model output.

Receipts printed in Japanese frequently use full-width digits and punctuation
(``２０２３／１０／０１``, ``￥１，０００``); numeric parsing needs ASCII.
"""

from functools import lru_cache

import icu  # type: ignore[import-untyped]

# Restricted to full-width ASCII, the ideographic space and the yen sign so
# that katakana is left alone.
_ICU_TRANSFORM = r"[\uFF01-\uFF5E\u3000\uFFE5] Fullwidth-Halfwidth"


@lru_cache(maxsize=1)
def _transliterator() -> icu.Transliterator:
    return icu.Transliterator.createInstance(_ICU_TRANSFORM)


def fold_width(text: str) -> str:
    """Convert full-width ASCII variants (digits, letters, punctuation) to ASCII."""
    if not text:
        return text
    return str(_transliterator().transliterate(text))
