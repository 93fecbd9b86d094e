from __future__ import annotations

import re
import unicodedata


_INVISIBLE = (
    "\ufffc"  # object replacement
    "\u200b"  # zero width space
    "\u200c"  # zero width non-joiner
    "\u200d"  # zero width joiner
    "\ufeff"  # BOM
    "\u200e"  # LTR mark
    "\u200f"  # RTL mark
    "\u202a"  # LTR embedding
    "\u202b"  # RTL embedding
    "\u202c"  # pop directional formatting
    "\u202d"  # LTR override
    "\u202e"  # RTL override
    "\u2066"  # LTR isolate
    "\u2067"  # RTL isolate
    "\u2068"  # first strong isolate
    "\u2069"  # pop directional isolate
)
_INVISIBLE_TABLE = str.maketrans("", "", _INVISIBLE)

_LETTER_MAP: dict[str, str] = {
    "أ": "ا",  # alif with hamza above
    "إ": "ا",  # alif with hamza below
    "آ": "ا",  # alif with madda
    "ٱ": "ا",  # alif wasla
    "ى": "ي",  # alif maksura -> ya
    "ة": "ه",  # ta marbuta -> ha
}
_LETTER_TABLE = str.maketrans(_LETTER_MAP)

# harakat, tanween, shadda, sukun, small high marks, dagger alif, tatweel
_TASHKEEL = (
    "".join(chr(c) for c in range(0x064B, 0x0660))
    + "\u0670\u0640"
    + "".join(chr(c) for c in range(0x06D6, 0x06EE))
)
_TASHKEEL_TABLE = str.maketrans("", "", _TASHKEEL)

_WS_RE = re.compile(r"\s+")


def strip_invisible(text: str) -> str:
    return text.translate(_INVISIBLE_TABLE)


def _keep_letters_digits_space(text: str) -> str:
    out: list[str] = []
    for ch in text:
        if ch.isspace():
            out.append(ch)
            continue
        # L* letters, N* digits/numerals; marks and punctuation are dropped
        if unicodedata.category(ch)[0] in ("L", "N"):
            out.append(ch)
    return "".join(out)


def normalize_arabic(raw: str) -> str:
    """Canonical comparable form of a transcript or phrase.

    Drops invisible/bidi controls, punctuation and tashkeel, folds the
    Alif, Alif-maksura and Ta-marbuta variants, lowercases Latin text and
    collapses whitespace. Returns "" when nothing comparable is left.
    """
    if not raw:
        return ""
    s = strip_invisible(raw)
    s = s.lower()
    s = _keep_letters_digits_space(s)
    s = s.translate(_LETTER_TABLE)
    s = s.translate(_TASHKEEL_TABLE)
    return _WS_RE.sub(" ", s).strip()


def split_words(normalized: str) -> tuple[str, ...]:
    return tuple(w for w in normalized.split(" ") if w)
