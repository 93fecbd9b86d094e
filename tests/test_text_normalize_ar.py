from __future__ import annotations

import pytest

from thakir.text_normalize_ar import normalize_arabic, split_words, strip_invisible


def test_strips_tashkeel() -> None:
    assert normalize_arabic("سُبْحَانَ اللَّهِ") == "سبحان الله"
    assert normalize_arabic("سبحـــان") == "سبحان"


def test_folds_letter_variants() -> None:
    assert normalize_arabic("أكبر") == "اكبر"
    assert normalize_arabic("إله") == "اله"
    assert normalize_arabic("آمين") == "امين"
    assert normalize_arabic("إلى") == "الي"
    assert normalize_arabic("صلاة") == "صلاه"


def test_zero_width_characters_are_invisible() -> None:
    assert normalize_arabic("أ\u200bكبر") == normalize_arabic("أكبر") == "اكبر"
    assert normalize_arabic("\u200fسبحان\u200e الله\ufeff") == "سبحان الله"
    assert strip_invisible("a\u2066b\u2069") == "ab"


def test_punctuation_and_whitespace() -> None:
    assert normalize_arabic("  سبحان،   الله!! ") == "سبحان الله"
    assert normalize_arabic("Hello, World") == "hello world"
    assert normalize_arabic("٣٣ مرة") == "٣٣ مره"


@pytest.mark.parametrize("raw", ["", "   ", "\u200b\u200f", "!!! ...", "\u064e\u0650"])
def test_nothing_comparable_left(raw: str) -> None:
    assert normalize_arabic(raw) == ""


@pytest.mark.parametrize(
    "raw",
    ["لا إله إلا الله", "الحمدُ لِلّه", "ٱللَّهُ أَكْبَرُ", "\u200bأستغفر الله\u200f", "Subhan Allah"],
)
def test_idempotent(raw: str) -> None:
    once = normalize_arabic(raw)
    assert normalize_arabic(once) == once


def test_split_words() -> None:
    assert split_words("سبحان الله") == ("سبحان", "الله")
    assert split_words("") == ()
