"""Tests for Arabic text and phone normalization."""

import pytest

from canvass.search.normalize import (
    arabic_sort_key,
    normalize_arabic,
    normalize_mobiles,
    normalize_phone,
)


class TestNormalizeArabic:
    """Tests for normalize_arabic."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("أحمد", "احمد"),
            ("إبراهيم", "ابراهيم"),
            ("آمال", "امال"),
            ("مصطفى", "مصطفي"),
            ("فاطمة", "فاطمه"),
            ("مؤمن", "مومن"),
            ("هانئ", "هاني"),
        ],
    )
    def test_letter_folds(self, raw, expected):
        """Alef, yaa, waw and taa marbuta variants fold to one letter."""
        assert normalize_arabic(raw) == expected

    def test_strips_diacritics(self):
        """Harakat and shadda are removed."""
        assert normalize_arabic("مُحَمَّد") == "محمد"

    def test_strips_tatweel(self):
        """Tatweel is not part of the canonical form."""
        assert normalize_arabic("محـــمد") == "محمد"

    def test_punctuation_becomes_space(self):
        """Non letter/digit characters split words."""
        assert normalize_arabic("عبد-الله،  محمود!") == "عبد الله محمود"

    def test_lowercases_latin(self):
        """Latin text is lowercased."""
        assert normalize_arabic("  Ahmed MAHMOUD ") == "ahmed mahmoud"

    def test_keeps_digits(self):
        """Digits survive normalization."""
        assert normalize_arabic("شارع 15") == "شارع 15"

    @pytest.mark.parametrize("raw", [None, "", "   ", "!!!"])
    def test_empty_input(self, raw):
        """Empty or symbol-only input normalizes to an empty string."""
        assert normalize_arabic(raw) == ""

    @pytest.mark.parametrize(
        "raw",
        ["أحمد محمود", "فاطمة الزهراء", "إِسْمَاعِيل", "Mostafa  مصطفى", "ـأـ"],
    )
    def test_idempotent(self, raw):
        """Normalizing twice gives the same result as once."""
        once = normalize_arabic(raw)
        assert normalize_arabic(once) == once


class TestArabicSortKey:
    """Tests for arabic_sort_key."""

    def test_hamza_variants_sort_together(self):
        """Names differing only in alef form sort next to each other."""
        names = ["احمد", "بسام", "أحمد"]
        ordered = sorted(names, key=arabic_sort_key)

        assert set(ordered[:2]) == {"احمد", "أحمد"}
        assert ordered[2] == "بسام"

    def test_none_is_empty(self):
        """None sorts as an empty name."""
        assert arabic_sort_key(None) == ("", "")


class TestNormalizePhone:
    """Tests for normalize_phone."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("01012345678", "01012345678"),
            ("+201012345678", "01012345678"),
            ("201012345678", "01012345678"),
            ("1012345678", "01012345678"),
            ("010 1234-5678", "01012345678"),
            ("(010) 1234 5678", "01012345678"),
        ],
    )
    def test_canonical_form(self, raw, expected):
        """Country codes and separators are removed."""
        assert normalize_phone(raw) == expected

    def test_short_numbers_unchanged(self):
        """Numbers too short to be mobiles keep their digits."""
        assert normalize_phone("12345") == "12345"

    def test_integer_input(self):
        """Numeric values are accepted."""
        assert normalize_phone(1012345678) == "01012345678"

    @pytest.mark.parametrize("raw", [None, "", "abc", " - "])
    def test_unusable_input(self, raw):
        """Nothing usable returns None."""
        assert normalize_phone(raw) is None


class TestNormalizeMobiles:
    """Tests for normalize_mobiles."""

    def test_dedupes_after_canonicalizing(self):
        """Different spellings of one number collapse, order is kept."""
        mobiles = normalize_mobiles(["+201012345678", "01112223334", "01012345678", None, ""])

        assert mobiles == ["01012345678", "01112223334"]
