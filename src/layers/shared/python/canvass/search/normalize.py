"""Arabic-aware text normalization and phone canonicalization.

The normalized form is what gets stored as ``full_name_normalized`` and what
prefix tokens are derived from, so every step here must be deterministic and
the whole pipeline idempotent.
"""

import os
import re
import unicodedata

# Harakat, shadda, sukun, the combining hamza/madda marks that NFKD splits off
# precomposed letters, and the dagger alif.
_DIACRITICS_RE = re.compile("[\u064B-\u065F\u0670]")
_TATWEEL = "\u0640"
_WHITESPACE_RE = re.compile(r"\s+")

_LETTER_FOLDS = str.maketrans(
    {
        "أ": "ا",  # alef with hamza above
        "إ": "ا",  # alef with hamza below
        "آ": "ا",  # alef with madda
        "ٱ": "ا",  # alef wasla
        "ى": "ي",  # alef maksura -> yaa
        "ئ": "ي",  # yaa with hamza
        "ؤ": "و",  # waw with hamza
        "ة": "ه",  # taa marbuta -> haa
        _TATWEEL: None,
    }
)

PHONE_COUNTRY_CODE = os.environ.get("PHONE_COUNTRY_CODE", "20")
_PHONE_STRIP_RE = re.compile(r"[^\d+]+")


def _is_letter_or_digit(char: str) -> bool:
    return unicodedata.category(char)[0] in ("L", "N")


def normalize_arabic(text: str | None) -> str:
    """Map raw text to its canonical comparable form.

    Steps: lowercase, NFKD, strip Arabic diacritics, fold alef/yaa/waw/taa
    marbuta variants, strip tatweel, replace anything that is not a letter,
    digit or whitespace with a space, then collapse and trim whitespace.

    Args:
        text: Raw text (``None`` is treated as empty).

    Returns:
        Normalized text.
    """
    if not text:
        return ""

    value = unicodedata.normalize("NFKD", str(text).lower()).lower()
    value = _DIACRITICS_RE.sub("", value)
    value = value.translate(_LETTER_FOLDS)
    value = "".join(
        char if char.isspace() or _is_letter_or_digit(char) else " " for char in value
    )
    return _WHITESPACE_RE.sub(" ", value).strip()


def arabic_sort_key(text: str | None) -> tuple[str, str]:
    """Collation key that orders Arabic names alphabetically.

    Folding letter variants before comparing puts e.g. names starting with
    ``أ`` and ``ا`` side by side, which is what users expect from an Arabic
    locale compare.
    """
    raw = text or ""
    return normalize_arabic(raw), raw


def normalize_phone(value: str | int | None) -> str | None:
    """Canonicalize a phone number to the local leading-zero format.

    Strips everything but digits and ``+``. A value carrying the country code
    (``+20...`` or ``20...``) is rewritten to ``0...``; a bare subscriber
    number of 9-11 digits gets a leading zero.

    Args:
        value: Raw phone value.

    Returns:
        Canonical phone string, or None if nothing usable remains.
    """
    if value is None:
        return None

    digits = _PHONE_STRIP_RE.sub("", str(value))
    if not digits:
        return None

    code = PHONE_COUNTRY_CODE
    if digits.startswith(f"+{code}") and len(digits) >= 11 + len(code):
        digits = f"0{digits[len(code) + 1:]}"
    elif digits.startswith(code) and len(digits) >= 9 + len(code):
        digits = f"0{digits[len(code):]}"
    elif not digits.startswith("0") and 9 <= len(digits) <= 11:
        digits = f"0{digits}"

    return digits


def normalize_mobiles(values: list[str | None]) -> list[str]:
    """Canonicalize and deduplicate a list of mobile numbers, keeping order."""
    mobiles: list[str] = []
    for value in values:
        phone = normalize_phone(value)
        if phone and phone not in mobiles:
            mobiles.append(phone)
    return mobiles
