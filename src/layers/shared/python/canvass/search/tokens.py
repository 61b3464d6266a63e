"""Search token generation.

The document store only answers equality and array-contains lookups, so
"starts with" search is emulated by materializing word prefixes into the
index entry's token set.
"""

from collections.abc import Iterable

from canvass.search.normalize import normalize_arabic

MIN_PREFIX_LENGTH = 2
MAX_PREFIX_LENGTH = 12
MAX_QUERY_TOKENS = 10


def word_prefixes(word: str) -> list[str]:
    """Return prefixes of ``word`` from length 2 up to min(len, 12)."""
    upper = min(len(word), MAX_PREFIX_LENGTH)
    return [word[:length] for length in range(MIN_PREFIX_LENGTH, upper + 1)]


def build_search_tokens(values: Iterable[str | int | None]) -> set[str]:
    """Derive the searchable token set for a record.

    For every non-null value the raw lowercased words are added verbatim
    (exact matches on digits, IDs and raw phone strings), then each
    normalized word is added whole together with its prefixes.

    Args:
        values: Raw field values (name, membership ID, address, phones...).

    Returns:
        Deduplicated token set.
    """
    tokens: set[str] = set()

    for value in values:
        if value is None:
            continue
        text = str(value)

        tokens.update(word for word in text.lower().split() if word)

        for word in normalize_arabic(text).split(" "):
            if not word:
                continue
            tokens.add(word)
            tokens.update(word_prefixes(word))

    return tokens


def tokenize_query(term: str | None) -> list[str]:
    """Split a free-text search term into normalized query tokens.

    Order is preserved and duplicates are dropped; at most 10 tokens are
    returned.
    """
    tokens: list[str] = []
    for token in normalize_arabic(term).split(" "):
        if token and token not in tokens:
            tokens.append(token)
    return tokens[:MAX_QUERY_TOKENS]
