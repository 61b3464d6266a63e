"""Search query planning.

Turns a free-text term and an optional status filter into the equality /
array-contains lookups the document store can answer, respecting its
fan-out limits.
"""

import re
from dataclasses import dataclass, field
from enum import Enum

from canvass.search.normalize import normalize_arabic, normalize_phone
from canvass.search.tokens import tokenize_query

ID_RESULT_LIMIT = 40
PHONE_RESULT_LIMIT = 40
TOKEN_RESULT_LIMIT = 200
MAX_TOKEN_QUERIES = 4
MERGED_RESULT_CAP = 200
FIRST_QUERY_RESULT_CAP = 60
PAGE_SIZE = 20

STATUS_FILTER_ALL = "all"

_MEMBERSHIP_ID_RE = re.compile(r"^[0-9]{2,}$")
_PHONE_DIGITS_RE = re.compile(r"^0?[1-9][0-9]+$")
_NON_DIGIT_RE = re.compile(r"[^0-9]")
MIN_PHONE_DIGITS = 8


class QueryKind(str, Enum):
    """Lookup strategy chosen for a search."""

    MEMBERSHIP_ID = "membership_id"
    PHONE = "phone"
    TOKENS = "tokens"
    STATUS = "status"
    NONE = "none"


@dataclass
class LookupSpec:
    """A single store lookup.

    ``operator`` is ``eq`` for equality, ``contains`` for array-contains and
    ``order_by`` for a status-only listing sorted by ``field``.
    """

    field: str
    operator: str
    value: str | None
    limit: int


@dataclass
class QueryDescriptor:
    """Everything needed to execute and post-process a search."""

    kind: QueryKind
    term: str = ""
    normalized_term: str = ""
    tokens: list[str] = field(default_factory=list)
    status_filter: str | None = None
    lookups: list[LookupSpec] = field(default_factory=list)

    @property
    def is_name_query(self) -> bool:
        """Whether results should be post-filtered and re-ranked by name."""
        return self.kind == QueryKind.TOKENS

    @property
    def is_empty(self) -> bool:
        """Whether there is nothing to query (empty state)."""
        return self.kind == QueryKind.NONE

    def should_stop(self, merged_count: int, lookup_index: int) -> bool:
        """Decide whether remaining token lookups can be skipped.

        Args:
            merged_count: Distinct results collected so far.
            lookup_index: Zero-based index of the lookup just executed.
        """
        if merged_count >= MERGED_RESULT_CAP:
            return True
        return lookup_index == 0 and merged_count >= FIRST_QUERY_RESULT_CAP


def _digits(term: str) -> str:
    return _NON_DIGIT_RE.sub("", term)


def is_membership_id_term(term: str) -> bool:
    """Two or more digits and nothing else (whitespace ignored)."""
    return bool(_MEMBERSHIP_ID_RE.match("".join(term.split())))


def is_phone_term(term: str) -> bool:
    """A local mobile number with at least 8 significant digits."""
    digits = _digits(term)
    if len(digits) < MIN_PHONE_DIGITS:
        return False
    return bool(_PHONE_DIGITS_RE.match(digits))


def normalize_phone_term(term: str) -> str | None:
    """Normalize a phone-shaped search term to the stored mobile format."""
    phone = normalize_phone(term)
    if not phone:
        return None
    digits = _digits(phone)
    if not digits:
        return None
    return digits if digits.startswith("0") else f"0{digits}"


def classify_term(term: str) -> QueryKind:
    """Classify a trimmed search term.

    A term written with a leading ``0`` or ``+`` that has the phone shape is
    a phone search even though it is also all digits; any other digit-only
    term is a membership ID. Remaining phone-shaped input (digits with
    separators) is a phone search, and everything else is a name search.
    """
    trimmed = term.strip()
    if not trimmed:
        return QueryKind.NONE
    if trimmed[0] in "0+" and is_phone_term(trimmed):
        return QueryKind.PHONE
    if is_membership_id_term(trimmed):
        return QueryKind.MEMBERSHIP_ID
    if is_phone_term(trimmed):
        return QueryKind.PHONE
    if tokenize_query(trimmed):
        return QueryKind.TOKENS
    return QueryKind.NONE


def plan_search(term: str | None, status_filter: str | None = STATUS_FILTER_ALL) -> QueryDescriptor:
    """Decide which lookups to issue for a search.

    Args:
        term: Free-text search input.
        status_filter: A member status, or ``"all"``/None for no filter.

    Returns:
        QueryDescriptor. Its ``lookups`` are executed in order; the status
        filter, when present, applies as an extra equality constraint to
        every lookup.
    """
    raw = (term or "").strip()
    status = None if status_filter in (None, "", STATUS_FILTER_ALL) else status_filter
    kind = classify_term(raw)

    if kind == QueryKind.MEMBERSHIP_ID:
        value = "".join(raw.split())
        return QueryDescriptor(
            kind=kind,
            term=raw,
            status_filter=status,
            lookups=[LookupSpec("membership_id", "eq", value, ID_RESULT_LIMIT)],
        )

    if kind == QueryKind.PHONE:
        phone = normalize_phone_term(raw)
        if phone:
            return QueryDescriptor(
                kind=kind,
                term=raw,
                status_filter=status,
                lookups=[LookupSpec("mobiles", "contains", phone, PHONE_RESULT_LIMIT)],
            )
        kind = QueryKind.TOKENS if tokenize_query(raw) else QueryKind.NONE

    if kind == QueryKind.TOKENS:
        tokens = tokenize_query(raw)
        return QueryDescriptor(
            kind=kind,
            term=raw,
            normalized_term=normalize_arabic(raw),
            tokens=tokens,
            status_filter=status,
            lookups=[
                LookupSpec("tokens", "contains", token, TOKEN_RESULT_LIMIT)
                for token in tokens[:MAX_TOKEN_QUERIES]
            ],
        )

    if status:
        return QueryDescriptor(
            kind=QueryKind.STATUS,
            term=raw,
            status_filter=status,
            lookups=[LookupSpec("full_name_normalized", "order_by", None, PAGE_SIZE)],
        )

    return QueryDescriptor(kind=QueryKind.NONE, term=raw)
