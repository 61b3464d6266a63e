"""Merging, post-filtering and ranking of search results."""

from collections.abc import Iterable
from typing import Protocol, TypeVar

from canvass.search.normalize import arabic_sort_key
from canvass.search.planner import QueryDescriptor


class Rankable(Protocol):
    """What the ranker needs from an index entry."""

    id: str
    full_name_normalized: str
    tokens: list[str]


T = TypeVar("T", bound=Rankable)


def merge_results(result_sets: Iterable[Iterable[T]]) -> list[T]:
    """Concatenate result sets, dropping later duplicates by record ID."""
    seen: dict[str, T] = {}
    for results in result_sets:
        for entry in results:
            if entry.id not in seen:
                seen[entry.id] = entry
    return list(seen.values())


def filter_results(entries: list[T], plan: QueryDescriptor) -> list[T]:
    """Narrow token-query hits down to real matches.

    Keeps entries whose normalized name contains the full normalized term.
    If none do, falls back to entries carrying every query token. ID, phone
    and status-only queries are returned untouched.
    """
    if not plan.is_name_query or not plan.normalized_term:
        return entries

    filtered = [e for e in entries if plan.normalized_term in e.full_name_normalized]
    if filtered or not plan.tokens:
        return filtered

    return [e for e in entries if set(plan.tokens).issubset(e.tokens)]


def score_entry(entry: Rankable, plan: QueryDescriptor) -> int:
    """Relevance score of an entry for a name query.

    3: name starts with the full term. 2: the name's first word equals the
    first query token. 1: some name word starts with the first query token.
    0: anything else.
    """
    if not plan.is_name_query or not plan.tokens:
        return 0

    name = entry.full_name_normalized
    first_token = plan.tokens[0]
    words = [word for word in name.split(" ") if word]

    if plan.normalized_term and name.startswith(plan.normalized_term):
        return 3
    if words and words[0] == first_token:
        return 2
    if any(word.startswith(first_token) for word in words):
        return 1
    return 0


def rank_results(entries: list[T], plan: QueryDescriptor) -> list[T]:
    """Sort name-query results by score, then by Arabic collation of name.

    Non-name queries keep store order.
    """
    if not plan.is_name_query:
        return list(entries)

    return sorted(
        entries,
        key=lambda e: (-score_entry(e, plan), arabic_sort_key(e.full_name_normalized)),
    )
