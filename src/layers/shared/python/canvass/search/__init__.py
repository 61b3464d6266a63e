"""Arabic-aware search: normalization, tokens, planning and ranking."""

from canvass.search.normalize import arabic_sort_key, normalize_arabic, normalize_mobiles, normalize_phone
from canvass.search.planner import QueryDescriptor, QueryKind, classify_term, plan_search
from canvass.search.ranking import filter_results, merge_results, rank_results
from canvass.search.tokens import build_search_tokens, tokenize_query

__all__ = [
    "QueryDescriptor",
    "QueryKind",
    "arabic_sort_key",
    "build_search_tokens",
    "classify_term",
    "filter_results",
    "merge_results",
    "normalize_arabic",
    "normalize_mobiles",
    "normalize_phone",
    "plan_search",
    "rank_results",
    "tokenize_query",
]
