"""Member search execution."""

from typing import Any

import structlog

from canvass.models.search_entry import MemberSearchEntry
from canvass.repositories.member import MemberSearchRepository
from canvass.search.planner import QueryDescriptor, plan_search
from canvass.search.ranking import filter_results, merge_results, rank_results
from canvass.services.status_scope import can_manage_status, resolve_display_status, resolve_visible_scopes
from canvass.utils.auth import ActorContext

logger = structlog.get_logger()


class SearchService:
    """Runs planned lookups against the search index and ranks the hits."""

    def __init__(self, entries: MemberSearchRepository | None = None):
        """Initialize the service."""
        self.entries = entries or MemberSearchRepository()

    def execute(self, plan: QueryDescriptor) -> list[MemberSearchEntry]:
        """Run a plan's lookups, merging as it goes.

        Token lookups stop early once enough distinct results are collected.
        """
        if plan.is_empty:
            return []

        merged: list[MemberSearchEntry] = []
        for index, lookup in enumerate(plan.lookups):
            results = self.entries.run_lookup(lookup, plan.status_filter)
            merged = merge_results([merged, results])
            if plan.should_stop(len(merged), index):
                break

        filtered = filter_results(merged, plan)
        return rank_results(filtered, plan)

    def search(
        self,
        term: str | None,
        status_filter: str | None,
        viewer: ActorContext,
    ) -> dict[str, Any]:
        """Search members and shape the hits for ``viewer``."""
        plan = plan_search(term, status_filter)
        entries = self.execute(plan)

        logger.info(
            "Member search",
            kind=plan.kind.value,
            lookups=len(plan.lookups),
            results=len(entries),
            status_filter=plan.status_filter,
        )

        return {
            "query": {
                "kind": plan.kind.value,
                "term": plan.term,
                "status": plan.status_filter,
            },
            "items": [build_member_view(entry, viewer) for entry in entries],
        }


def build_member_view(entry: MemberSearchEntry, viewer: ActorContext) -> dict[str, Any]:
    """Search hit enriched with the viewer's status perspective."""
    return {
        "member_id": entry.id,
        "full_name": entry.full_name,
        "membership_id": entry.membership_id,
        "address": entry.address,
        "mobiles": entry.mobiles,
        "land_line": entry.land_line,
        "status": entry.status,
        "election_day_status": entry.election_day_status,
        "display_status": resolve_display_status(entry, viewer),
        "visible_scopes": [scope.model_dump(mode="json") for scope in resolve_visible_scopes(entry, viewer)],
        "assignments": entry.assignments.model_dump(mode="json"),
        "can_manage": can_manage_status(viewer),
    }
