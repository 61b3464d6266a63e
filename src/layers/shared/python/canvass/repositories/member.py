"""Repositories for member records and their search entries."""

from boto3.dynamodb.conditions import Attr

from canvass.models.member import Member
from canvass.models.search_entry import MemberSearchEntry
from canvass.repositories.base import BaseRepository
from canvass.search.planner import LookupSpec


class MemberRepository(BaseRepository[Member]):
    """Repository for authoritative member records."""

    def __init__(self, table_name: str | None = None):
        """Initialize member repository."""
        super().__init__(Member, table_name)

    def get_by_id(self, member_id: str) -> Member | None:
        """Get a member by ID."""
        return self.get(pk=f"MEMBER#{member_id}", sk="MEMBER")

    def get_by_id_or_raise(self, member_id: str) -> Member:
        """Get a member by ID or raise NotFoundError."""
        return self.get_or_raise(pk=f"MEMBER#{member_id}", sk="MEMBER", resource_type="Member")

    def list_with_category(self, category_id: str) -> list[Member]:
        """Find members whose status scopes reference a category.

        Category IDs live inside nested scope entries, which DynamoDB cannot
        filter on, so members are scanned and checked here.
        """
        candidates = self.scan(Attr("SK").eq("MEMBER") & Attr("status_scopes").exists())
        return [
            member
            for member in candidates
            if any(category_id in scope.categories for scope in member.status_scopes)
        ]

    def iter_pages(self, page_size: int = 400):
        """Yield pages of all members."""
        yield from self.scan_pages(Attr("SK").eq("MEMBER"), page_size=page_size)


class MemberSearchRepository(BaseRepository[MemberSearchEntry]):
    """Repository for the denormalized member search index."""

    def __init__(self, table_name: str | None = None):
        """Initialize search entry repository."""
        super().__init__(MemberSearchEntry, table_name)

    def get_by_member_id(self, member_id: str) -> MemberSearchEntry | None:
        """Get the search entry of a member."""
        return self.get(pk=f"MEMBER#{member_id}", sk="SEARCH")

    def _search_condition(self, condition, status: str | None):
        condition = Attr("SK").eq("SEARCH") & condition
        if status:
            condition = condition & Attr("status").eq(status)
        return condition

    def find_by_membership_id(
        self,
        membership_id: str,
        limit: int,
        status: str | None = None,
    ) -> list[MemberSearchEntry]:
        """Find entries with an exact membership ID."""
        return self.scan(
            self._search_condition(Attr("membership_id").eq(membership_id), status),
            limit=limit,
        )

    def find_by_mobile(
        self,
        mobile: str,
        limit: int,
        status: str | None = None,
    ) -> list[MemberSearchEntry]:
        """Find entries whose mobiles list contains a canonical number."""
        return self.scan(
            self._search_condition(Attr("mobiles").contains(mobile), status),
            limit=limit,
        )

    def find_by_token(
        self,
        token: str,
        limit: int,
        status: str | None = None,
    ) -> list[MemberSearchEntry]:
        """Find entries whose token set contains a token."""
        return self.scan(
            self._search_condition(Attr("tokens").contains(token), status),
            limit=limit,
        )

    def list_by_status(self, status: str, limit: int) -> list[MemberSearchEntry]:
        """List entries with a status, ordered by normalized name."""
        entries, _ = self.query(
            pk=f"STATUS#{status}",
            index_name="GSI1",
            limit=limit,
        )
        return entries

    def run_lookup(self, lookup: LookupSpec, status: str | None = None) -> list[MemberSearchEntry]:
        """Execute one planned lookup.

        Raises:
            ValueError: If the lookup shape is not supported.
        """
        if lookup.operator == "eq" and lookup.field == "membership_id":
            return self.find_by_membership_id(lookup.value, lookup.limit, status)
        if lookup.operator == "contains" and lookup.field == "mobiles":
            return self.find_by_mobile(lookup.value, lookup.limit, status)
        if lookup.operator == "contains" and lookup.field == "tokens":
            return self.find_by_token(lookup.value, lookup.limit, status)
        if lookup.operator == "order_by" and status:
            return self.list_by_status(status, lookup.limit)
        raise ValueError(f"Unsupported lookup: {lookup.field} {lookup.operator}")
