"""Repository for member categories."""

from boto3.dynamodb.conditions import Attr

from canvass.models.category import MemberCategory
from canvass.repositories.base import BaseRepository

LIST_ALL_LIMIT = 500


class CategoryRepository(BaseRepository[MemberCategory]):
    """Repository for categories owned by head and leader scopes."""

    def __init__(self, table_name: str | None = None):
        """Initialize category repository."""
        super().__init__(MemberCategory, table_name)

    def get_by_id(self, category_id: str) -> MemberCategory | None:
        """Get a category by ID."""
        return self.get(pk=f"CATEGORY#{category_id}", sk="CATEGORY")

    def get_by_id_or_raise(self, category_id: str) -> MemberCategory:
        """Get a category by ID or raise NotFoundError."""
        return self.get_or_raise(pk=f"CATEGORY#{category_id}", sk="CATEGORY", resource_type="Category")

    def get_many(self, category_ids: list[str]) -> dict[str, MemberCategory]:
        """Get several categories, keyed by ID. Missing IDs are omitted."""
        found: dict[str, MemberCategory] = {}
        for category_id in dict.fromkeys(category_ids):
            category = self.get_by_id(category_id)
            if category:
                found[category_id] = category
        return found

    def list_by_scope(self, scope_type: str, scope_id: str) -> list[MemberCategory]:
        """List the categories owned by one scope, ordered by name."""
        categories: list[MemberCategory] = []
        last_key = None
        while True:
            page, last_key = self.query(
                pk=f"CATSCOPE#{scope_type}#{scope_id}",
                index_name="GSI1",
                last_key=last_key,
            )
            categories.extend(page)
            if not last_key:
                return categories

    def list_all(self, limit: int = LIST_ALL_LIMIT) -> list[MemberCategory]:
        """List categories across all scopes."""
        return self.scan(Attr("SK").eq("CATEGORY"), limit=limit)

    def create_category(self, category: MemberCategory) -> MemberCategory:
        """Create a new category."""
        return self.create(category, gsi_keys=category.get_gsi1_keys())

    def update_category(self, category: MemberCategory) -> MemberCategory:
        """Update an existing category."""
        return self.update(category, gsi_keys=category.get_gsi1_keys())

    def delete_category(self, category_id: str) -> bool:
        """Delete a category."""
        return self.delete(pk=f"CATEGORY#{category_id}", sk="CATEGORY")
