"""Base document model for the single-table store.

Every stored document carries an ID, a version used for conditioned writes
and created/updated timestamps. Keys are derived from the class-level
``_pk_prefix``/``_sk_prefix`` unless a model overrides ``get_pk``/``get_sk``.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, ClassVar, Self

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field
from ulid import ULID

# Table and index key attributes, never model fields
KEY_ATTRIBUTES = frozenset({"PK", "SK", "GSI1PK", "GSI1SK"})


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return str(ULID())


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


class BaseModel(PydanticBaseModel):
    """A document stored under its own PK/SK in the table."""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        validate_assignment=True,
    )

    id: str = Field(default_factory=generate_ulid)
    version: int = Field(default=1, description="Optimistic locking version")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    _pk_prefix: ClassVar[str] = ""
    _sk_prefix: ClassVar[str] = ""

    def to_dynamodb(self) -> dict[str, Any]:
        """Serialize to an item, without key attributes.

        None values are dropped so optional fields are absent rather than
        stored as NULL.
        """
        return self._serialize_value(self.model_dump(mode="json"))

    @classmethod
    def _serialize_value(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: cls._serialize_value(v) for k, v in value.items() if v is not None}
        if isinstance(value, list):
            return [cls._serialize_value(item) for item in value]
        if isinstance(value, float):
            # DynamoDB requires Decimal instead of float
            return Decimal(str(value))
        return value

    @classmethod
    def from_dynamodb(cls, item: dict[str, Any]) -> Self:
        """Build a model from a stored item.

        Key attributes are dropped, numbers come back as int or float and
        string sets as lists. Timestamps are parsed by the field types.
        """
        data = {k: v for k, v in item.items() if k not in KEY_ATTRIBUTES}
        return cls.model_validate(cls._deserialize_value(data))

    @classmethod
    def _deserialize_value(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: cls._deserialize_value(v) for k, v in value.items()}
        if isinstance(value, (list, set)):
            return [cls._deserialize_value(item) for item in value]
        if isinstance(value, Decimal):
            return int(value) if value % 1 == 0 else float(value)
        return value

    def get_pk(self) -> str:
        """Partition key: ``{_pk_prefix}{id}``."""
        if not self._pk_prefix:
            raise NotImplementedError(f"{type(self).__name__} defines no partition key")
        return f"{self._pk_prefix}{self.id}"

    def get_sk(self) -> str:
        """Sort key: the class's fixed ``_sk_prefix``."""
        if not self._sk_prefix:
            raise NotImplementedError(f"{type(self).__name__} defines no sort key")
        return self._sk_prefix

    def get_keys(self) -> dict[str, str]:
        """Get both PK and SK as a dictionary."""
        return {"PK": self.get_pk(), "SK": self.get_sk()}

    def update_timestamp(self) -> None:
        """Update the updated_at timestamp to now."""
        self.updated_at = utc_now()

    def increment_version(self) -> None:
        """Increment the version for optimistic locking."""
        self.version += 1

    def stamp_write(self, expected_version: int | None) -> None:
        """Prepare for a write conditioned on ``expected_version``.

        An existing document moves to the next version; a new one (None)
        keeps its initial version. ``updated_at`` is refreshed either way.
        """
        if expected_version is not None:
            self.version = expected_version + 1
        self.update_timestamp()
