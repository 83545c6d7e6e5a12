"""Parent/child relationships between catalog types."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from dataset_schema_generator import helper


@dataclass(frozen=True)
class RelationshipDescriptor:
    """A named link from a parent type to a child type via their synthetic keys.

    Attributes:
        parent_type: The type that declares the referencing member.
        child_type: The referenced type.
    """

    parent_type: str
    child_type: str

    def __post_init__(self):
        """Sanity check against self references."""
        if self.parent_type == self.child_type:
            raise ValueError(f"A relationship cannot reference its own type '{self.parent_type}'.")

    @property
    def name(self) -> str:
        """The relationship name, e.g. `Order_Customer`."""
        return f"{self.parent_type}_{self.child_type}"

    @property
    def parent_key(self) -> str:
        return helper.key_name(self.parent_type)

    @property
    def child_key(self) -> str:
        return helper.key_name(self.child_type)


class RelationshipCollector:
    """Ordered collection of the relationships found while walking the catalog.

    Relationships are not deduplicated: two members of one type that reference the
    same child type yield two equal descriptors.
    """

    def __init__(self) -> None:
        """Initialize an empty collection."""
        self._relationships: list[RelationshipDescriptor] = []

    def record(self, parent_type: str, child_type: str) -> RelationshipDescriptor | None:
        """Record a relationship from a parent type to a child type.

        Args:
            parent_type: The name of the referencing type.
            child_type: The name of the referenced type.

        Returns:
            The recorded descriptor, or None for a self reference, which is dropped.
        """
        if parent_type == child_type:
            return None

        relationship = RelationshipDescriptor(parent_type, child_type)
        self._relationships.append(relationship)

        return relationship

    @property
    def relationships(self) -> list[RelationshipDescriptor]:
        """A copy of the recorded relationships, in recording order."""
        return list(self._relationships)

    def __iter__(self) -> Iterator[RelationshipDescriptor]:
        return iter(self._relationships)

    def __len__(self) -> int:
        return len(self._relationships)

    def __repr__(self) -> str:
        """Return a readable representation for debugging."""
        return f"RelationshipCollector(relationships={len(self._relationships)})"
