"""Descriptors for the type catalog that a dataset schema is generated from.

A catalog is supplied by an introspection collaborator (see `loaders`) and is treated
as read-only input by the schema builder.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field


class MemberKind:
    """Kinds of type members."""

    PROPERTY = "property"
    METHOD = "method"


@dataclass(frozen=True)
class MemberDescriptor:
    """A single field candidate of a type.

    Attributes:
        name: The member name, as it would appear as an element name.
        return_type_name: The name of the declared return type (e.g. "Int32" or "Customer").
        kind: Either `MemberKind.PROPERTY` or `MemberKind.METHOD`.
        is_readable: Whether a property has a getter. Ignored for methods.
        is_special: Marks accessor-style pseudo-methods, which are never emitted.
    """

    name: str
    return_type_name: str
    kind: str = MemberKind.PROPERTY
    is_readable: bool = True
    is_special: bool = False

    def __post_init__(self):
        """Sanity check for the member kind."""
        if self.kind not in (MemberKind.PROPERTY, MemberKind.METHOD):
            raise ValueError(f"Unknown member kind '{self.kind}' for member '{self.name}'.")

    @property
    def is_property(self) -> bool:
        return self.kind == MemberKind.PROPERTY

    @property
    def is_method(self) -> bool:
        return self.kind == MemberKind.METHOD


@dataclass(frozen=True)
class TypeDescriptor:
    """A type of the catalog with its ordered members. Identity is the name."""

    name: str
    members: tuple[MemberDescriptor, ...] = ()

    def __post_init__(self):
        # Accept any sequence, but store an immutable copy.
        object.__setattr__(self, "members", tuple(self.members))

    @property
    def properties(self) -> list[MemberDescriptor]:
        """The property members, in declaration order."""
        return [member for member in self.members if member.is_property]

    @property
    def methods(self) -> list[MemberDescriptor]:
        """The method members, in declaration order, without accessor-style pseudo-methods."""
        return [member for member in self.members if member.is_method and not member.is_special]


@dataclass
class TypeCatalog:
    """An ordered set of type descriptors under a logical name.

    The name becomes the root element and the schema id of the generated document.
    """

    name: str
    types: Sequence[TypeDescriptor] = field(default_factory=list)

    def __iter__(self) -> Iterator[TypeDescriptor]:
        return iter(self.types)

    def __len__(self) -> int:
        return len(self.types)
