"""Immutable tool and prompt catalogs."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from types import MappingProxyType
from typing import Any, Generic, Protocol, TypeVar


class _Named(Protocol):
    @property
    def name(self) -> str: ...

    def to_dict(self) -> dict[str, Any]: ...


EntryT = TypeVar("EntryT", bound=_Named)


class DuplicateNameError(ValueError):
    """Raised when two catalog entries share a name."""

    pass


class Registry(Generic[EntryT]):
    """Name-keyed catalog built once and never mutated.

    Entries keep their declaration order for listing.
    """

    def __init__(self, entries: Iterable[EntryT], kind: str = "tool") -> None:
        """Build the catalog.

        Args:
            entries: Definitions to index.
            kind: Label used in error messages ("tool", "prompt").

        Raises:
            DuplicateNameError: If two entries share a name.
        """
        index: dict[str, EntryT] = {}
        for entry in entries:
            if entry.name in index:
                raise DuplicateNameError(f"Duplicate {kind} name: {entry.name}")
            index[entry.name] = entry
        self._kind = kind
        self._entries = MappingProxyType(index)

    @property
    def kind(self) -> str:
        return self._kind

    def get(self, name: str) -> EntryT | None:
        """Look up an entry by name."""
        return self._entries.get(name)

    def names(self) -> list[str]:
        return list(self._entries)

    def list_dicts(self) -> list[dict[str, Any]]:
        """All entries in MCP list format."""
        return [entry.to_dict() for entry in self._entries.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[EntryT]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)
