"""
Entity name to collection name lookup

Populated once from entity definitions, read-only afterwards.
"""

from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional


class EntityNameMap(Mapping):
    """Read-only map of logical entity names to entity set names"""

    def __init__(self, names: Optional[Mapping[str, str]] = None):
        self._names: Mapping[str, str] = MappingProxyType(dict(names or {}))
        self._collections = frozenset(self._names.values())

    @classmethod
    def from_entity_definitions(cls, records: Iterable[Dict[str, Any]]) -> "EntityNameMap":
        """
        Build from ``EntityDefinitions`` records.

        Args:
            records: Records carrying ``LogicalName`` and ``EntitySetName``

        Returns:
            Map of logical name to entity set name
        """
        return cls({
            record["LogicalName"]: record["EntitySetName"]
            for record in records
            if record.get("LogicalName") and record.get("EntitySetName")
        })

    def find_collection_name(self, entity_name: str) -> Optional[str]:
        """Collection name for an entity name, or the name itself if it already is one"""
        collection_name = self._names.get(entity_name)
        if collection_name is None and entity_name in self._collections:
            return entity_name
        return collection_name

    def __getitem__(self, key: str) -> str:
        return self._names[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"EntityNameMap({dict(self._names)!r})"
