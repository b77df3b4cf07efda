"""
SourceIndex domain object for gemrepo.

A SourceIndex is a point-in-time snapshot of every available package in a
repository, keyed by full name. Clients use it for dependency resolution
without issuing one request per package.
"""

import json
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Union

from .identity import PackageIdentity
from .record import PackageRecord

Query = Union[PackageIdentity, str, Callable[[PackageIdentity], bool], None]


def matcher_for(query: Query) -> Callable[[PackageIdentity], bool]:
    """
    Turn a search query into a predicate over identities.

    Args:
        query: PackageIdentity (exact match), str (name match),
            callable predicate, or None (match everything)
    """
    if query is None:
        return lambda identity: True
    if isinstance(query, PackageIdentity):
        return lambda identity: identity == query
    if isinstance(query, str):
        return lambda identity: identity.name == query
    if callable(query):
        return query
    raise TypeError(f"Unsupported search query: {query!r}")


class SourceIndex:
    """
    Snapshot of the available specifications in a repository.

    Example:
        idx = repo.source_index()
        len(idx)                          # number of available packages
        idx.search("foo")                 # all foo versions, oldest first
        idx.latest_specs()                # newest version of each name
        PackageIdentity("foo", "1.0.0") in idx
    """

    def __init__(self, records: Iterable[PackageRecord] = ()):
        self._specs: Dict[str, PackageRecord] = {}
        for record in records:
            if record.is_available:
                self._specs[record.identity.full_name] = record

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self) -> Iterator[PackageRecord]:
        return iter(sorted(self._specs.values(), key=lambda r: r.identity.sort_key))

    def __contains__(self, item: Any) -> bool:
        if isinstance(item, PackageIdentity):
            return item.full_name in self._specs
        if isinstance(item, str):
            return item in self._specs
        return False

    def specification(self, identity: PackageIdentity) -> Optional[Dict[str, Any]]:
        record = self._specs.get(identity.full_name)
        return record.to_specification() if record else None

    def identities(self) -> List[PackageIdentity]:
        return [record.identity for record in self]

    def names(self) -> List[str]:
        return sorted({record.identity.name for record in self._specs.values()})

    def search(self, query: Query = None) -> List[PackageIdentity]:
        """Identities in the snapshot matching the query, sorted."""
        match = matcher_for(query)
        return [identity for identity in self.identities() if match(identity)]

    def latest_specs(self) -> List[PackageRecord]:
        """The newest version of each package name."""
        latest: Dict[str, PackageRecord] = {}
        for record in self:
            # iteration is sorted, so later versions overwrite earlier ones
            latest[record.identity.name] = record
        return [latest[name] for name in sorted(latest)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'count': len(self),
            'specs': [record.to_specification() for record in self],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def __repr__(self) -> str:
        return f"SourceIndex({len(self)} specs)"
