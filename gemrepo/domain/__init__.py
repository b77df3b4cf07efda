"""
Domain layer for gemrepo.

Contains pure domain objects with no I/O or side effects:
- PackageIdentity: Name and version of a package
- PackageRecord: Index entry with availability state and digest
- SourceIndex: Snapshot of available specifications

These objects are immutable where possible and provide
serialization methods for JSON output.
"""

from .identity import PackageIdentity, version_key
from .record import PackageRecord, PackageState
from .source_index import SourceIndex, matcher_for

__all__ = [
    'PackageIdentity',
    'PackageRecord',
    'PackageState',
    'SourceIndex',
    'matcher_for',
    'version_key',
]
