"""
PackageRecord domain object for gemrepo.

A PackageRecord is the index entry for one stored package: who it is,
whether it is still discoverable, and the digest of the bytes that were
stored for it. Records are immutable; state changes produce a new record.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict

from .identity import PackageIdentity


class PackageState(Enum):
    """Availability of a stored package."""
    AVAILABLE = "available"  # Listed in searches and the source index
    YANKED = "yanked"        # Hidden from discovery, blob still retrievable


@dataclass(frozen=True)
class PackageRecord:
    """
    Index entry for a stored package.

    Attributes:
        identity: Name and version of the package
        state: AVAILABLE or YANKED
        digest: SHA-1 hex digest of the stored blob
        size: Blob size in bytes
    """

    identity: PackageIdentity
    state: PackageState = PackageState.AVAILABLE
    digest: str = ""
    size: int = 0

    @property
    def is_available(self) -> bool:
        return self.state is PackageState.AVAILABLE

    @property
    def is_yanked(self) -> bool:
        return self.state is PackageState.YANKED

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def version(self) -> str:
        return self.identity.version

    def yanked(self) -> 'PackageRecord':
        """Create a copy of this record in the YANKED state."""
        return replace(self, state=PackageState.YANKED)

    def to_specification(self) -> Dict[str, Any]:
        """
        Metadata view of the package, as served to clients.

        This is the document behind uri_for_specification and the
        entries of a SourceIndex.
        """
        return {
            'name': self.identity.name,
            'version': self.identity.version,
            'full_name': self.identity.full_name,
            'digest': self.digest,
            'size': self.size,
        }

    @classmethod
    def from_specification(cls, data: Dict[str, Any]) -> 'PackageRecord':
        """Build an AVAILABLE record from a specification document."""
        return cls(
            identity=PackageIdentity(name=data['name'], version=data['version']),
            state=PackageState.AVAILABLE,
            digest=data.get('digest', ''),
            size=int(data.get('size', 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = self.to_specification()
        result['state'] = self.state.value
        return result

    def __repr__(self) -> str:
        return f"PackageRecord({self.identity.full_name!r}, state={self.state.value})"
