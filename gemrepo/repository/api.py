"""
The Repository API contract.

Every backend, local or remote, implements these operations with the
same visibility rules:

- push/add create an AVAILABLE package and raise DuplicateError if the
  identity already has a record in any state
- get/open/uri_for_gem work for AVAILABLE and YANKED packages
- search_for/source_index/uri_for_specification only see AVAILABLE ones
- yank hides an AVAILABLE package and returns its gem URI, or None
- delete removes a package in any state and reports whether it existed

Absence is never an error: lookups return None, delete returns False and
searches return an empty list.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from ..domain import PackageIdentity, SourceIndex
from ..domain.source_index import Query
from ..infra.file_store import Body

API_METHODS = (
    'uri',
    'gems_uri',
    'specifications_uri',
    'uri_for_gem',
    'uri_for_specification',
    'source_index',
    'search_for',
    'push',
    'add',
    'get',
    'open',
    'yank',
    'delete',
)


class RepositoryApi(ABC):
    """Interface shared by all repository backends."""

    @classmethod
    def api_methods(cls):
        return API_METHODS

    @property
    @abstractmethod
    def uri(self) -> str:
        """Base address of the repository."""

    @property
    @abstractmethod
    def gems_uri(self) -> str:
        """Address under which gem blobs live."""

    @property
    @abstractmethod
    def specifications_uri(self) -> str:
        """Address under which specifications live."""

    @abstractmethod
    def uri_for_gem(self, identity: PackageIdentity) -> Optional[str]:
        """Address of the gem blob, also for yanked packages; None if there is no blob."""

    @abstractmethod
    def uri_for_specification(self, identity: PackageIdentity) -> Optional[str]:
        """Address of the specification; None if yanked or missing."""

    @abstractmethod
    def source_index(self) -> SourceIndex:
        """Snapshot of every available specification."""

    @abstractmethod
    def search_for(self, query: Query) -> List[PackageIdentity]:
        """Available identities matching query. Never None."""

    @abstractmethod
    def push(self, path: Union[str, Path]) -> PackageIdentity:
        """Publish a package file. Returns the identity it was stored under."""

    @abstractmethod
    def add(
        self,
        identity: Optional[PackageIdentity] = None,
        body: Optional[Body] = None,
        *,
        name: Optional[str] = None,
        version: Optional[str] = None,
    ) -> PackageIdentity:
        """Publish bytes or a binary stream under an explicit identity."""

    @abstractmethod
    def get(self, identity: PackageIdentity) -> Optional[bytes]:
        """Raw package bytes, yanked or not; None if missing."""

    @abstractmethod
    def open(self, identity: PackageIdentity) -> Optional[BinaryIO]:
        """Binary stream over the package bytes; None if missing. Caller closes it."""

    @abstractmethod
    def yank(self, identity: PackageIdentity) -> Optional[str]:
        """Hide an available package. Returns its gem URI, or None if nothing to yank."""

    @abstractmethod
    def delete(self, identity: PackageIdentity) -> bool:
        """Remove a package in any state. Returns False if nothing existed."""


def resolve_identity(
    identity: Optional[PackageIdentity] = None,
    name: Optional[str] = None,
    version: Optional[str] = None,
) -> PackageIdentity:
    """Accept either an identity or a name/version pair, as add() does."""
    if identity is not None:
        if not isinstance(identity, PackageIdentity):
            raise TypeError(f"Expected PackageIdentity, got {type(identity).__name__}")
        return identity
    if name is None or version is None:
        raise ValueError("add() needs an identity or both name and version")
    return PackageIdentity(name=name, version=str(version))
