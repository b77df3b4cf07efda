"""
Repository orchestration for gemrepo.

Repository wires an Index, a BlobStore and a UriResolver together behind
the RepositoryApi, and enforces the rules no backend may bend:

- one record per identity; a second push raises DuplicateError
- a record becomes visible only after its blob is completely written
- yanked packages stay retrievable but are no longer discoverable
- mutations of one identity are serialized, different identities never wait
"""

import logging
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Union

from ..domain import PackageIdentity, PackageRecord, SourceIndex, matcher_for
from ..domain.source_index import Query
from ..infra.file_store import Body
from .api import RepositoryApi, resolve_identity
from .blob_store import BlobStore
from .errors import DuplicateError, StorageError
from .index import Index
from .locks import KeyedLock
from .package_file import identity_from_path
from .uri import UriResolver

logger = logging.getLogger(__name__)

IdentityExtractor = Callable[[Path], PackageIdentity]


class Repository(RepositoryApi):
    """
    Backend-independent implementation of the Repository API.

    Example:
        repo = Repository(
            index=MemoryIndex(),
            blob_store=MemoryBlobStore(),
            uri_resolver=HttpUriResolver("https://gems.example.com"),
        )
        repo.push("foo-1.0.0.gem")
        repo.search_for(PackageIdentity("foo", "1.0.0"))
    """

    def __init__(
        self,
        index: Index,
        blob_store: BlobStore,
        uri_resolver: UriResolver,
        extractor: Optional[IdentityExtractor] = None,
    ):
        """
        Initialize Repository.

        Args:
            index: Record index (owned by this repository from now on)
            blob_store: Blob storage (owned by this repository from now on)
            uri_resolver: Address scheme for gems and specifications
            extractor: Reads the identity of a package file (defaults to
                gem metadata, then file name)
        """
        self._index = index
        self._blobs = blob_store
        self._uris = uri_resolver
        self._extract = extractor or identity_from_path
        self._locks = KeyedLock()

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    @property
    def uri(self) -> str:
        return self._uris.uri

    @property
    def gems_uri(self) -> str:
        return self._uris.gems_uri

    @property
    def specifications_uri(self) -> str:
        return self._uris.specifications_uri

    def uri_for_gem(self, identity: PackageIdentity) -> Optional[str]:
        record = self._index.find(identity)
        if record is None:
            return None
        return self._uris.gem(identity)

    def uri_for_specification(self, identity: PackageIdentity) -> Optional[str]:
        record = self._index.find(identity)
        if record is None or not record.is_available:
            return None
        return self._uris.specification(identity)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def source_index(self) -> SourceIndex:
        return SourceIndex(self._index.snapshot())

    def search_for(self, query: Query) -> List[PackageIdentity]:
        match = matcher_for(query)
        records = self._index.search(
            lambda record: record.is_available and match(record.identity)
        )
        return [record.identity for record in records]

    def find(self, identity: PackageIdentity) -> Optional[PackageRecord]:
        """The record for identity in any state, or None."""
        return self._index.find(identity)

    def __contains__(self, identity: PackageIdentity) -> bool:
        return identity in self._index

    def __len__(self) -> int:
        return len(self._index)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def push(self, path: Union[str, Path]) -> PackageIdentity:
        path = Path(path)
        try:
            identity = self._extract(path)
            with open(path, 'rb') as body:
                return self.add(identity, body)
        except OSError as e:
            raise StorageError(f"Failed to read package file {path}: {e}") from e

    def add(
        self,
        identity: Optional[PackageIdentity] = None,
        body: Optional[Body] = None,
        *,
        name: Optional[str] = None,
        version: Optional[str] = None,
    ) -> PackageIdentity:
        identity = resolve_identity(identity, name, version)
        if body is None:
            raise ValueError(f"add() needs a body for {identity}")

        with self._locks.hold(identity):
            if identity in self._index:
                raise DuplicateError(identity)

            digest, size = self._blobs.write(identity, body)
            record = PackageRecord(identity=identity, digest=digest, size=size)
            try:
                self._index.insert(record)
            except Exception:
                self._blobs.remove(identity)
                raise

        logger.info(f"Added {identity} ({size} bytes, sha1 {digest})")
        return identity

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def get(self, identity: PackageIdentity) -> Optional[bytes]:
        if identity not in self._index:
            return None
        return self._blobs.read(identity)

    def open(self, identity: PackageIdentity) -> Optional[BinaryIO]:
        if identity not in self._index:
            return None
        return self._blobs.open_read(identity)

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def yank(self, identity: PackageIdentity) -> Optional[str]:
        with self._locks.hold(identity):
            record = self._index.find(identity)
            if record is None or not record.is_available:
                logger.debug(f"Nothing to yank for {identity}")
                return None
            self._index.replace(record.yanked())

        logger.info(f"Yanked {identity}")
        return self._uris.gem(identity)

    def delete(self, identity: PackageIdentity) -> bool:
        with self._locks.hold(identity):
            record = self._index.remove(identity)
            try:
                removed_blob = self._blobs.remove(identity)
            except StorageError:
                # a blob without a specification reloads as yanked
                if record is not None:
                    self._index.insert(record.yanked())
                raise

        if record is None and not removed_blob:
            logger.debug(f"Nothing to delete for {identity}")
            return False

        logger.info(f"Deleted {identity}")
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.uri!r})"
