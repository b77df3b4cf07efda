"""
Remote HTTP repository for gemrepo.

RemoteRepository forwards every operation to a gem server. The server
owns the index and the blobs and enforces the invariants (for example it
answers 409 to a duplicate upload); this class maps its answers back onto
the Repository API.
"""

import logging
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

import requests

from ..domain import PackageIdentity, PackageRecord, SourceIndex
from ..domain.source_index import Query
from ..infra.file_store import DEFAULT_CHUNK_SIZE, Body
from ..infra.gem_server_client import DEFAULT_TIMEOUT, GemServerClient
from .api import RepositoryApi, resolve_identity
from .core import IdentityExtractor
from .errors import StorageError
from .package_file import identity_from_path

logger = logging.getLogger(__name__)


class RemoteRepository(RepositoryApi):
    """
    Repository on a gem server.

    Example:
        repo = RemoteRepository("https://gems.example.com")
        repo.push("pkg/foo-1.0.0.gem")
        repo.yank(PackageIdentity("foo", "1.0.0"))
        # -> "https://gems.example.com/gems/foo-1.0.0.gem"
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        session: Optional[requests.Session] = None,
        extractor: Optional[IdentityExtractor] = None,
    ):
        """
        Initialize RemoteRepository.

        Args:
            base_url: Server root URL
            timeout: Per-request timeout in seconds
            chunk_size: Upload/download chunk size
            session: Preconfigured requests session
            extractor: Package identity extractor used by push()
        """
        self.client = GemServerClient(
            base_url,
            timeout=timeout,
            chunk_size=chunk_size,
            session=session,
        )
        self._uris = self.client.urls
        self._extract = extractor or identity_from_path

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
        url = self._uris.gem(identity)
        return url if self.client.exists(url) else None

    def uri_for_specification(self, identity: PackageIdentity) -> Optional[str]:
        url = self._uris.specification(identity)
        return url if self.client.exists(url) else None

    def source_index(self) -> SourceIndex:
        records = []
        for spec in self.client.fetch_specs():
            try:
                records.append(PackageRecord.from_specification(spec))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed specification from {self.uri}: {e}")
        return SourceIndex(records)

    def search_for(self, query: Query) -> List[PackageIdentity]:
        return self.source_index().search(query)

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
        self.client.put_gem(identity, body)
        logger.info(f"Uploaded {identity} to {self.uri}")
        return identity

    def get(self, identity: PackageIdentity) -> Optional[bytes]:
        return self.client.get_gem(identity)

    def open(self, identity: PackageIdentity) -> Optional[BinaryIO]:
        return self.client.open_gem(identity)

    def yank(self, identity: PackageIdentity) -> Optional[str]:
        if not self.client.yank(identity):
            return None
        logger.info(f"Yanked {identity} on {self.uri}")
        return self._uris.gem(identity)

    def delete(self, identity: PackageIdentity) -> bool:
        deleted = self.client.delete_gem(identity)
        if deleted:
            logger.info(f"Deleted {identity} from {self.uri}")
        return deleted

    def close(self) -> None:
        self.client.close()

    def __repr__(self) -> str:
        return f"RemoteRepository({self.uri!r})"
