"""
Local filesystem repository for gemrepo.

Layout under the repository root:

    gems/foo-1.0.0.gem                     raw package bytes
    specifications/foo-1.0.0.gemspec.json  present only while available

Yanking removes the specification file and keeps the gem, so the whole
index can be rebuilt from the two directories after a restart.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..infra.file_store import DEFAULT_CHUNK_SIZE
from .blob_store import FileBlobStore
from .core import IdentityExtractor, Repository
from .index import SpecificationIndex
from .uri import FileUriResolver

logger = logging.getLogger(__name__)

GEMS_DIR = "gems"
SPECIFICATIONS_DIR = "specifications"


class LocalRepository(Repository):
    """
    Repository stored in a local directory.

    Example:
        repo = LocalRepository("~/gems")
        repo.push("pkg/foo-1.0.0.gem")
        repo.uri_for_gem(PackageIdentity("foo", "1.0.0"))
        # -> "file:///home/user/gems/gems/foo-1.0.0.gem"
    """

    def __init__(
        self,
        root: Union[str, Path],
        extractor: Optional[IdentityExtractor] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """
        Initialize LocalRepository.

        Creates the directory layout if needed and loads the index from it.

        Args:
            root: Repository directory
            extractor: Package identity extractor
            chunk_size: Copy buffer size for blob writes
        """
        self.root = Path(root).expanduser().resolve()
        self.gems_dir = self.root / GEMS_DIR
        self.specifications_dir = self.root / SPECIFICATIONS_DIR

        blob_store = FileBlobStore(self.gems_dir, chunk_size=chunk_size)
        index = SpecificationIndex(self.specifications_dir, blob_store)
        resolver = FileUriResolver(self.root, self.gems_dir, self.specifications_dir)

        super().__init__(index, blob_store, resolver, extractor=extractor)

    def rebuild_index(self) -> int:
        """Reload the index from disk. Returns the number of packages found."""
        return self._index.rebuild()

    def path_for_gem(self, identity) -> Path:
        return self._blobs.path_for(identity)
