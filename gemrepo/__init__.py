"""
gemrepo - A versioned package repository for gems.

gemrepo stores packages by name and version and exposes one Repository
API over several storage backends: a local directory or a remote gem
server. Packages can be published, fetched, yanked (hidden from
discovery but still downloadable) and deleted.

Quick Start:
    import gemrepo
    from gemrepo import PackageIdentity

    repo = gemrepo.open_repository("~/gems")

    # Publish
    repo.push("pkg/foo-1.0.0.gem")
    with open("bar-2.0.gem", "rb") as f:
        repo.add(name="bar", version="2.0", body=f)

    # Discover
    repo.search_for("foo")                          # by name
    repo.search_for(PackageIdentity("foo", "1.0.0"))
    for spec in repo.source_index():
        print(spec.identity, spec.digest)

    # Retrieve
    data = repo.get(PackageIdentity("foo", "1.0.0"))
    with repo.open(PackageIdentity("foo", "1.0.0")) as stream:
        stream.read()

    # Remove
    repo.yank(PackageIdentity("foo", "1.0.0"))      # hide, keep the blob
    repo.delete(PackageIdentity("foo", "1.0.0"))    # remove everything

Domain Objects:
    PackageIdentity - Name and version
    PackageRecord - Index entry with state and digest
    SourceIndex - Snapshot of available specifications

Backends:
    LocalRepository - Directory with gems/ and specifications/
    RemoteRepository - Gem server over HTTP
    Repository - Compose your own from an Index, BlobStore and UriResolver
"""

__version__ = "0.1.0"

# Domain objects
from .domain import (
    PackageIdentity,
    PackageRecord,
    PackageState,
    SourceIndex,
)

# Repository API
from .repository import (
    RepositoryApi,
    Repository,
    LocalRepository,
    RemoteRepository,
    RepositoryError,
    DuplicateError,
    StorageError,
    PackageFormatError,
)

# High-level API
from .api import open_repository

# Configuration
from .config import load_config, save_config

__all__ = [
    # Version
    "__version__",
    # Domain objects
    "PackageIdentity",
    "PackageRecord",
    "PackageState",
    "SourceIndex",
    # Repository API
    "RepositoryApi",
    "Repository",
    "LocalRepository",
    "RemoteRepository",
    "RepositoryError",
    "DuplicateError",
    "StorageError",
    "PackageFormatError",
    # High-level API
    "open_repository",
    # Configuration
    "load_config",
    "save_config",
]
