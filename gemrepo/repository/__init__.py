"""
Repository layer for gemrepo.

The Repository API and its building blocks:
- RepositoryApi: The contract every backend implements
- Repository: Orchestrates an Index, a BlobStore and a UriResolver
- LocalRepository: Directory-backed repository
- RemoteRepository: Repository on a gem server over HTTP
- Index / MemoryIndex / SpecificationIndex: Record storage
- BlobStore / MemoryBlobStore / FileBlobStore: Package byte storage
- UriResolver / FileUriResolver / HttpUriResolver: Address schemes
"""

from .errors import RepositoryError, DuplicateError, StorageError, PackageFormatError
from .uri import UriIntent, UriResolver, FileUriResolver, HttpUriResolver
from .locks import KeyedLock
from .blob_store import BlobStore, MemoryBlobStore, FileBlobStore
from .index import Index, MemoryIndex, SpecificationIndex
from .api import API_METHODS, RepositoryApi
from .package_file import extract_identity, identity_from_path
from .core import Repository
from .local import LocalRepository
from .remote import RemoteRepository

__all__ = [
    'RepositoryError',
    'DuplicateError',
    'StorageError',
    'PackageFormatError',
    'UriIntent',
    'UriResolver',
    'FileUriResolver',
    'HttpUriResolver',
    'KeyedLock',
    'BlobStore',
    'MemoryBlobStore',
    'FileBlobStore',
    'Index',
    'MemoryIndex',
    'SpecificationIndex',
    'API_METHODS',
    'RepositoryApi',
    'extract_identity',
    'identity_from_path',
    'Repository',
    'LocalRepository',
    'RemoteRepository',
]
