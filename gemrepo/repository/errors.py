"""
Repository errors for gemrepo.

Only genuine failures are raised. "Not found" is never an error: lookups
return None, deletes return False and searches return an empty list.
"""

from typing import Optional

from ..domain import PackageIdentity


class RepositoryError(Exception):
    """Base class for repository failures."""


class DuplicateError(RepositoryError):
    """Raised when pushing an identity that already has a record, in any state."""

    def __init__(self, identity: PackageIdentity):
        super().__init__(f"gem {identity.full_name} already exists")
        self.identity = identity


class StorageError(RepositoryError):
    """Raised when reading or writing blobs fails, locally or over the network."""

    def __init__(self, message: str, identity: Optional[PackageIdentity] = None):
        super().__init__(message)
        self.identity = identity


class PackageFormatError(RepositoryError):
    """Raised when a package file does not reveal its name and version."""
