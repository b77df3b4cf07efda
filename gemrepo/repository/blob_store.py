"""
Blob storage for gemrepo.

A BlobStore keeps the raw bytes of each package, addressed by identity.
It knows nothing about yanking; visibility rules live in the Repository.
A completed write is immediately visible to read() and open_read().
"""

import io
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Tuple

from ..domain import PackageIdentity
from ..infra.file_store import (
    DEFAULT_CHUNK_SIZE,
    Body,
    digest_file,
    iter_chunks,
    digest_bytes,
    remove_file,
    write_atomic,
)
from .errors import StorageError

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Storage interface for package bytes."""

    @abstractmethod
    def write(self, identity: PackageIdentity, body: Body) -> Tuple[str, int]:
        """
        Store bytes or a binary stream for identity.

        Callers guarantee a slot is written once per lifecycle.

        Returns:
            Tuple of (SHA-1 hex digest, size in bytes)
        """

    @abstractmethod
    def read(self, identity: PackageIdentity) -> Optional[bytes]:
        """Return the stored bytes, or None if there is no blob."""

    @abstractmethod
    def open_read(self, identity: PackageIdentity) -> Optional[BinaryIO]:
        """Return a fresh binary stream over the blob, or None."""

    @abstractmethod
    def remove(self, identity: PackageIdentity) -> bool:
        """Delete the blob. Returns False if there was none."""

    @abstractmethod
    def exists(self, identity: PackageIdentity) -> bool:
        """Check whether a blob is stored for identity."""

    @abstractmethod
    def identities(self) -> List[PackageIdentity]:
        """All identities that currently have a blob."""

    def digest(self, identity: PackageIdentity) -> Optional[Tuple[str, int]]:
        """Digest and size of a stored blob, or None."""
        data = self.read(identity)
        if data is None:
            return None
        return digest_bytes(data), len(data)


class MemoryBlobStore(BlobStore):
    """
    Blob store held in a dict.

    Useful for tests and for short-lived mirrors.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.chunk_size = chunk_size
        self._lock = threading.Lock()
        self._blobs: Dict[PackageIdentity, bytes] = {}

    def write(self, identity: PackageIdentity, body: Body) -> Tuple[str, int]:
        try:
            data = b''.join(iter_chunks(body, self.chunk_size))
        except OSError as e:
            raise StorageError(f"Failed to read body for {identity}: {e}", identity) from e

        with self._lock:
            self._blobs[identity] = data
        return digest_bytes(data), len(data)

    def read(self, identity: PackageIdentity) -> Optional[bytes]:
        with self._lock:
            return self._blobs.get(identity)

    def open_read(self, identity: PackageIdentity) -> Optional[BinaryIO]:
        data = self.read(identity)
        if data is None:
            return None
        return io.BytesIO(data)

    def remove(self, identity: PackageIdentity) -> bool:
        with self._lock:
            return self._blobs.pop(identity, None) is not None

    def exists(self, identity: PackageIdentity) -> bool:
        with self._lock:
            return identity in self._blobs

    def identities(self) -> List[PackageIdentity]:
        with self._lock:
            return list(self._blobs)


class FileBlobStore(BlobStore):
    """
    Blob store backed by a directory of "name-version.gem" files.

    Example:
        store = FileBlobStore(Path("/srv/gems/gems"))
        store.write(PackageIdentity("foo", "1.0.0"), open("foo-1.0.0.gem", "rb"))
        store.read(PackageIdentity("foo", "1.0.0"))
    """

    def __init__(self, directory: Path, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.directory = Path(directory).expanduser().resolve()
        self.chunk_size = chunk_size
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, identity: PackageIdentity) -> Path:
        return self.directory / identity.file_name

    def write(self, identity: PackageIdentity, body: Body) -> Tuple[str, int]:
        path = self.path_for(identity)
        try:
            digest, size = write_atomic(path, body, self.chunk_size)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}", identity) from e
        logger.debug(f"Wrote {size} bytes to {path}")
        return digest, size

    def read(self, identity: PackageIdentity) -> Optional[bytes]:
        path = self.path_for(identity)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}", identity) from e

    def open_read(self, identity: PackageIdentity) -> Optional[BinaryIO]:
        path = self.path_for(identity)
        try:
            return open(path, 'rb')
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to open {path}: {e}", identity) from e

    def remove(self, identity: PackageIdentity) -> bool:
        path = self.path_for(identity)
        try:
            return remove_file(path)
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}", identity) from e

    def exists(self, identity: PackageIdentity) -> bool:
        return self.path_for(identity).is_file()

    def identities(self) -> List[PackageIdentity]:
        found = []
        for path in sorted(self.directory.glob('*.gem')):
            try:
                found.append(PackageIdentity.from_filename(path.name))
            except ValueError:
                logger.warning(f"Skipping unrecognised file in gem directory: {path.name}")
        return found

    def digest(self, identity: PackageIdentity) -> Optional[Tuple[str, int]]:
        path = self.path_for(identity)
        try:
            return digest_file(path, self.chunk_size)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}", identity) from e
