"""
Package index for gemrepo.

The index maps each PackageIdentity to its PackageRecord. Lookups are
O(1) dict accesses; searches scan the records under a predicate.

Two implementations:
- MemoryIndex: records live in a dict guarded by a lock
- SpecificationIndex: a MemoryIndex that also keeps one specification
  file per available package on disk, and can rebuild itself from the
  gem and specification directories after a restart
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..domain import PackageIdentity, PackageRecord, PackageState
from ..infra.file_store import read_json, remove_file, write_json_atomic
from .blob_store import BlobStore
from .errors import DuplicateError, StorageError
from .uri import SPECIFICATION_SUFFIX, specification_file_name

logger = logging.getLogger(__name__)

RecordPredicate = Callable[[PackageRecord], bool]


class Index(ABC):
    """Index interface."""

    @abstractmethod
    def insert(self, record: PackageRecord) -> None:
        """Add a record. Raises DuplicateError if the identity is present."""

    @abstractmethod
    def replace(self, record: PackageRecord) -> bool:
        """Overwrite an existing record. Returns False if it was absent."""

    @abstractmethod
    def remove(self, identity: PackageIdentity) -> Optional[PackageRecord]:
        """Drop a record, returning it, or None if absent."""

    @abstractmethod
    def find(self, identity: PackageIdentity) -> Optional[PackageRecord]:
        """Exact lookup."""

    @abstractmethod
    def search(self, predicate: Optional[RecordPredicate] = None) -> List[PackageRecord]:
        """Records of any state matching predicate, sorted by name and version."""

    def snapshot(self) -> List[PackageRecord]:
        """All available records, sorted."""
        return self.search(lambda record: record.is_available)

    @abstractmethod
    def __len__(self) -> int:
        ...

    def __contains__(self, identity: PackageIdentity) -> bool:
        return self.find(identity) is not None


class MemoryIndex(Index):
    """Index held in a dict."""

    def __init__(self):
        self._lock = threading.RLock()
        self._records: Dict[PackageIdentity, PackageRecord] = {}

    def insert(self, record: PackageRecord) -> None:
        with self._lock:
            if record.identity in self._records:
                raise DuplicateError(record.identity)
            self._records[record.identity] = record

    def replace(self, record: PackageRecord) -> bool:
        with self._lock:
            if record.identity not in self._records:
                return False
            self._records[record.identity] = record
            return True

    def remove(self, identity: PackageIdentity) -> Optional[PackageRecord]:
        with self._lock:
            return self._records.pop(identity, None)

    def find(self, identity: PackageIdentity) -> Optional[PackageRecord]:
        with self._lock:
            return self._records.get(identity)

    def search(self, predicate: Optional[RecordPredicate] = None) -> List[PackageRecord]:
        with self._lock:
            records = list(self._records.values())
        if predicate is not None:
            records = [record for record in records if predicate(record)]
        return sorted(records, key=lambda record: record.identity.sort_key)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class SpecificationIndex(MemoryIndex):
    """
    MemoryIndex persisted as specification files.

    Layout:
        specifications/foo-1.0.0.gemspec.json   (only while available)

    A gem blob with a specification file is AVAILABLE; a gem blob without
    one is YANKED. This makes the index fully recoverable from disk.

    Example:
        blobs = FileBlobStore(root / "gems")
        index = SpecificationIndex(root / "specifications", blobs)
    """

    def __init__(self, directory: Path, blob_store: BlobStore, rebuild: bool = True):
        super().__init__()
        self.directory = Path(directory).expanduser().resolve()
        self.blob_store = blob_store
        self.directory.mkdir(parents=True, exist_ok=True)

        if rebuild:
            self.rebuild()

    def path_for(self, identity: PackageIdentity) -> Path:
        return self.directory / specification_file_name(identity)

    def _write_specification(self, record: PackageRecord) -> None:
        path = self.path_for(record.identity)
        try:
            write_json_atomic(path, record.to_specification())
        except OSError as e:
            raise StorageError(f"Failed to write specification {path}: {e}", record.identity) from e

    def _remove_specification(self, identity: PackageIdentity) -> None:
        path = self.path_for(identity)
        try:
            remove_file(path)
        except OSError as e:
            raise StorageError(f"Failed to delete specification {path}: {e}", identity) from e

    def insert(self, record: PackageRecord) -> None:
        with self._lock:
            if record.identity in self._records:
                raise DuplicateError(record.identity)
            if record.is_available:
                self._write_specification(record)
            self._records[record.identity] = record

    def replace(self, record: PackageRecord) -> bool:
        with self._lock:
            if record.identity not in self._records:
                return False
            if record.is_available:
                self._write_specification(record)
            else:
                self._remove_specification(record.identity)
            self._records[record.identity] = record
            return True

    def remove(self, identity: PackageIdentity) -> Optional[PackageRecord]:
        with self._lock:
            self._remove_specification(identity)
            return self._records.pop(identity, None)

    def rebuild(self) -> int:
        """
        Reload every record from the gem and specification directories.

        Returns:
            Number of records loaded
        """
        records: Dict[PackageIdentity, PackageRecord] = {}

        for identity in self.blob_store.identities():
            spec = read_json(self.path_for(identity))
            if spec is not None:
                record = PackageRecord.from_specification(spec)
                if record.identity != identity:
                    logger.warning(
                        f"Specification {self.path_for(identity).name} describes "
                        f"{record.identity}; using the file name"
                    )
                    record = PackageRecord(identity=identity, digest=record.digest, size=record.size)
                if not record.digest:
                    digest, size = self.blob_store.digest(identity) or ('', 0)
                    record = PackageRecord(identity=identity, digest=digest, size=size)
            else:
                digest, size = self.blob_store.digest(identity) or ('', 0)
                record = PackageRecord(
                    identity=identity,
                    state=PackageState.YANKED,
                    digest=digest,
                    size=size,
                )
            records[identity] = record

        for path in self.directory.glob(f'*{SPECIFICATION_SUFFIX}'):
            full_name = path.name[:-len(SPECIFICATION_SUFFIX)]
            try:
                identity = PackageIdentity.parse(full_name)
            except ValueError:
                identity = None
            if identity is None or identity not in records:
                logger.warning(f"Ignoring specification without a gem: {path.name}")

        with self._lock:
            self._records = records

        logger.info(f"Loaded {len(records)} packages from {self.directory.parent}")
        return len(records)
