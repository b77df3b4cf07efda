"""Tests for blob stores, indexes, file helpers and per-identity locks."""

import hashlib
import io
import threading
import time

import pytest

from gemrepo.domain import PackageIdentity, PackageRecord
from gemrepo.infra.file_store import (
    digest_file,
    iter_chunks,
    read_json,
    remove_file,
    write_atomic,
    write_json_atomic,
)
from gemrepo.repository import (
    DuplicateError,
    FileBlobStore,
    FileUriResolver,
    HttpUriResolver,
    KeyedLock,
    MemoryBlobStore,
    MemoryIndex,
    SpecificationIndex,
    StorageError,
)

FOO = PackageIdentity("foo", "1.0.0")


class TestFileStore:
    """Tests for the low-level file helpers."""

    def test_write_atomic_returns_digest(self, tmp_path):
        """Test digest and size of an atomic write."""
        path = tmp_path / "out.bin"
        digest, size = write_atomic(path, b"hello world")

        assert path.read_bytes() == b"hello world"
        assert digest == hashlib.sha1(b"hello world").hexdigest()
        assert size == 11

    def test_write_atomic_from_stream(self, tmp_path):
        """Test copying a stream in small chunks."""
        path = tmp_path / "out.bin"
        data = bytes(range(256)) * 10
        digest, size = write_atomic(path, io.BytesIO(data), chunk_size=100)

        assert path.read_bytes() == data
        assert (digest, size) == digest_file(path)

    def test_write_atomic_failure_leaves_nothing(self, tmp_path):
        """Test that a failing source leaves neither target nor temp file."""
        class Exploding(io.RawIOBase):
            def read(self, n=-1):
                raise OSError("device gone")

        path = tmp_path / "out.bin"
        with pytest.raises(OSError):
            write_atomic(path, Exploding())

        assert list(tmp_path.iterdir()) == []

    def test_text_stream_rejected(self, tmp_path):
        """Test that a text-mode body is refused."""
        with pytest.raises(TypeError):
            list(iter_chunks(io.StringIO("text")))

    def test_json_helpers(self, tmp_path):
        """Test JSON write, read, and removal."""
        path = tmp_path / "doc.json"
        write_json_atomic(path, {'a': 1})

        assert read_json(path) == {'a': 1}
        assert path.read_text().endswith("\n")
        assert remove_file(path) is True
        assert remove_file(path) is False
        assert read_json(path) is None

    def test_read_json_invalid(self, tmp_path):
        """Test that a corrupt document reads as None."""
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        assert read_json(path) is None


@pytest.fixture(params=['memory', 'file'])
def blob_store(request, tmp_path):
    if request.param == 'memory':
        return MemoryBlobStore()
    return FileBlobStore(tmp_path / "gems")


class TestBlobStore:
    """Tests shared by every BlobStore."""

    def test_write_read(self, blob_store):
        """Test that a completed write is readable."""
        digest, size = blob_store.write(FOO, b"data")

        assert blob_store.read(FOO) == b"data"
        assert blob_store.exists(FOO)
        assert digest == hashlib.sha1(b"data").hexdigest()
        assert size == 4

    def test_open_read(self, blob_store):
        """Test streaming reads return fresh streams."""
        blob_store.write(FOO, b"data")
        with blob_store.open_read(FOO) as a, blob_store.open_read(FOO) as b:
            assert a.read(2) == b"da"
            assert b.read() == b"data"

    def test_missing(self, blob_store):
        """Test absence."""
        assert blob_store.read(FOO) is None
        assert blob_store.open_read(FOO) is None
        assert blob_store.exists(FOO) is False
        assert blob_store.remove(FOO) is False
        assert blob_store.digest(FOO) is None

    def test_remove(self, blob_store):
        """Test deleting a blob."""
        blob_store.write(FOO, b"data")
        assert blob_store.remove(FOO) is True
        assert blob_store.read(FOO) is None

    def test_identities(self, blob_store):
        """Test listing stored identities."""
        other = PackageIdentity("bar", "2.0")
        blob_store.write(FOO, b"1")
        blob_store.write(other, b"2")
        assert sorted(blob_store.identities(), key=lambda i: i.sort_key) == [other, FOO]

    def test_digest(self, blob_store):
        """Test recomputing the digest of a stored blob."""
        blob_store.write(FOO, b"data")
        assert blob_store.digest(FOO) == (hashlib.sha1(b"data").hexdigest(), 4)


class TestFileBlobStore:
    """Tests specific to the file-backed store."""

    def test_file_layout(self, tmp_path):
        """Test that blobs are stored as name-version.gem."""
        store = FileBlobStore(tmp_path / "gems")
        store.write(FOO, b"data")
        assert (tmp_path / "gems" / "foo-1.0.0.gem").read_bytes() == b"data"

    def test_os_error_wrapped(self, tmp_path, monkeypatch):
        """Test that OSError surfaces as StorageError."""
        store = FileBlobStore(tmp_path / "gems")

        def broken(*args, **kwargs):
            raise PermissionError("denied")

        monkeypatch.setattr("gemrepo.repository.blob_store.write_atomic", broken)
        with pytest.raises(StorageError) as exc_info:
            store.write(FOO, b"data")

        assert exc_info.value.identity == FOO
        assert isinstance(exc_info.value.__cause__, PermissionError)


class TestMemoryIndex:
    """Tests for the dict-backed index."""

    def test_insert_find(self):
        index = MemoryIndex()
        record = PackageRecord(identity=FOO)
        index.insert(record)

        assert index.find(FOO) is record
        assert FOO in index
        assert len(index) == 1

    def test_insert_duplicate(self):
        index = MemoryIndex()
        index.insert(PackageRecord(identity=FOO))
        with pytest.raises(DuplicateError):
            index.insert(PackageRecord(identity=FOO))

    def test_replace(self):
        index = MemoryIndex()
        record = PackageRecord(identity=FOO)
        index.insert(record)

        assert index.replace(record.yanked()) is True
        assert index.find(FOO).is_yanked
        assert index.replace(PackageRecord(identity=PackageIdentity("x", "1"))) is False

    def test_remove(self):
        index = MemoryIndex()
        record = PackageRecord(identity=FOO)
        index.insert(record)

        assert index.remove(FOO) is record
        assert index.remove(FOO) is None

    def test_search_and_snapshot(self):
        index = MemoryIndex()
        index.insert(PackageRecord(identity=PackageIdentity("foo", "2.0")))
        index.insert(PackageRecord(identity=PackageIdentity("foo", "1.0")).yanked())
        index.insert(PackageRecord(identity=PackageIdentity("bar", "1.0")))

        assert [r.identity.full_name for r in index.search()] == ["bar-1.0", "foo-1.0", "foo-2.0"]
        assert [r.identity.full_name for r in index.snapshot()] == ["bar-1.0", "foo-2.0"]

    def test_clear(self):
        index = MemoryIndex()
        index.insert(PackageRecord(identity=FOO))
        index.clear()
        assert len(index) == 0


class TestSpecificationIndex:
    """Tests for the index persisted as specification files."""

    @pytest.fixture
    def blobs(self, tmp_path):
        return FileBlobStore(tmp_path / "gems")

    def test_specification_follows_state(self, tmp_path, blobs):
        """Test that the file exists exactly while the record is available."""
        index = SpecificationIndex(tmp_path / "specs", blobs)
        record = PackageRecord(identity=FOO, digest="abc", size=3)
        path = index.path_for(FOO)

        index.insert(record)
        assert read_json(path) == record.to_specification()

        index.replace(record.yanked())
        assert not path.exists()

        index.remove(FOO)
        assert index.find(FOO) is None

    def test_rebuild_recomputes_missing_digest(self, tmp_path, blobs):
        """Test loading a specification written without a digest."""
        blobs.write(FOO, b"data")
        write_json_atomic(tmp_path / "specs" / "foo-1.0.0.gemspec.json", {'name': 'foo', 'version': '1.0.0'})

        index = SpecificationIndex(tmp_path / "specs", blobs)

        record = index.find(FOO)
        assert record.is_available
        assert record.digest == hashlib.sha1(b"data").hexdigest()
        assert record.size == 4

    def test_rebuild_trusts_file_name(self, tmp_path, blobs):
        """Test a specification whose contents name another package."""
        blobs.write(FOO, b"data")
        write_json_atomic(
            tmp_path / "specs" / "foo-1.0.0.gemspec.json",
            {'name': 'other', 'version': '9.9', 'digest': 'abc', 'size': 4},
        )

        index = SpecificationIndex(tmp_path / "specs", blobs)

        assert index.find(FOO).is_available
        assert index.find(PackageIdentity("other", "9.9")) is None

    def test_no_rebuild(self, tmp_path, blobs):
        """Test skipping the initial scan."""
        blobs.write(FOO, b"data")
        index = SpecificationIndex(tmp_path / "specs", blobs, rebuild=False)
        assert len(index) == 0
        assert index.rebuild() == 1


class TestUriResolvers:
    """Tests for address schemes."""

    def test_http(self):
        resolver = HttpUriResolver("https://gems.example.com/")
        assert resolver.uri == "https://gems.example.com/"
        assert resolver.gem(FOO) == "https://gems.example.com/gems/foo-1.0.0.gem"
        assert resolver.specification(FOO) == "https://gems.example.com/quick/spec/foo-1.0.0.gemspec.json"

    def test_http_quotes_names(self):
        resolver = HttpUriResolver("https://gems.example.com")
        assert resolver.gem(PackageIdentity("a b", "1.0")) == "https://gems.example.com/gems/a%20b-1.0.gem"

    def test_file(self, tmp_path):
        resolver = FileUriResolver(tmp_path, tmp_path / "gems", tmp_path / "specifications")
        assert resolver.gems_uri == (tmp_path / "gems").resolve().as_uri() + "/"
        assert resolver.gem(FOO).endswith("/gems/foo-1.0.0.gem")
        assert resolver.specification(FOO).endswith("/specifications/foo-1.0.0.gemspec.json")
        assert resolver.gem(FOO).startswith("file://")


class TestKeyedLock:
    """Tests for per-identity locking."""

    def test_same_key_serialized(self):
        """Test that holders of one key never overlap."""
        locks = KeyedLock()
        active = []
        overlaps = []

        def worker():
            with locks.hold(FOO):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(True)
                time.sleep(0.01)
                active.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert overlaps == []

    def test_different_keys_independent(self):
        """Test that holding one key does not block another."""
        locks = KeyedLock()
        acquired = threading.Event()

        def other():
            with locks.hold(PackageIdentity("bar", "1.0")):
                acquired.set()

        with locks.hold(FOO):
            thread = threading.Thread(target=other)
            thread.start()
            assert acquired.wait(timeout=5)
            thread.join()

    def test_entries_discarded(self):
        """Test that unused keys do not accumulate."""
        locks = KeyedLock()
        with locks.hold(FOO):
            assert len(locks) == 1
        assert len(locks) == 0

    def test_released_on_error(self):
        """Test that an exception inside the block releases the key."""
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            with locks.hold(FOO):
                raise RuntimeError("boom")

        with locks.hold(FOO):
            pass
        assert len(locks) == 0
