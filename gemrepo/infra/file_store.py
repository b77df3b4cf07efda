"""
File store infrastructure for gemrepo.

Provides file persistence with:
- Atomic writes (write to temp, then rename)
- SHA-1 digest and size computed while writing
- Pretty JSON formatting for human readability
- Automatic parent directory creation
"""

import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

Body = Union[bytes, bytearray, BinaryIO]


def iter_chunks(body: Body, chunk_size: int = DEFAULT_CHUNK_SIZE):
    """Yield a bytes body, or the contents of a binary stream, in chunks."""
    if isinstance(body, (bytes, bytearray)):
        for offset in range(0, len(body), chunk_size):
            yield bytes(body[offset:offset + chunk_size])
        return

    while True:
        chunk = body.read(chunk_size)
        if not chunk:
            break
        if isinstance(chunk, str):
            raise TypeError("Package bodies must be opened in binary mode")
        yield chunk


def digest_bytes(data: bytes) -> str:
    """SHA-1 hex digest of a byte string."""
    return hashlib.sha1(data).hexdigest()


def digest_file(path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Tuple[str, int]:
    """SHA-1 hex digest and size of a file, read in chunks."""
    sha1 = hashlib.sha1()
    size = 0
    with open(path, 'rb') as f:
        for chunk in iter_chunks(f, chunk_size):
            sha1.update(chunk)
            size += len(chunk)
    return sha1.hexdigest(), size


def _temp_file_for(path: Path) -> Tuple[int, str]:
    path.parent.mkdir(parents=True, exist_ok=True)
    return tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp"
    )


def write_atomic(path: Path, body: Body, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Tuple[str, int]:
    """
    Write bytes or a binary stream to path atomically.

    Readers either see no file or the complete file, never a partial one.

    Args:
        path: Destination file
        body: Bytes or a readable binary stream
        chunk_size: Copy buffer size

    Returns:
        Tuple of (SHA-1 hex digest, size in bytes) of what was written
    """
    fd, temp_path = _temp_file_for(path)
    sha1 = hashlib.sha1()
    size = 0

    try:
        with os.fdopen(fd, 'wb') as f:
            for chunk in iter_chunks(body, chunk_size):
                sha1.update(chunk)
                size += len(chunk)
                f.write(chunk)

        # Atomic rename
        os.replace(temp_path, path)

    except Exception:
        # Clean up temp file on error
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise

    return sha1.hexdigest(), size


def write_json_atomic(path: Path, data: Dict[str, Any]) -> None:
    """Write a JSON document atomically, pretty-printed with a trailing newline."""
    fd, temp_path = _temp_file_for(path)

    try:
        with os.fdopen(fd, 'w') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write('\n')  # Trailing newline

        os.replace(temp_path, path)

    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def read_json(path: Path) -> Optional[Dict[str, Any]]:
    """
    Read a JSON document.

    Returns:
        Parsed document, or None if the file is missing or unreadable
    """
    try:
        with open(path, 'r') as f:
            return json.load(f)
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Error reading {path}: {e}")
        return None


def remove_file(path: Path) -> bool:
    """
    Delete a file.

    Returns:
        True if the file was deleted, False if it did not exist
    """
    try:
        os.unlink(path)
        return True
    except FileNotFoundError:
        return False
