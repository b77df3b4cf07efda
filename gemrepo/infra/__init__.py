"""
Infrastructure layer for gemrepo.

Contains abstractions for external systems:
- file_store: Atomic file writes, digests, JSON documents
- GemServerClient: HTTP access to a remote gem server

These provide clean interfaces that can be mocked for testing.
"""

from .file_store import write_atomic, write_json_atomic, read_json, digest_bytes, digest_file
from .gem_server_client import GemServerClient

__all__ = [
    'write_atomic',
    'write_json_atomic',
    'read_json',
    'digest_bytes',
    'digest_file',
    'GemServerClient',
]
