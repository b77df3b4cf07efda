"""
Gem server HTTP client infrastructure for gemrepo.

Speaks the small HTTP protocol a remote gem repository exposes:

    GET    /api/v1/specs.json                       available specifications
    PUT    /gems/{name}-{version}.gem               publish (409 if it exists)
    GET    /gems/{name}-{version}.gem               download
    HEAD   /gems/{name}-{version}.gem               gem exists?
    HEAD   /quick/spec/{name}-{version}.gemspec.json  specification visible?
    DELETE /api/v1/gems/yank?gem_name=&version=     yank
    DELETE /gems/{name}-{version}.gem               hard delete

Every request is bounded by a timeout. Transport failures and unexpected
status codes surface as StorageError; nothing is retried here.
"""

import io
import logging
from typing import Any, BinaryIO, Dict, Iterator, List, Optional

import requests

from ..domain import PackageIdentity
from ..repository.errors import DuplicateError, StorageError
from ..repository.uri import HttpUriResolver
from .file_store import DEFAULT_CHUNK_SIZE, Body, iter_chunks

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30

SPECS_PATH = "api/v1/specs.json"
YANK_PATH = "api/v1/gems/yank"


class ResponseStream(io.RawIOBase):
    """Raw binary stream over a streamed HTTP response body."""

    def __init__(self, response: requests.Response, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._response = response
        self._chunks: Iterator[bytes] = response.iter_content(chunk_size)
        self._buffer = b''

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        while not self._buffer:
            try:
                self._buffer = next(self._chunks)
            except StopIteration:
                return 0
            except requests.RequestException as e:
                raise StorageError(f"Failed reading {self._response.url}: {e}") from e

        n = min(len(b), len(self._buffer))
        b[:n] = self._buffer[:n]
        self._buffer = self._buffer[n:]
        return n

    def close(self) -> None:
        if not self.closed:
            self._response.close()
        super().close()


class GemServerClient:
    """
    Client for a remote gem server.

    Example:
        client = GemServerClient("https://gems.example.com")
        specs = client.fetch_specs()
        data = client.get_gem(PackageIdentity("foo", "1.0.0"))
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize GemServerClient.

        Args:
            base_url: Server root, e.g. "https://gems.example.com"
            timeout: Per-request timeout in seconds
            chunk_size: Upload/download chunk size
            session: Preconfigured requests session (a new one if None)
        """
        self.urls = HttpUriResolver(base_url)
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json, application/octet-stream',
            'User-Agent': 'gemrepo',
        })

    @property
    def base_url(self) -> str:
        return self.urls.uri

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        kwargs.setdefault('timeout', self.timeout)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise StorageError(f"{method} {url} failed: {e}") from e
        logger.debug(f"{method} {url} -> {response.status_code}")
        return response

    def _fail(self, response: requests.Response, identity: Optional[PackageIdentity] = None):
        response.close()
        raise StorageError(
            f"{response.request.method if response.request else 'Request'} {response.url} "
            f"returned HTTP {response.status_code}",
            identity,
        )

    def fetch_specs(self) -> List[Dict[str, Any]]:
        """All available specifications on the server."""
        url = self.base_url + SPECS_PATH
        response = self._request('GET', url)
        if response.status_code != 200:
            self._fail(response)
        try:
            data = response.json()
        except ValueError as e:
            raise StorageError(f"{url} returned invalid JSON: {e}") from e
        if isinstance(data, dict):
            data = data.get('specs', [])
        return list(data)

    def put_gem(self, identity: PackageIdentity, body: Body) -> None:
        """
        Upload a gem.

        Raises:
            DuplicateError: If the server already has this identity
            StorageError: On any other failure
        """
        url = self.urls.gem(identity)
        data = body if isinstance(body, (bytes, bytearray)) else iter_chunks(body, self.chunk_size)
        response = self._request(
            'PUT',
            url,
            data=data,
            headers={'Content-Type': 'application/octet-stream'},
        )
        if response.status_code == 409:
            response.close()
            raise DuplicateError(identity)
        if response.status_code not in (200, 201, 204):
            self._fail(response, identity)
        response.close()

    def get_gem(self, identity: PackageIdentity) -> Optional[bytes]:
        response = self._request('GET', self.urls.gem(identity))
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            self._fail(response, identity)
        return response.content

    def open_gem(self, identity: PackageIdentity) -> Optional[BinaryIO]:
        response = self._request('GET', self.urls.gem(identity), stream=True)
        if response.status_code == 404:
            response.close()
            return None
        if response.status_code != 200:
            self._fail(response, identity)
        return io.BufferedReader(ResponseStream(response, self.chunk_size))

    def exists(self, url: str) -> bool:
        """HEAD a URL: True on 200, False on 404."""
        response = self._request('HEAD', url)
        response.close()
        if response.status_code == 404:
            return False
        if response.status_code != 200:
            self._fail(response)
        return True

    def yank(self, identity: PackageIdentity) -> bool:
        """Returns False if the server had nothing available to yank."""
        response = self._request(
            'DELETE',
            self.base_url + YANK_PATH,
            params={'gem_name': identity.name, 'version': identity.version},
        )
        response.close()
        if response.status_code == 404:
            return False
        if response.status_code not in (200, 204):
            self._fail(response, identity)
        return True

    def delete_gem(self, identity: PackageIdentity) -> bool:
        """Returns False if the server had no such gem."""
        response = self._request('DELETE', self.urls.gem(identity))
        response.close()
        if response.status_code == 404:
            return False
        if response.status_code not in (200, 204):
            self._fail(response, identity)
        return True

    def close(self) -> None:
        self.session.close()
