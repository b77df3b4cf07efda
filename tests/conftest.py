"""
Shared fixtures for gemrepo tests.

Provides sample .gem files and a fake gem server that speaks the remote
protocol in-process, mounted on a requests.Session as a transport adapter.
"""

import gzip
import io
import json
import tarfile
from http import HTTPStatus
from pathlib import Path
from urllib.parse import parse_qs, unquote, urlparse

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from gemrepo.domain import PackageIdentity
from gemrepo.repository import (
    DuplicateError,
    HttpUriResolver,
    LocalRepository,
    MemoryBlobStore,
    MemoryIndex,
    RemoteRepository,
    Repository,
)

SERVER_URL = "http://gems.test"


GEMSPEC_TEMPLATE = """--- !ruby/object:Gem::Specification
name: {name}
version: !ruby/object:Gem::Version
  version: {version}
platform: ruby
authors:
- Jane Doe
summary: Sample gem {name}
dependencies: []
"""


def build_gem(name: str, version: str, payload: bytes = b"puts 'hello'\n") -> bytes:
    """Build the bytes of a minimal .gem archive (metadata.gz + data.tar.gz)."""
    data_buffer = io.BytesIO()
    with tarfile.open(fileobj=data_buffer, mode='w:gz') as data_tar:
        info = tarfile.TarInfo(f"lib/{name}.rb")
        info.size = len(payload)
        data_tar.addfile(info, io.BytesIO(payload))

    members = {
        'metadata.gz': gzip.compress(GEMSPEC_TEMPLATE.format(name=name, version=version).encode()),
        'data.tar.gz': data_buffer.getvalue(),
    }

    gem_buffer = io.BytesIO()
    with tarfile.open(fileobj=gem_buffer, mode='w') as gem_tar:
        for member_name, content in members.items():
            info = tarfile.TarInfo(member_name)
            info.size = len(content)
            gem_tar.addfile(info, io.BytesIO(content))
    return gem_buffer.getvalue()


@pytest.fixture
def gem_factory(tmp_path):
    """Write a real .gem archive to disk and return its path."""
    gems_dir = tmp_path / "pkg"
    gems_dir.mkdir(exist_ok=True)

    def make(name: str, version: str, payload: bytes = b"puts 'hello'\n", filename: str = None) -> Path:
        path = gems_dir / (filename or f"{name}-{version}.gem")
        path.write_bytes(build_gem(name, version, payload))
        return path

    return make


@pytest.fixture
def foo_gem(tmp_path):
    """The foo-1.0.0.gem file: opaque bytes, identity from the file name."""
    path = tmp_path / "foo-1.0.0.gem"
    path.write_bytes(b"foo-1.0.0 package body\n" * 100)
    return path


@pytest.fixture
def foo():
    return PackageIdentity("foo", "1.0.0")


class FakeGemServer(BaseAdapter):
    """
    In-process gem server backed by a LocalRepository.

    Set `fail_status` to answer every request with that status, or
    `fail_exception` to raise it instead of answering.
    """

    def __init__(self, repository):
        super().__init__()
        self.repository = repository
        self.fail_status = None
        self.fail_exception = None
        self.requests = []

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.requests.append((request.method, request.url, timeout))

        if self.fail_exception is not None:
            raise self.fail_exception
        if self.fail_status is not None:
            return self._respond(request, self.fail_status)

        url = urlparse(request.url)
        path = unquote(url.path)
        query = parse_qs(url.query)
        return self._route(request, path, query)

    def close(self):
        pass

    def _route(self, request, path, query):
        repo = self.repository
        method = request.method

        if path == "/api/v1/specs.json" and method == 'GET':
            specs = [record.to_specification() for record in repo.source_index()]
            return self._respond(request, 200, json.dumps(specs).encode(), 'application/json')

        if path == "/api/v1/gems/yank" and method == 'DELETE':
            identity = PackageIdentity(query['gem_name'][0], query['version'][0])
            return self._respond(request, 200 if repo.yank(identity) else 404)

        if path.startswith("/gems/") and path.endswith(".gem"):
            identity = PackageIdentity.from_filename(path[len("/gems/"):])
            if method == 'PUT':
                try:
                    repo.add(identity, self._body(request))
                except DuplicateError as e:
                    return self._respond(request, 409, str(e).encode())
                return self._respond(request, 201)
            if method == 'HEAD':
                return self._respond(request, 200 if repo.uri_for_gem(identity) else 404)
            if method == 'GET':
                data = repo.get(identity)
                if data is None:
                    return self._respond(request, 404)
                return self._respond(request, 200, data, 'application/octet-stream')
            if method == 'DELETE':
                return self._respond(request, 200 if repo.delete(identity) else 404)

        if path.startswith("/quick/spec/") and path.endswith(".gemspec.json"):
            identity = PackageIdentity.parse(path[len("/quick/spec/"):-len(".gemspec.json")])
            if repo.uri_for_specification(identity) is None:
                return self._respond(request, 404)
            spec = repo.source_index().specification(identity)
            return self._respond(request, 200, json.dumps(spec).encode(), 'application/json')

        return self._respond(request, 404)

    @staticmethod
    def _body(request) -> bytes:
        body = request.body
        if body is None:
            return b''
        if isinstance(body, (bytes, bytearray)):
            return bytes(body)
        if isinstance(body, str):
            return body.encode()
        return b''.join(body)

    @staticmethod
    def _respond(request, status, body=b'', content_type='text/plain'):
        response = requests.Response()
        response.status_code = status
        response.reason = HTTPStatus(status).phrase
        response.headers = CaseInsensitiveDict({
            'Content-Type': content_type,
            'Content-Length': str(len(body)),
        })
        response.raw = io.BytesIO(b'' if request.method == 'HEAD' else body)
        response.url = request.url
        response.request = request
        response.encoding = 'utf-8'
        return response


@pytest.fixture
def gem_server(tmp_path):
    return FakeGemServer(LocalRepository(tmp_path / "server"))


@pytest.fixture
def server_session(gem_server):
    session = requests.Session()
    session.mount(SERVER_URL + "/", gem_server)
    yield session
    session.close()


@pytest.fixture
def remote_repo(server_session):
    return RemoteRepository(SERVER_URL, timeout=5, session=server_session)


@pytest.fixture
def local_repo(tmp_path):
    return LocalRepository(tmp_path / "repo")


@pytest.fixture
def memory_repo():
    return Repository(
        index=MemoryIndex(),
        blob_store=MemoryBlobStore(),
        uri_resolver=HttpUriResolver("http://mirror.test"),
    )


@pytest.fixture(params=['local', 'memory', 'remote'])
def repo(request):
    """Every backend, for tests of the shared Repository API contract."""
    return request.getfixturevalue(f"{request.param}_repo")
