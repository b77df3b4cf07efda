"""
Tests for the gem server client and the remote repository.

Uses the in-process FakeGemServer from conftest; failures are injected
on the server or with unittest.mock on the session.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from gemrepo.domain import PackageIdentity
from gemrepo.infra.gem_server_client import GemServerClient
from gemrepo.repository import DuplicateError, RemoteRepository, StorageError

SERVER_URL = "http://gems.test"


@pytest.fixture
def client(server_session):
    return GemServerClient(SERVER_URL, timeout=7, session=server_session)


class TestProtocol:
    """Tests for the requests the client sends."""

    def test_urls(self, client, foo):
        """Test the addresses derived from the base URL."""
        assert client.base_url == "http://gems.test/"
        assert client.urls.gem(foo) == "http://gems.test/gems/foo-1.0.0.gem"
        assert client.urls.specification(foo) == "http://gems.test/quick/spec/foo-1.0.0.gemspec.json"

    def test_trailing_slash_normalized(self):
        """Test that base URLs with or without a slash behave the same."""
        assert GemServerClient("http://a.test/").base_url == GemServerClient("http://a.test").base_url

    def test_every_request_has_timeout(self, client, gem_server, foo):
        """Test that the configured timeout reaches the transport."""
        client.put_gem(foo, b"data")
        client.get_gem(foo)
        client.fetch_specs()
        client.yank(foo)
        client.delete_gem(foo)

        assert gem_server.requests
        assert all(timeout == 7 for _, _, timeout in gem_server.requests)

    def test_put_then_get(self, client, gem_server, foo):
        """Test an upload landing on the server."""
        client.put_gem(foo, b"payload")

        assert gem_server.repository.get(foo) == b"payload"
        assert client.get_gem(foo) == b"payload"

    def test_put_stream_is_chunked(self, server_session, gem_server, foo, foo_gem):
        """Test uploading from a file in small chunks."""
        client = GemServerClient(SERVER_URL, chunk_size=16, session=server_session)
        with open(foo_gem, 'rb') as body:
            client.put_gem(foo, body)

        assert gem_server.repository.get(foo) == foo_gem.read_bytes()

    def test_put_conflict(self, client, foo):
        """Test that HTTP 409 becomes DuplicateError."""
        client.put_gem(foo, b"one")
        with pytest.raises(DuplicateError):
            client.put_gem(foo, b"two")

    def test_yank_sends_name_and_version(self, client, gem_server, foo):
        """Test the yank endpoint and its query parameters."""
        client.put_gem(foo, b"x")

        assert client.yank(foo) is True

        method, url, _ = gem_server.requests[-1]
        assert method == 'DELETE'
        assert "api/v1/gems/yank" in url
        assert "gem_name=foo" in url
        assert "version=1.0.0" in url

    def test_missing_answers(self, client, foo):
        """Test that 404 means absent everywhere."""
        assert client.get_gem(foo) is None
        assert client.open_gem(foo) is None
        assert client.exists(client.urls.gem(foo)) is False
        assert client.yank(foo) is False
        assert client.delete_gem(foo) is False

    def test_fetch_specs_accepts_wrapped_list(self, client):
        """Test a server answering {"specs": [...]}."""
        response = MagicMock(status_code=200)
        response.json.return_value = {'specs': [{'name': 'foo', 'version': '1.0.0'}]}

        with patch.object(client, '_request', return_value=response):
            assert client.fetch_specs() == [{'name': 'foo', 'version': '1.0.0'}]


class TestFailures:
    """Tests for transport failures and unexpected statuses."""

    def test_server_error_on_put(self, client, gem_server, foo):
        """Test that HTTP 500 becomes StorageError carrying the identity."""
        gem_server.fail_status = 500

        with pytest.raises(StorageError) as exc_info:
            client.put_gem(foo, b"x")

        assert exc_info.value.identity == foo
        assert "500" in str(exc_info.value)

    @pytest.mark.parametrize("status", [401, 403, 500, 503])
    def test_unexpected_status_on_reads(self, client, gem_server, foo, status):
        """Test that statuses other than success and 404 are failures."""
        gem_server.fail_status = status

        with pytest.raises(StorageError):
            client.get_gem(foo)
        with pytest.raises(StorageError):
            client.fetch_specs()
        with pytest.raises(StorageError):
            client.exists(client.urls.gem(foo))

    def test_connection_error(self, client, gem_server, foo):
        """Test that a transport exception becomes StorageError."""
        gem_server.fail_exception = requests.ConnectionError("connection refused")

        with pytest.raises(StorageError) as exc_info:
            client.get_gem(foo)

        assert isinstance(exc_info.value.__cause__, requests.ConnectionError)

    def test_timeout(self, client, gem_server, foo):
        """Test that a timeout becomes StorageError."""
        gem_server.fail_exception = requests.Timeout("read timed out")

        with pytest.raises(StorageError):
            client.delete_gem(foo)

    def test_invalid_specs_json(self, client):
        """Test that an unparseable specs document is a storage failure."""
        response = MagicMock(status_code=200)
        response.json.side_effect = ValueError("Expecting value")

        with patch.object(client, '_request', return_value=response):
            with pytest.raises(StorageError):
                client.fetch_specs()

    def test_stream_interrupted(self, client, foo):
        """Test that a connection dropping mid-download raises StorageError."""
        def broken_chunks(chunk_size):
            yield b"partial"
            raise requests.exceptions.ChunkedEncodingError("connection reset")

        response = MagicMock(status_code=200, url=client.urls.gem(foo))
        response.iter_content.side_effect = broken_chunks

        with patch.object(client, '_request', return_value=response):
            stream = client.open_gem(foo)

        with pytest.raises(StorageError):
            stream.read()
        stream.close()
        response.close.assert_called_once()


class TestRemoteRepository:
    """Tests specific to the remote backend."""

    def test_failures_propagate(self, remote_repo, gem_server, foo):
        """Test that repository operations surface transport failures."""
        gem_server.fail_exception = requests.ConnectionError("down")

        with pytest.raises(StorageError):
            remote_repo.search_for(foo)
        with pytest.raises(StorageError):
            remote_repo.add(foo, b"x")
        with pytest.raises(StorageError):
            remote_repo.yank(foo)

    def test_malformed_specs_skipped(self, remote_repo, caplog):
        """Test that bad entries in the specs list are dropped with a warning."""
        specs = [
            {'name': 'foo', 'version': '1.0.0', 'digest': 'abc', 'size': 3},
            {'name': 'broken'},
            {'name': '', 'version': '1.0'},
        ]
        with patch.object(remote_repo.client, 'fetch_specs', return_value=specs):
            index = remote_repo.source_index()

        assert index.identities() == [PackageIdentity("foo", "1.0.0")]
        assert "malformed" in caplog.text

    def test_yank_uri_is_server_address(self, remote_repo, foo):
        """Test that yank() answers with the server's gem URL."""
        remote_repo.add(foo, b"x")
        assert remote_repo.yank(foo) == "http://gems.test/gems/foo-1.0.0.gem"

    def test_close(self):
        """Test that closing the repository closes its session."""
        session = MagicMock(spec=requests.Session)
        session.headers = {}
        repo = RemoteRepository(SERVER_URL, session=session)

        repo.close()

        session.close.assert_called_once()
