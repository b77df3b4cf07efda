"""
High-level Python API for gemrepo.

Opens the right backend for a location:

    import gemrepo

    # Local directory (created if missing)
    repo = gemrepo.open_repository("~/gems")

    # Remote gem server
    repo = gemrepo.open_repository("https://gems.example.com")

    # Whatever ~/.gemrepo/config.json points at
    repo = gemrepo.open_repository()

    repo.push("pkg/foo-1.0.0.gem")
    repo.search_for("foo")
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union
from urllib.parse import unquote, urlparse
import logging

from .config import load_config
from .repository import LocalRepository, RemoteRepository, RepositoryApi

logger = logging.getLogger(__name__)


def open_repository(
    uri: Optional[Union[str, Path]] = None,
    config: Optional[Dict[str, Any]] = None,
    **kwargs
) -> RepositoryApi:
    """
    Open a repository by location.

    Args:
        uri: Directory path, file:// URI or http(s):// URL. Defaults to
            config['repository']['uri'].
        config: Configuration dict (loads from file if None)
        **kwargs: Passed to the backend constructor (e.g. session=...)

    Returns:
        LocalRepository or RemoteRepository
    """
    if config is None:
        config = load_config()

    if uri is None:
        uri = config.get('repository', {}).get('uri')
    if not uri:
        raise ValueError("No repository location given and none configured")

    remote = config.get('remote', {})
    chunk_size = int(remote.get('chunk_size', 65536))
    location = str(uri)
    parsed = urlparse(location)

    if parsed.scheme in ('http', 'https'):
        logger.debug(f"Opening remote repository {location}")
        return RemoteRepository(
            location,
            timeout=float(remote.get('timeout_seconds', 30)),
            chunk_size=chunk_size,
            **kwargs
        )

    if parsed.scheme == 'file':
        location = unquote(parsed.path)
    elif parsed.scheme and len(parsed.scheme) > 1:
        # single-letter schemes are Windows drive letters
        raise ValueError(f"Unsupported repository scheme: {parsed.scheme}")

    logger.debug(f"Opening local repository {location}")
    return LocalRepository(location, chunk_size=chunk_size, **kwargs)
