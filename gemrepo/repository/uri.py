"""
URI resolution for gemrepo.

Maps an identity and an intent (the gem blob, or its specification) to an
address a client can dereference. Resolvers are pure: they never check
whether the package exists or is yanked.
"""

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from urllib.parse import quote

from ..domain import PackageIdentity

SPECIFICATION_SUFFIX = ".gemspec.json"


class UriIntent(Enum):
    """What a resolved address points at."""
    GEM = "gem"
    SPECIFICATION = "specification"


class UriResolver(ABC):
    """Backend-specific address scheme."""

    @property
    @abstractmethod
    def uri(self) -> str:
        """Base address of the repository."""

    @property
    @abstractmethod
    def gems_uri(self) -> str:
        """Address of the directory holding gem blobs."""

    @property
    @abstractmethod
    def specifications_uri(self) -> str:
        """Address of the directory holding specifications."""

    @abstractmethod
    def resolve(self, identity: PackageIdentity, intent: UriIntent) -> str:
        """Address of the gem or specification for identity."""

    def gem(self, identity: PackageIdentity) -> str:
        return self.resolve(identity, UriIntent.GEM)

    def specification(self, identity: PackageIdentity) -> str:
        return self.resolve(identity, UriIntent.SPECIFICATION)


def specification_file_name(identity: PackageIdentity) -> str:
    return f"{identity.full_name}{SPECIFICATION_SUFFIX}"


class FileUriResolver(UriResolver):
    """file:// addresses inside a local repository directory."""

    def __init__(self, root: Path, gems_dir: Path, specifications_dir: Path):
        self.root = Path(root).expanduser().resolve()
        self.gems_dir = Path(gems_dir).expanduser().resolve()
        self.specifications_dir = Path(specifications_dir).expanduser().resolve()

    @property
    def uri(self) -> str:
        return self.root.as_uri() + '/'

    @property
    def gems_uri(self) -> str:
        return self.gems_dir.as_uri() + '/'

    @property
    def specifications_uri(self) -> str:
        return self.specifications_dir.as_uri() + '/'

    def resolve(self, identity: PackageIdentity, intent: UriIntent) -> str:
        if intent is UriIntent.GEM:
            return (self.gems_dir / identity.file_name).as_uri()
        return (self.specifications_dir / specification_file_name(identity)).as_uri()


class HttpUriResolver(UriResolver):
    """
    Absolute http(s) addresses on a gem server.

    Example:
        resolver = HttpUriResolver("https://gems.example.com")
        resolver.gem(PackageIdentity("foo", "1.0.0"))
        # -> "https://gems.example.com/gems/foo-1.0.0.gem"
    """

    GEMS_PATH = "gems/"
    SPECIFICATIONS_PATH = "quick/spec/"

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    @property
    def uri(self) -> str:
        return self.base_url

    @property
    def gems_uri(self) -> str:
        return self.base_url + self.GEMS_PATH

    @property
    def specifications_uri(self) -> str:
        return self.base_url + self.SPECIFICATIONS_PATH

    def resolve(self, identity: PackageIdentity, intent: UriIntent) -> str:
        if intent is UriIntent.GEM:
            return self.gems_uri + quote(identity.file_name)
        return self.specifications_uri + quote(specification_file_name(identity))
