"""
PackageIdentity domain object for gemrepo.

A PackageIdentity names exactly one package in a repository. It is a
plain value: two identities built independently from the same name and
version are equal and hash the same, so callers never need a handle
from the repository to look something up.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple, Union

GEM_SUFFIX = ".gem"

# name-version, where version starts with a digit and has no dash
_FULL_NAME_PATTERN = re.compile(r'^(?P<name>.+?)-(?P<version>\d[^-]*)$')


def version_key(version: str) -> Tuple:
    """
    Sort key for gem version strings.

    Numeric segments compare as integers; alphabetic segments (pre-release
    markers such as "rc1" or "beta") sort before numeric ones, so
    "1.0.rc1" orders before "1.0.0".
    """
    key = []
    for segment in re.split(r'[.\-]', version):
        if segment.isdigit():
            key.append((1, int(segment), ''))
        else:
            key.append((0, 0, segment))
    return tuple(key)


@dataclass(frozen=True)
class PackageIdentity:
    """
    Name and version of a package.

    Examples:
        PackageIdentity("foo", "1.0.0").full_name  -> "foo-1.0.0"
        PackageIdentity.parse("foo-bar-2.1")       -> PackageIdentity("foo-bar", "2.1")
        PackageIdentity.from_filename("foo-1.0.0.gem")
    """

    name: str
    version: str

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError(f"Invalid package name: {self.name!r}")
        if not isinstance(self.version, str) or not self.version.strip():
            raise ValueError(f"Invalid package version: {self.version!r}")
        if '/' in self.name or '/' in self.version:
            raise ValueError(f"Package identity may not contain '/': {self.name}-{self.version}")
        if self.name != self.name.strip() or self.version != self.version.strip():
            raise ValueError(f"Package identity may not be padded: {self.name!r} {self.version!r}")
        # full_name is the storage key, so it must parse back to this identity
        match = _FULL_NAME_PATTERN.match(self.full_name)
        if match is None or match.group('name') != self.name:
            raise ValueError(
                f"Invalid package version {self.version!r}: it must start with a digit "
                f"and contain no '-'"
            )

    @classmethod
    def parse(cls, full_name: str) -> 'PackageIdentity':
        """
        Parse "name-version" into an identity.

        The version is the last dash-separated component that starts with
        a digit, so dashed names like "net-http-persistent-4.0.2" work.

        Raises:
            ValueError: If the string has no version component
        """
        match = _FULL_NAME_PATTERN.match(full_name.strip())
        if not match:
            raise ValueError(f"Cannot parse package identity from {full_name!r}")
        return cls(name=match.group('name'), version=match.group('version'))

    @classmethod
    def from_filename(cls, filename: Union[str, Path]) -> 'PackageIdentity':
        """Parse an identity from a "name-version.gem" file name."""
        base = Path(filename).name
        if base.endswith(GEM_SUFFIX):
            base = base[:-len(GEM_SUFFIX)]
        return cls.parse(base)

    @property
    def full_name(self) -> str:
        return f"{self.name}-{self.version}"

    @property
    def file_name(self) -> str:
        return f"{self.full_name}{GEM_SUFFIX}"

    @property
    def sort_key(self) -> Tuple:
        return (self.name, version_key(self.version))

    def to_dict(self) -> Dict[str, str]:
        return {'name': self.name, 'version': self.version}

    def __str__(self) -> str:
        return self.full_name
