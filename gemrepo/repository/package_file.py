"""
Package identity extraction for gemrepo.

The repository treats package files as opaque blobs. The only thing it
needs from a file is its name and version, taken from the gem's embedded
metadata when present, or from its "name-version.gem" file name.

A .gem file is a tar archive holding metadata.gz, a gzipped YAML
specification written by RubyGems with Ruby-specific tags such as
!ruby/object:Gem::Specification. Those tags are read as plain mappings.
"""

import gzip
import io
import logging
import tarfile
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ..domain import PackageIdentity
from .errors import PackageFormatError

logger = logging.getLogger(__name__)

METADATA_MEMBER = "metadata.gz"


class _GemspecLoader(yaml.SafeLoader):
    """SafeLoader that reads !ruby/... tagged nodes as plain data."""


def _construct_ruby_node(loader: yaml.SafeLoader, tag_suffix: str, node: yaml.Node) -> Any:
    if isinstance(node, yaml.MappingNode):
        return loader.construct_mapping(node, deep=True)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_scalar(node)


_GemspecLoader.add_multi_constructor('!ruby/', _construct_ruby_node)


def parse_gemspec_yaml(text: Union[str, bytes]) -> PackageIdentity:
    """
    Read name and version from a RubyGems YAML specification.

    Raises:
        PackageFormatError: If the document has no usable name or version
    """
    try:
        spec = yaml.load(text, Loader=_GemspecLoader)
    except yaml.YAMLError as e:
        raise PackageFormatError(f"Invalid gem metadata: {e}") from e

    if not isinstance(spec, dict):
        raise PackageFormatError("Gem metadata is not a mapping")

    name = spec.get('name')
    version = spec.get('version')
    # Gem::Version serializes as a mapping with a "version" key
    if isinstance(version, dict):
        version = version.get('version')

    if not name or version is None:
        raise PackageFormatError("Gem metadata is missing name or version")

    try:
        return PackageIdentity(name=str(name), version=str(version))
    except ValueError as e:
        raise PackageFormatError(str(e)) from e


def _identity_from_archive(archive: tarfile.TarFile) -> Optional[PackageIdentity]:
    try:
        member = archive.getmember(METADATA_MEMBER)
    except KeyError:
        return None

    f = archive.extractfile(member)
    if f is None:
        return None
    with f:
        try:
            text = gzip.decompress(f.read())
        except (OSError, EOFError) as e:
            raise PackageFormatError(f"Corrupt {METADATA_MEMBER}: {e}") from e
    return parse_gemspec_yaml(text)


def _identity_from_filename(filename: Optional[Union[str, Path]]) -> PackageIdentity:
    if filename is None:
        raise PackageFormatError("Package has no metadata and no file name to infer it from")
    try:
        return PackageIdentity.from_filename(filename)
    except ValueError as e:
        raise PackageFormatError(f"Cannot determine package identity: {e}") from e


def extract_identity(data: bytes, filename: Optional[Union[str, Path]] = None) -> PackageIdentity:
    """
    Determine the identity of a package from its bytes.

    Args:
        data: Raw package file contents
        filename: Original file name, used when there is no embedded metadata

    Raises:
        PackageFormatError: If neither source yields an identity
    """
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode='r:') as archive:
            identity = _identity_from_archive(archive)
            if identity is not None:
                return identity
    except tarfile.TarError:
        logger.debug(f"{filename or 'package'} is not a tar archive")

    return _identity_from_filename(filename)


def identity_from_path(path: Union[str, Path]) -> PackageIdentity:
    """
    Determine the identity of a package file on disk.

    Reads only the metadata member of the archive, not the whole file.

    Raises:
        PackageFormatError: If the identity cannot be determined
        OSError: If the file cannot be read
    """
    path = Path(path)
    if tarfile.is_tarfile(path):
        try:
            with tarfile.open(path, mode='r:') as archive:
                identity = _identity_from_archive(archive)
                if identity is not None:
                    return identity
        except tarfile.TarError:
            logger.debug(f"{path.name} could not be read as a tar archive")

    return _identity_from_filename(path.name)
