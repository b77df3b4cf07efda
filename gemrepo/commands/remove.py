"""
Removal commands for gemrepo: yank and delete.
"""

import click

from ..cli_utils import parse_identity, repository_command, with_identity_arguments
from ..exit_codes import PackageNotFoundError
from ..output import emit_success


@click.command('yank')
@with_identity_arguments
@repository_command
def yank_handler(gem, version, pretty, repo):
    """
    Hide a gem from searches and the index, keeping it downloadable.

    \b
    Examples:
        gemrepo yank foo 1.0.0
    """
    identity = parse_identity(gem, version)
    uri = repo.yank(identity)
    if uri is None:
        raise PackageNotFoundError(f"gem {identity} is not available to yank")

    emit_success(f"Yanked {identity}", data={'uri': uri}, pretty=pretty)


@click.command('delete')
@with_identity_arguments
@click.option('--missing-ok', is_flag=True, help='Exit 0 even if the gem does not exist')
@repository_command
def delete_handler(gem, version, missing_ok, pretty, repo):
    """
    Remove a gem and its specification entirely.

    \b
    Examples:
        gemrepo delete foo 1.0.0
        gemrepo delete foo-1.0.0 --missing-ok
    """
    identity = parse_identity(gem, version)
    if not repo.delete(identity) and not missing_ok:
        raise PackageNotFoundError(f"gem {identity} not found")

    emit_success(f"Deleted {identity}", data=identity.to_dict(), pretty=pretty)
