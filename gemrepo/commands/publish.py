"""
Publishing commands for gemrepo: push and add.
"""

import click

from ..cli_utils import repository_command
from ..domain import PackageIdentity
from ..output import emit_success


@click.command('push')
@click.argument('gem_files', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@repository_command
def push_handler(gem_files, pretty, repo):
    """
    Publish one or more .gem files.

    Fails with exit code 72 if a package with the same name and version
    already exists, yanked or not.

    \b
    Examples:
        gemrepo push pkg/foo-1.0.0.gem
        gemrepo push --repo https://gems.example.com pkg/*.gem
    """
    for gem_file in gem_files:
        identity = repo.push(gem_file)
        emit_success(f"Pushed {identity}", data=identity.to_dict(), pretty=pretty)


@click.command('add')
@click.argument('name')
@click.argument('version')
@click.argument('body', type=click.File('rb'), default='-')
@repository_command
def add_handler(name, version, body, pretty, repo):
    """
    Publish raw bytes under an explicit NAME and VERSION.

    Reads the package body from a file, or from stdin when BODY is "-".

    \b
    Examples:
        gemrepo add foo 1.0.0 build/output.gem
        cat foo.gem | gemrepo add foo 1.0.0
    """
    identity = repo.add(PackageIdentity(name, version), body)
    emit_success(f"Added {identity}", data=identity.to_dict(), pretty=pretty)
