"""
Retrieval commands for gemrepo: get and uri.
"""

import shutil

import click

from ..cli_utils import parse_identity, repository_command, with_identity_arguments
from ..exit_codes import PackageNotFoundError
from ..output import emit


@click.command('get')
@with_identity_arguments
@click.option('-o', '--output', 'output_path', type=click.Path(dir_okay=False),
              help='Write the gem to this file (default: stdout)')
@repository_command
def get_handler(gem, version, output_path, pretty, repo):
    """
    Download a gem, yanked or not.

    \b
    Examples:
        gemrepo get foo 1.0.0 -o foo-1.0.0.gem
        gemrepo get foo-1.0.0 > foo.gem
    """
    identity = parse_identity(gem, version)
    stream = repo.open(identity)
    if stream is None:
        raise PackageNotFoundError(f"gem {identity} not found")

    with stream:
        if output_path:
            with open(output_path, 'wb') as out:
                shutil.copyfileobj(stream, out)
        else:
            out = click.get_binary_stream('stdout')
            shutil.copyfileobj(stream, out)
            out.flush()


@click.command('uri')
@with_identity_arguments
@click.option('--specification', 'spec', is_flag=True,
              help='Resolve the specification instead of the gem')
@repository_command
def uri_handler(gem, version, spec, pretty, repo):
    """
    Print the address of a gem or of its specification.

    Gems keep their address after a yank; specifications do not.

    \b
    Examples:
        gemrepo uri foo 1.0.0
        gemrepo uri foo 1.0.0 --specification
    """
    identity = parse_identity(gem, version)
    uri = repo.uri_for_specification(identity) if spec else repo.uri_for_gem(identity)
    if uri is None:
        kind = "specification" if spec else "gem"
        raise PackageNotFoundError(f"No {kind} address for {identity}")

    emit([{'name': identity.name, 'version': identity.version, 'uri': uri}], pretty=pretty)
