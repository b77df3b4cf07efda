"""
Discovery commands for gemrepo: search and index.
"""

import click

from ..cli_utils import repository_command
from ..domain import PackageIdentity
from ..output import emit


@click.command('search')
@click.argument('name')
@click.argument('version', required=False)
@repository_command
def search_handler(name, version, pretty, repo):
    """
    List available versions of a gem. Yanked versions are not shown.

    \b
    Examples:
        gemrepo search foo
        gemrepo search foo 1.0.0 --pretty
    """
    query = PackageIdentity(name, version) if version else name
    emit(repo.search_for(query), pretty=pretty)


@click.command('index')
@click.option('--latest', is_flag=True, help='Only the newest version of each gem')
@repository_command
def index_handler(latest, pretty, repo):
    """
    Print the source index: every available specification.

    \b
    Examples:
        gemrepo index
        gemrepo index --latest --pretty
    """
    source_index = repo.source_index()
    specs = source_index.latest_specs() if latest else list(source_index)
    emit((spec.to_specification() for spec in specs), pretty=pretty)
