#!/usr/bin/env python3

import click

from gemrepo.commands.publish import push_handler, add_handler
from gemrepo.commands.fetch import get_handler, uri_handler
from gemrepo.commands.remove import yank_handler, delete_handler
from gemrepo.commands.search import search_handler, index_handler
from gemrepo.commands.config import config_cmd


@click.group()
@click.version_option(package_name='gemrepo')
def cli():
    """gemrepo - Publish, fetch and index gem packages.

    Works against a local repository directory or a remote gem server.
    Use --repo (or GEMREPO_REPOSITORY_URI) to pick one.
    """
    pass


# Publishing
cli.add_command(push_handler)
cli.add_command(add_handler)

# Retrieval
cli.add_command(get_handler)
cli.add_command(uri_handler)

# Discovery
cli.add_command(search_handler)
cli.add_command(index_handler)

# Removal
cli.add_command(yank_handler)
cli.add_command(delete_handler)

# Configuration
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
