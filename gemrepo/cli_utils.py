"""
Common CLI utilities and decorators for consistent command behavior.
"""

import sys
import click
from functools import wraps

from .api import open_repository
from .config import load_config, configure_logging
from .domain import PackageIdentity
from .exit_codes import (
    SUCCESS, INTERRUPTED, USAGE_ERROR,
    get_exit_code_for_exception, CommandError
)
from .output import emit_error


def repository_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Automatic --repo/--pretty/--debug options
    - Config loading and logging setup
    - Opens the repository and passes it as `repo`
    - Consistent error handling with exit codes
    """
    @click.option('--repo', 'repo_uri', envvar='GEMREPO_REPOSITORY_URI',
                  help='Repository directory or URL (default: from config)')
    @click.option('--pretty', is_flag=True, help='Human-readable output')
    @click.option('--debug', is_flag=True, help='Enable debug logging')
    @wraps(func)
    def wrapper(*args, repo_uri=None, debug=False, **kwargs):
        try:
            config = load_config()
            configure_logging(config, debug=debug)
            repo = open_repository(repo_uri, config=config)
            func(*args, repo=repo, **kwargs)
        except KeyboardInterrupt:
            emit_error("Interrupted by user", type="interrupted")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            emit_error(str(e), type=type(e).__name__)
            sys.exit(e.exit_code)
        except Exception as e:
            emit_error(str(e), type=type(e).__name__)
            sys.exit(get_exit_code_for_exception(e))
        sys.exit(SUCCESS)

    return wrapper


def parse_identity(gem: str, version: str = None) -> PackageIdentity:
    """
    Build an identity from CLI arguments.

    Accepts either "NAME VERSION" or a single "NAME-VERSION".
    """
    try:
        if version:
            return PackageIdentity(gem, version)
        return PackageIdentity.parse(gem)
    except ValueError as e:
        emit_error(str(e), type="usage")
        sys.exit(USAGE_ERROR)


identity_arguments = [
    click.argument('gem'),
    click.argument('version', required=False),
]


def with_identity_arguments(func):
    """Add the GEM [VERSION] arguments to a command."""
    for argument in reversed(identity_arguments):
        func = argument(func)
    return func
