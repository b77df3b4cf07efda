"""
Configuration commands for gemrepo: config show and config set.
"""

import json
import sys

import click
import yaml

from ..config import get_config_path, load_config, read_config_file, save_config, set_config_value
from ..exit_codes import CONFIG_ERROR
from ..output import emit_error, emit_success


@click.group('config')
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command('show')
@click.option('--pretty', is_flag=True, help='Display as formatted JSON instead of single-line JSONL')
@click.option('--path', is_flag=True, help='Show the config file path being used')
def show_config(pretty, path):
    """Show the current configuration with defaults and overrides applied.

    \b
    Examples:
        gemrepo config show
        gemrepo config show --path
    """
    if path:
        print(json.dumps({"config_path": str(get_config_path())}))
        return

    config = load_config()
    print(json.dumps(config, indent=2 if pretty else None, ensure_ascii=False))


@config_cmd.command('set')
@click.argument('key')
@click.argument('value')
@click.option('--pretty', is_flag=True, help='Human-readable output')
def set_config(key, value, pretty):
    """Store one setting in the config file.

    KEY is "section.key"; VALUE is converted to the setting's type.

    \b
    Examples:
        gemrepo config set repository.uri https://gems.example.com
        gemrepo config set remote.timeout_seconds 10
    """
    config_path = get_config_path()
    try:
        updated = set_config_value(read_config_file(config_path), key, value)
        written = save_config(updated, config_path)
    except (KeyError, ValueError, OSError, yaml.YAMLError) as e:
        message = e.args[0] if isinstance(e, KeyError) else str(e)
        emit_error(message, type="config")
        sys.exit(CONFIG_ERROR)

    section, _, name = key.partition('.')
    emit_success(
        f"Set {key}",
        data={'key': key, 'value': updated[section][name], 'path': str(written)},
        pretty=pretty,
    )
