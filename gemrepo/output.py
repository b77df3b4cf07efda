"""
Output module for gemrepo.

Every command writes one of two shapes:
- JSONL (default): one JSON object per identity, record or address
- Pretty: a Rich table of the same objects, with sizes and digests
  shortened for reading

Errors always go to stderr as a single JSON object so that stdout stays
machine-readable even when a command fails halfway.

Usage:
    from gemrepo.output import emit, emit_error

    emit(repo.search_for("foo"), pretty=pretty)
    emit_error("gem foo-1.0.0 not found", type="PackageNotFoundError")
"""

import json
import sys
from typing import Iterable, Any, Dict, Optional, List

from rich.console import Console
from rich.table import Table

# Package fields in display order; anything else follows alphabetically
COLUMN_ORDER = ['name', 'version', 'full_name', 'state', 'size', 'digest', 'uri']
DIGEST_WIDTH = 12


def emit(
    items: Iterable[Any],
    pretty: bool = False,
    columns: Optional[List[str]] = None,
) -> None:
    """
    Write items to stdout.

    Args:
        items: Objects with to_dict(), or dicts
        pretty: Render a table instead of JSONL
        columns: Table columns (defaults to the fields present, in COLUMN_ORDER)
    """
    rows = (_to_dict(item) for item in items)
    if pretty:
        _print_table(list(rows), columns)
    else:
        for row in rows:
            _print_json(row)


def _to_dict(item: Any) -> Dict[str, Any]:
    if hasattr(item, 'to_dict'):
        return item.to_dict()
    if isinstance(item, dict):
        return item
    return {'value': str(item)}


def _print_json(obj: Dict[str, Any], stream=None) -> None:
    print(json.dumps(obj, ensure_ascii=False), file=stream or sys.stdout, flush=True)


def _print_table(rows: List[Dict[str, Any]], columns: Optional[List[str]] = None) -> None:
    if not rows:
        print("No packages found")
        return

    columns = columns or _columns_for(rows)
    table = Table(show_header=True, header_style="bold")
    for column in columns:
        table.add_column(column, justify='right' if column == 'size' else 'left')

    for row in rows:
        style = 'dim' if row.get('state') == 'yanked' else None
        table.add_row(*(_cell(column, row.get(column)) for column in columns), style=style)

    Console().print(table)


def _columns_for(rows: List[Dict[str, Any]]) -> List[str]:
    present = set()
    for row in rows:
        present.update(row)
    # full_name only repeats name and version
    if {'name', 'version'} <= present:
        present.discard('full_name')
    ordered = [column for column in COLUMN_ORDER if column in present]
    return ordered + sorted(present - set(ordered))


def _cell(column: str, value: Any) -> str:
    if value is None:
        return ''
    if column == 'size' and isinstance(value, int):
        return format_size(value)
    if column == 'digest' and value:
        return str(value)[:DIGEST_WIDTH]
    return str(value)


def format_size(size: int) -> str:
    """Human-readable byte count: 512 B, 1.5 KiB, 3.0 MiB."""
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in ('KiB', 'MiB', 'GiB'):
        value /= 1024
        if value < 1024 or unit == 'GiB':
            break
    return f"{value:.1f} {unit}"


def emit_error(
    error: str,
    type: str = "error",
    context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Emit error to stderr as JSON.

    Args:
        error: Error message
        type: Error type (e.g., "PackageNotFoundError", "usage")
        context: Additional context dict
    """
    obj = {'error': error, 'type': type}
    if context:
        obj['context'] = context
    _print_json(obj, sys.stderr)


def emit_success(message: str, data: Optional[Dict] = None, pretty: bool = False) -> None:
    """
    Report a completed mutation (push, add, yank, delete, config set).

    JSONL carries the message plus data; --pretty prints one line.
    """
    if pretty:
        print(message)
        return
    obj = {'success': True, 'message': message}
    if data:
        obj['data'] = data
    _print_json(obj)
