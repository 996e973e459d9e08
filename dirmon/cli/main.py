"""Click command group for dirmon.

Commands:
    run  -- start the monitor service (same as ``python -m dirmon``).
    diff -- compare two snapshot JSON files offline.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click

from dirmon.models.changes import Snapshot
from dirmon.monitor.diff import diff_snapshots


@click.group()
@click.version_option(package_name="dirmon")
def cli() -> None:
    """Snapshot-diff change monitor for directory sources."""


@cli.command()
def run() -> None:
    """Poll the configured directory and dispatch change events."""
    from dirmon.app import main

    asyncio.run(main())


@cli.command()
@click.argument("before", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("after", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--ignore", "-i", multiple=True, help="Field name to exclude (repeatable).")
def diff(before: Path, after: Path, ignore: tuple[str, ...]) -> None:
    """Print the change events between two snapshot files, one JSON object per line.

    Each file holds ``{"entity key": {"field": "value", ...}, ...}``.
    """
    events = diff_snapshots(_load_snapshot(before), _load_snapshot(after), frozenset(ignore))
    for event in sorted(events, key=lambda e: (e.entity_key, e.field_name)):
        payload = event.to_dict()
        del payload["event_id"], payload["detected_at"]
        click.echo(json.dumps(payload, sort_keys=True))


def _load_snapshot(path: Path) -> Snapshot:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"{path}: invalid JSON ({exc})") from exc
    if not isinstance(data, dict) or not all(isinstance(v, dict) for v in data.values()):
        raise click.BadParameter(f"{path}: expected an object of objects")
    return {str(key): {str(k): str(v) for k, v in fields.items()} for key, fields in data.items()}
