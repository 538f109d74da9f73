"""flatkv CLI — inspect and edit flat-file databases.

Commands:
    flatkv init                  write flatkv.toml (in --root or the cwd)
    flatkv get NAME KEY          print a value as JSON
    flatkv set NAME KEY VALUE    store VALUE (parsed as JSON, else a string)
    flatkv delete NAME KEY       remove a key
    flatkv keys NAME             list keys in file order
    flatkv dump NAME             print all records as one JSON object
    flatkv flush NAME            remove every record
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click

from flatkv.config import StoreConfig, init_config, load_config
from flatkv.database import Database
from flatkv.errors import FlatKVError
from flatkv.store import NOT_FOUND

logger = logging.getLogger("flatkv.cli")

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _open_db(ctx: click.Context, name: str) -> Database:
    cfg: StoreConfig = ctx.obj["config"]
    try:
        return Database(name, cfg)
    except FlatKVError as exc:
        raise click.ClickException(str(exc)) from exc


def _parse_value(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _jsonable(value: Any) -> Any:
    """Literal values (tuples, sets, bytes, non-str dict keys) in a JSON-safe shape."""
    if isinstance(value, dict):
        return {k if isinstance(k, str) else repr(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _to_json(value: Any, indent: int | None = None) -> str:
    # anything still without a JSON form (sets, bytes, complex) falls back to repr
    return json.dumps(_jsonable(value), ensure_ascii=False, indent=indent, default=repr)


def _run(action: Any, *args: Any) -> Any:
    try:
        return action(*args)
    except (FlatKVError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="flatkv")
@click.option("--root", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory holding flatkv.toml (default: search upward from cwd)")
@click.option("--dir", "directory", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Override the database directory")
@click.option("--json", "use_json", is_flag=True, help="Use the JSON serializer")
@click.option("-v", "--verbose", count=True, help="-v for INFO, -vv for DEBUG logging")
@click.pass_context
def cli(ctx: click.Context, root: Path | None, directory: Path | None, use_json: bool, verbose: int) -> None:
    """flatkv — flat-file key-value databases."""
    level = logging.WARNING - 10 * min(verbose, 2)
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(message)s", stream=sys.stderr)

    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    if ctx.invoked_subcommand == "init":
        return
    try:
        cfg = load_config(root)
        if directory is not None:
            cfg = cfg.replace(directory=directory)
        if use_json:
            cfg = cfg.replace(serializer="json")
    except FlatKVError as exc:
        raise click.ClickException(str(exc)) from exc
    logger.info("database directory: %s", cfg.directory)
    ctx.obj["config"] = cfg


# ---------------------------------------------------------------------------
# flatkv init
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--data-dir", default="data", show_default=True, help="Database directory, relative to root")
@click.pass_context
def init(ctx: click.Context, data_dir: str) -> None:
    """Write a default flatkv.toml (in --root, or the current directory)."""
    root_path = (ctx.obj["root"] or Path.cwd()).resolve()
    try:
        config_path = init_config(root_path, directory=data_dir)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("flatkv.toml already exists — skipping init")


# ---------------------------------------------------------------------------
# Record commands
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("name")
@click.argument("key")
@click.pass_context
def get(ctx: click.Context, name: str, key: str) -> None:
    """Print the value stored under KEY."""
    db = _open_db(ctx, name)
    value = _run(db.get, key)
    if value is NOT_FOUND:
        click.echo(f"Key not found: {key}", err=True)
        ctx.exit(1)
    click.echo(_to_json(value))


@cli.command(name="set")
@click.argument("name")
@click.argument("key")
@click.argument("value")
@click.option("--string", "as_string", is_flag=True, help="Store VALUE as a string, do not parse JSON")
@click.pass_context
def set_(ctx: click.Context, name: str, key: str, value: str, as_string: bool) -> None:
    """Store VALUE under KEY."""
    db = _open_db(ctx, name)
    _run(db.set, key, value if as_string else _parse_value(value))


@cli.command()
@click.argument("name")
@click.argument("key")
@click.pass_context
def delete(ctx: click.Context, name: str, key: str) -> None:
    """Remove KEY (no error if it is absent)."""
    db = _open_db(ctx, name)
    _run(db.delete, key)


@cli.command()
@click.argument("name")
@click.pass_context
def keys(ctx: click.Context, name: str) -> None:
    """List keys in file order."""
    db = _open_db(ctx, name)
    for key in _run(db.get_keys):
        click.echo(key)


@cli.command()
@click.argument("name")
@click.option("--indent", type=int, default=None, help="Pretty-print with this indent")
@click.pass_context
def dump(ctx: click.Context, name: str, indent: int | None) -> None:
    """Print every record as one JSON object."""
    db = _open_db(ctx, name)
    data = _run(db.get_all)
    click.echo(_to_json(data, indent))


@cli.command()
@click.argument("name")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def flush(ctx: click.Context, name: str, yes: bool) -> None:
    """Remove every record from NAME."""
    db = _open_db(ctx, name)
    if not yes:
        click.confirm(f"Remove all records from {db.path}?", abort=True)
    _run(db.flush)
    click.echo(f"Flushed {db.path}")


if __name__ == "__main__":
    cli()
