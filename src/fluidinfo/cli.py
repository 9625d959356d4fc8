"""Command line interface for the Fluidinfo client."""

import json
import logging
import sys
from typing import Any, List, Optional, Tuple

import click
from rich.console import Console

from .api_clients import FluidinfoAPIError, FluidinfoClient, Result, connect
from .config import ClientConfig, load_config

console = Console()
error_console = Console(stderr=True)


def _parse_value(raw: str) -> Any:
    """Read a tag value as JSON, falling back to the plain string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _parse_assignments(assignments: Tuple[str, ...]) -> dict:
    values = {}
    for assignment in assignments:
        tag, sep, raw = assignment.partition("=")
        if not sep or not tag:
            raise click.BadParameter(
                f"expected TAG=VALUE, got '{assignment}'", param_hint="--value"
            )
        values[tag] = _parse_value(raw)
    return values


def _build_client(ctx: click.Context) -> FluidinfoClient:
    options = ctx.obj
    if options["config_path"] or options["use_env"]:
        config = load_config(options["config_path"], use_env=options["use_env"])
    else:
        config = ClientConfig()
    if options["instance"]:
        config = ClientConfig(**{**config.model_dump(), "instance": options["instance"]})
    logging.basicConfig(level=config.log_level.upper())
    return connect(config)


def _run(ctx: click.Context, operation: str, **kwargs: Any) -> Result:
    """Run one client operation synchronously and exit 1 if it fails."""
    failures: List[Result] = []
    try:
        with _build_client(ctx) as client:
            result = getattr(client, operation)(
                on_error=failures.append, asynchronous=False, **kwargs
            )
    except (ValueError, FluidinfoAPIError, FileNotFoundError) as e:
        error_console.print(f"Error: {e}", style="red", markup=False)
        sys.exit(1)

    if failures:
        failed = failures[0]
        error_console.print(
            f"Request failed: {failed.status} {failed.status_text}",
            style="red",
            markup=False,
        )
        if failed.raw_data:
            error_console.print(failed.raw_data, style="red dim", markup=False)
        sys.exit(1)
    return result


def _print_data(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Path to a JSON config file (default: ~/.fluidinfo/config.json with --env off)",
)
@click.option(
    "--env",
    "use_env",
    is_flag=True,
    help="Read FLUIDINFO_* environment variables",
)
@click.option("--instance", help="'main', 'sandbox' or a bespoke base URL")
@click.pass_context
def cli(ctx, config_path: Optional[str], use_env: bool, instance: Optional[str]):
    """Query and tag objects in Fluidinfo.

    Without --config or --env the client talks to the main instance
    anonymously.
    """
    ctx.ensure_object(dict)
    ctx.obj.update(config_path=config_path, use_env=use_env, instance=instance)


@cli.command("query")
@click.argument("where")
@click.option("--select", "-s", multiple=True, help="Tag path to return (repeatable)")
@click.pass_context
def query_command(ctx, where: str, select: Tuple[str, ...]):
    """Show tag values of every object matching WHERE."""
    result = _run(ctx, "query", select=list(select) or None, where=where)
    _print_data(result.data)


@cli.command("get-object")
@click.option("--about", help="About value of the object")
@click.option("--id", "object_id", help="Id of the object")
@click.option("--select", "-s", multiple=True, help="Tag path to return (repeatable)")
@click.pass_context
def get_object_command(
    ctx, about: Optional[str], object_id: Optional[str], select: Tuple[str, ...]
):
    """Show the tag values of a single object."""
    result = _run(
        ctx,
        "get_object",
        select=list(select) or None,
        about=about,
        id=object_id,
    )
    _print_data(result.data)


@cli.command("tag")
@click.option("--about", help="About value of the object")
@click.option("--id", "object_id", help="Id of the object")
@click.option(
    "--value",
    "-v",
    "assignments",
    multiple=True,
    required=True,
    help="TAG=VALUE pair, VALUE parsed as JSON when possible (repeatable)",
)
@click.pass_context
def tag_command(
    ctx, about: Optional[str], object_id: Optional[str], assignments: Tuple[str, ...]
):
    """Set tag values on one object."""
    values = _parse_assignments(assignments)
    result = _run(ctx, "tag", values=values, about=about, id=object_id)
    console.print(f"Tagged: {result.status} {result.status_text}", style="green")


@cli.command("delete")
@click.argument("where")
@click.option(
    "--tag", "-t", "tags", multiple=True, required=True, help="Tag path (repeatable)"
)
@click.pass_context
def delete_command(ctx, where: str, tags: Tuple[str, ...]):
    """Remove tag values from every object matching WHERE."""
    result = _run(ctx, "delete", tags=list(tags), where=where)
    console.print(f"Deleted: {result.status} {result.status_text}", style="green")


@cli.command("create-object")
@click.option("--about", help="About value for the new object")
@click.pass_context
def create_object_command(ctx, about: Optional[str]):
    """Create a new object (requires credentials)."""
    result = _run(ctx, "create_object", about=about)
    _print_data(result.data)


@cli.command("recent")
@click.option("--about", help="About value of an object")
@click.option("--id", "object_id", help="Id of an object")
@click.option("--where", help="Query selecting objects")
@click.option("--user", help="Username")
@click.option("--where-users", help="Query selecting users")
@click.pass_context
def recent_command(
    ctx,
    about: Optional[str],
    object_id: Optional[str],
    where: Optional[str],
    user: Optional[str],
    where_users: Optional[str],
):
    """Show recent tag activity on objects or by users."""
    result = _run(
        ctx,
        "recent",
        about=about,
        id=object_id,
        where=where,
        user=user,
        where_users=where_users,
    )
    _print_data(result.data)


def main():
    """Main entry point for the fluidinfo command."""
    cli(obj={})


if __name__ == "__main__":
    main()
