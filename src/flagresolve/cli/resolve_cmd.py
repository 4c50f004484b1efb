"""``flagresolve resolve [config]`` — Resolve a feature configuration.

Loads explicit flag decisions from an optional YAML/JSON file, layers
command-line overrides on top, runs the resolver against the rule table, and
prints the resolved flags, capability availability and compatibility notices.

Exit Codes:
    0 — Resolution converged and the validator found nothing.
    1 — Resolution failed (conflict, non-termination, or validator finding).
    2 — The configuration input could not be loaded.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from flagresolve.config import UserConfig, apply_overrides, load_config
from flagresolve.core.session import resolve_configuration
from flagresolve.exceptions import ConfigError, ResolutionError
from flagresolve.tables import default_table


def load_user_input(
    config_path: str | None,
    enable: tuple[str, ...],
    disable: tuple[str, ...],
    require: tuple[str, ...],
) -> UserConfig:
    """Combine an optional config file with command-line overrides."""
    config = load_config(config_path) if config_path else UserConfig()
    return apply_overrides(config, enable=enable, disable=disable, require=require)


def input_options(func):
    """Shared ``-e/-d/-r`` options for commands that take user input."""
    func = click.option(
        "--require", "-r", multiple=True, metavar="CAPABILITY",
        help="Capability that must resolve to available (repeatable).",
    )(func)
    func = click.option(
        "--disable", "-d", multiple=True, metavar="FLAG",
        help="Explicitly disable a flag (repeatable).",
    )(func)
    func = click.option(
        "--enable", "-e", multiple=True, metavar="FLAG",
        help="Enable a flag (repeatable).",
    )(func)
    return click.argument(
        "config_path", required=False, type=click.Path(exists=True, dir_okay=False),
    )(func)


@click.command("resolve")
@input_options
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write the resolved configuration as JSON to this path.",
)
@click.option(
    "--show-internal", is_flag=True, default=False,
    help="Include internal-alias flags in the output.",
)
def resolve_command(
    config_path: str | None,
    enable: tuple[str, ...],
    disable: tuple[str, ...],
    require: tuple[str, ...],
    output_format: str,
    output: str | None,
    show_internal: bool,
) -> None:
    """Resolve a feature configuration to a consistent flag set.

    CONFIG_PATH is an optional YAML or JSON file with ``flags``, ``enable``,
    ``disable`` and ``capabilities`` keys. Command-line options override it.

    Exit code 0 on success, 1 on resolution failure, 2 on bad input.
    """
    from flagresolve.cli.output import (
        error_to_dict,
        print_resolution_error,
        print_resolution_report,
    )

    try:
        user = load_user_input(config_path, enable, disable, require)
        report = resolve_configuration(
            user.to_store(), table=default_table(), requested=user.requested,
        )
    except ConfigError as exc:
        if output_format == "json":
            click.echo(json.dumps({"error": {"type": "ConfigError", "message": str(exc)}}))
        else:
            click.echo(f"Error: {exc}")
        sys.exit(2)
    except ResolutionError as exc:
        if output_format == "json":
            click.echo(json.dumps({"error": error_to_dict(exc)}, indent=2))
        else:
            print_resolution_error(exc)
        sys.exit(1)

    if output:
        Path(output).write_text(report.to_json(include_internal=show_internal), encoding="utf-8")

    if output_format == "json":
        click.echo(report.to_json(include_internal=show_internal), nl=False)
    else:
        print_resolution_report(report, show_internal=show_internal)
        if output:
            click.echo(f"\nResolved configuration written to: {output}")
    sys.exit(0)
