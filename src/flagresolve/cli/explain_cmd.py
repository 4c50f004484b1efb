"""``flagresolve explain FLAG [config]`` — Show why a flag is enabled.

Resolves the given input and prints the derivation tree for FLAG: the rules
that enabled it and, recursively, the enabled flags those rules relied on.
Validator findings do not stop the explanation.

Exit Codes:
    0 — Explanation printed.
    1 — Resolution failed before a fixed point was reached.
    2 — The configuration input could not be loaded.
"""

from __future__ import annotations

import json
import sys

import click

from flagresolve.cli.resolve_cmd import input_options, load_user_input
from flagresolve.core.resolver import explain_flag
from flagresolve.core.session import resolve_configuration
from flagresolve.exceptions import ConfigError, ResolutionError
from flagresolve.tables import default_table


@click.command("explain")
@click.argument("flag")
@input_options
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
def explain_command(
    flag: str,
    config_path: str | None,
    enable: tuple[str, ...],
    disable: tuple[str, ...],
    require: tuple[str, ...],
    output_format: str,
) -> None:
    """Explain how FLAG ended up in its resolved state."""
    from flagresolve.cli.output import print_explanation, print_resolution_error

    table = default_table()
    try:
        user = load_user_input(config_path, enable, disable, require)
        report = resolve_configuration(
            user.to_store(), table=table, requested=user.requested, strict=False,
        )
    except ConfigError as exc:
        click.echo(f"Error: {exc}")
        sys.exit(2)
    except ResolutionError as exc:
        print_resolution_error(exc)
        sys.exit(1)

    explanation = explain_flag(report.resolution, table.rules, flag)
    if output_format == "json":
        click.echo(json.dumps(explanation.to_dict(), indent=2))
    else:
        print_explanation(explanation)
    sys.exit(0)
