"""flagresolve CLI — Resolve compile-time feature flags to a fixed point.

Entry point for the ``flagresolve`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    resolve — Resolve a configuration and report flags and capabilities.
    explain — Show the derivation tree of one flag.
    rules   — List the built-in rule table.

Usage::

    flagresolve resolve config.yaml
    flagresolve resolve -e MBEDTLS_PK_PARSE_C -e MBEDTLS_ECP_C --format json
    flagresolve resolve config.yaml -d MBEDTLS_PK_WRITE_C -r ecdsa-verify
    flagresolve explain MBEDTLS_MD_LIGHT -e MBEDTLS_RSA_C
    flagresolve rules --category legacy-compat
"""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from flagresolve import __version__
from flagresolve.cli.explain_cmd import explain_command
from flagresolve.cli.resolve_cmd import resolve_command
from flagresolve.cli.rules_cmd import rules_command
from flagresolve.tables import TABLE_NAME, TABLE_VERSION


@click.group()
@click.version_option(version=f"{__version__} ({TABLE_NAME}@{TABLE_VERSION})")
@click.option("--verbose", "-v", count=True, help="Log resolver progress (-vv for passes).")
def cli(verbose: int) -> None:
    """flagresolve: Consistent build-flag sets from capability requests.

    Applies the built-in rule table to user-declared flags until no rule can
    enable anything further, reports every backward-compatibility
    auto-enable, and rejects conflicting or unsatisfiable configurations.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(show_path=False)],
            force=True,
        )


# Register all subcommands
cli.add_command(resolve_command)
cli.add_command(explain_command)
cli.add_command(rules_command)
