"""``flagresolve rules`` — List the rule table and its capabilities."""

from __future__ import annotations

import json

import click

from flagresolve.core.rules import RuleCategory
from flagresolve.tables import default_table

_CATEGORIES = {c.value: c for c in RuleCategory}


@click.command("rules")
@click.option(
    "--category",
    type=click.Choice(sorted(_CATEGORIES)),
    default=None,
    help="Only list rules of this category.",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
def rules_command(category: str | None, output_format: str) -> None:
    """List every rule and capability in the built-in rule table."""
    table = default_table()
    selected = _CATEGORIES.get(category) if category else None

    if output_format == "json":
        data = {
            "table": table.label,
            "rules": [
                {
                    "id": r.rule_id,
                    "consequent": r.consequent,
                    "antecedent": str(r.antecedent),
                    "category": r.category.value,
                    "rationale": r.rationale,
                }
                for r in table.rules
                if selected is None or r.category is selected
            ],
            "capabilities": {
                cap.name: {
                    "promote_to": cap.promote_to,
                    "description": cap.description,
                    "paths": [p.to_dict() for p in cap.paths],
                }
                for cap in table.capabilities
            },
        }
        click.echo(json.dumps(data, indent=2))
        return

    from flagresolve.cli.output import print_rules
    print_rules(table.rules, table.capabilities, selected)
