"""Rich output formatting helpers for the flagresolve CLI.

Provides consistent terminal output for resolution reports, compatibility
notices, validator findings, derivation trees and rule table listings.

Category Color Mapping:
    hard-dependency = cyan, legacy-compat = yellow, internal-alias = dim
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from flagresolve.core.capabilities import CapabilityLayer
from flagresolve.core.resolver import Explanation
from flagresolve.core.rules import RuleCategory, RuleSet
from flagresolve.core.session import ResolutionReport
from flagresolve.exceptions import (
    ConflictError,
    NonTerminationError,
    ResolutionError,
    ValidationError,
)

_CATEGORY_STYLES: dict[RuleCategory, str] = {
    RuleCategory.HARD_DEPENDENCY: "cyan",
    RuleCategory.LEGACY_COMPAT: "yellow",
    RuleCategory.INTERNAL_ALIAS: "dim",
}

console = Console()


def category_style(category: RuleCategory) -> str:
    """Return the Rich style string for a rule category."""
    return _CATEGORY_STYLES.get(category, "white")


def print_resolution_report(report: ResolutionReport, show_internal: bool = False) -> None:
    """Print resolved flags, capabilities and compatibility notices.

    Args:
        report: Successful resolution report.
        show_internal: Include internal-alias flags in the flag table.
    """
    resolution = report.resolution
    console.print(
        Panel(
            f"[bold green]Resolution converged[/bold green] "
            f"after {len(resolution.passes)} pass(es) using {report.table}",
            title="Configuration Resolution",
        )
    )

    table = Table(title="Resolved Flags", show_header=True, header_style="bold")
    table.add_column("Flag", style="bold")
    table.add_column("State", justify="center")
    table.add_column("Origin")
    for name, state in resolution.flags.to_dict().items():
        if not show_internal and name in resolution.internal_flags:
            continue
        if name in resolution.provenance:
            origin = Text(f"derived (pass {_pass_of(report, name)})", style="cyan")
        else:
            origin = Text(resolution.explicit.get(name, "-"), style="dim")
        style = "green" if state == "enabled" else "red"
        table.add_row(name, Text(state, style=style), origin)
    console.print(table)

    if report.capabilities.statuses:
        cap_table = Table(title="Capabilities", show_header=True, header_style="bold")
        cap_table.add_column("Capability", style="bold")
        cap_table.add_column("Available", justify="center")
        cap_table.add_column("Satisfied By")
        for name in sorted(report.capabilities.statuses):
            status = report.capabilities[name]
            mark = Text("yes", style="bold green") if status.available else Text("no", style="dim")
            paths = ", ".join(f"{p.name} ({p.kind.value})" for p in status.satisfied_by)
            cap_table.add_row(name, mark, paths or "-")
        console.print(cap_table)

    print_notices(report)


def _pass_of(report: ResolutionReport, flag: str) -> int | str:
    for record in report.resolution.passes:
        if flag in record.enabled:
            return record.number
    return "?"


def print_notices(report: ResolutionReport) -> None:
    """Print backward-compatibility auto-enable notices, if any."""
    for notice in report.resolution.notices:
        console.print(f"[yellow]notice:[/yellow] {escape(notice.message)}")
    for finding in report.findings:
        console.print(f"[red]finding:[/red] {escape(finding.message)}")


def print_resolution_error(error: ResolutionError) -> None:
    """Print a failed resolution with every offending flag and rule."""
    title = type(error).__name__
    console.print(Panel(f"[bold red]Resolution failed[/bold red]: {escape(str(error))}", title=title))
    if isinstance(error, ConflictError):
        console.print(f"  Flag:   [bold]{error.flag}[/bold]")
        if error.source:
            console.print(f"  Source: {escape(error.source)}")
        for rule_id in error.rules:
            console.print(f"  [red]- {escape(rule_id)}[/red]")
    elif isinstance(error, NonTerminationError):
        console.print(f"  Still changing after {error.passes} passes:")
        for flag in error.changing:
            console.print(f"  [red]- {flag}[/red]")
    elif isinstance(error, ValidationError):
        for finding in error.findings:
            console.print(f"  [red]- {escape(finding.message)}[/red]")
            for detail in finding.flags:
                console.print(f"      [dim]{escape(detail)}[/dim]")


def error_to_dict(error: ResolutionError) -> dict[str, Any]:
    """JSON-serializable form of a resolution error."""
    data: dict[str, Any] = {"type": type(error).__name__, "message": str(error)}
    if isinstance(error, ConflictError):
        data.update(flag=error.flag, rules=list(error.rules), source=error.source)
    elif isinstance(error, NonTerminationError):
        data.update(changing=list(error.changing), passes=error.passes)
    elif isinstance(error, ValidationError):
        data["findings"] = [f.to_dict() for f in error.findings]
    return data


def print_explanation(explanation: Explanation) -> None:
    """Print a derivation tree."""
    tree = Tree(_explanation_label(explanation))
    _add_branches(tree, explanation)
    console.print(tree)


def _explanation_label(node: Explanation) -> Text:
    style = {"enabled": "green", "disabled": "red"}.get(node.state.value, "dim")
    label = Text.assemble((node.flag, "bold"), ": ", (node.state.value, style))
    if node.source:
        label.append(f" (set by {node.source})", style="dim")
    if node.repeated:
        label.append(" (see above)", style="dim")
    return label


def _add_branches(tree: Tree, node: Explanation) -> None:
    for derivation in node.derivations:
        rule = derivation.rule
        branch = tree.add(
            Text.assemble(
                (f"[{rule.category.value}] ", category_style(rule.category)),
                rule.rule_id,
            )
        )
        for child in derivation.inputs:
            sub = branch.add(_explanation_label(child))
            _add_branches(sub, child)


def print_rules(rules: RuleSet, capabilities: CapabilityLayer, category: RuleCategory | None = None) -> None:
    """Print a rule table listing and its capability definitions."""
    table = Table(title=f"Rules ({rules.version})", show_header=True, header_style="bold")
    table.add_column("Consequent", style="bold")
    table.add_column("Category")
    table.add_column("Antecedent")
    table.add_column("Rationale", style="dim")
    for rule in rules:
        if category is not None and rule.category is not category:
            continue
        table.add_row(
            rule.consequent,
            Text(rule.category.value, style=category_style(rule.category)),
            str(rule.antecedent),
            rule.rationale,
        )
    console.print(table)

    if category is None and len(capabilities):
        cap_table = Table(title="Capabilities", show_header=True, header_style="bold")
        cap_table.add_column("Capability", style="bold")
        cap_table.add_column("Promoted To")
        cap_table.add_column("Provider Paths")
        for cap in capabilities:
            cap_table.add_row(
                cap.name,
                cap.promote_to or "-",
                "\n".join(p.describe() for p in cap.paths),
            )
        console.print(cap_table)

