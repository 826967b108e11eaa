"""CLI entry point for abilitykit.

Invoked as::

    abilitykit [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m abilitykit.cli.main

Commands
--------
- check    Evaluate one action against a subject or a JSON record
- filter   Print the MongoDB query document listing permitted records
- rules    List the rules of a rule file in declaration order
- aliases  Show the alias expansions a rule file ends up with
- version  Show version information

Subjects named in the rule file are turned into simple record classes, so
``--record`` JSON is checked exactly like an application object would be.
"""
from __future__ import annotations

import json
import logging
import sys
from types import SimpleNamespace
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from abilitykit.ability import Ability
from abilitykit.adapters.mongo import MongoQueryAdapter
from abilitykit.errors import AbilityConfigError, AbilityError
from abilitykit.loader import AbilityDefinition, AbilityLoader
from abilitykit.rules import ALL

console = Console()
err_console = Console(stderr=True)

EXIT_DENIED = 1
EXIT_CONFIG_ERROR = 2


def _record_class(name: str) -> type:
    return type(name, (SimpleNamespace,), {"__collection__": name.lower()})


def _load_definition(rules_path: str) -> AbilityDefinition:
    """Load the rule file, mapping every subject name to a record class."""
    loader = AbilityLoader()
    try:
        config = loader.read_config(rules_path)
        subjects = {name: _record_class(name) for name in config.subject_names() if name != ALL}
        return AbilityLoader(subjects=subjects).from_config(config, config_path=rules_path)
    except AbilityConfigError as exc:
        err_console.print(f"[red]Invalid rule file:[/red] {escape(str(exc))}")
        sys.exit(EXIT_CONFIG_ERROR)


def _parse_variables(pairs: tuple[str, ...]) -> dict[str, Any]:
    variables: dict[str, Any] = {}
    for pair in pairs:
        name, sep, raw = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected NAME=JSON, got {pair!r}", param_hint="--var")
        try:
            variables[name] = json.loads(raw)
        except json.JSONDecodeError:
            variables[name] = raw
    return variables


def _build(definition: AbilityDefinition, var_pairs: tuple[str, ...]) -> Ability:
    try:
        return definition.build(_parse_variables(var_pairs))
    except AbilityError as exc:
        err_console.print(f"[red]Cannot build ability:[/red] {escape(str(exc))}")
        sys.exit(EXIT_CONFIG_ERROR)


_rules_option = click.option(
    "--rules",
    "-r",
    "rules_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the YAML rule file.",
)
_var_option = click.option(
    "--var",
    "var_pairs",
    multiple=True,
    metavar="NAME=JSON",
    help="Value for {$var: ...} placeholders, e.g. actor='{\"id\": 7}'. Repeatable.",
)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="abilitykit")
@click.option("--verbose", "-v", is_flag=True, help="Log rule evaluation at DEBUG level.")
def cli(verbose: bool) -> None:
    """abilitykit CLI — inspect and evaluate permission rule files."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from abilitykit import __version__

    console.print(
        Panel(
            f"[bold]abilitykit[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Ordered permission rules with point-wise checks and storage filters.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command(name="check")
@_rules_option
@click.option("--action", "-a", required=True, help="Action to check, e.g. read.")
@click.option("--subject", "-s", required=True, help="Subject name from the rule file.")
@click.option(
    "--record",
    "record_json",
    default=None,
    help='Record attributes as JSON, e.g. \'{"status": "open"}\'. Omit for a type-only check.',
)
@_var_option
def check_command(
    rules_path: str,
    action: str,
    subject: str,
    record_json: str | None,
    var_pairs: tuple[str, ...],
) -> None:
    """Evaluate one action against a subject or record."""
    definition = _load_definition(rules_path)
    ability = _build(definition, var_pairs)

    target: Any = definition.resolve_subject(subject)
    if record_json is not None:
        try:
            attributes = json.loads(record_json)
        except json.JSONDecodeError as exc:
            err_console.print(f"[red]Invalid JSON:[/red] {exc}")
            sys.exit(EXIT_CONFIG_ERROR)
        if not isinstance(attributes, dict) or not isinstance(target, type):
            err_console.print("[red]--record needs a JSON object and a subject named in the rule file.[/red]")
            sys.exit(EXIT_CONFIG_ERROR)
        target = target(**attributes)

    decision = ability.explain(action, target)
    status_str = "[green]ALLOWED[/green]" if decision.allowed else "[red]DENIED[/red]"
    console.print(Panel(status_str, title="Permission Check Result", border_style="blue"))
    if decision.rule is not None:
        console.print(f"  Deciding rule: [bold]{escape(decision.rule.describe())}[/bold]")
    console.print(f"  Reason: {escape(decision.reason)}")

    sys.exit(0 if decision.allowed else EXIT_DENIED)


# ---------------------------------------------------------------------------
# filter
# ---------------------------------------------------------------------------


@cli.command(name="filter")
@_rules_option
@click.option("--action", "-a", required=True, help="Action to filter for, e.g. read.")
@click.option("--subject", "-s", required=True, help="Subject name from the rule file.")
@_var_option
def filter_command(rules_path: str, action: str, subject: str, var_pairs: tuple[str, ...]) -> None:
    """Print the MongoDB query document selecting permitted records."""
    definition = _load_definition(rules_path)
    ability = _build(definition, var_pairs)

    subject_type = definition.resolve_subject(subject)
    if not isinstance(subject_type, type):
        err_console.print(f"[red]Subject {subject!r} is not named in the rule file.[/red]")
        sys.exit(EXIT_CONFIG_ERROR)
    try:
        query = ability.accessible_filter(action, subject_type, adapter=MongoQueryAdapter())
    except AbilityError as exc:
        err_console.print(f"[red]Cannot build filter:[/red] {escape(str(exc))}")
        sys.exit(EXIT_CONFIG_ERROR)

    click.echo(json.dumps(query, indent=2, sort_keys=True, default=str))


# ---------------------------------------------------------------------------
# rules
# ---------------------------------------------------------------------------


@cli.command(name="rules")
@_rules_option
def rules_command(rules_path: str) -> None:
    """List the rules of a rule file in declaration order."""
    definition = _load_definition(rules_path)
    if not definition.rules:
        console.print("[yellow]No rules defined.[/yellow]")
        return

    table = Table(title=f"Rules in {rules_path}", box=box.SIMPLE)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Effect")
    table.add_column("Actions", style="cyan")
    table.add_column("Subjects", style="magenta")
    table.add_column("Conditions")
    table.add_column("Reason")
    for index, entry in enumerate(definition.rules):
        effect = "[green]grant[/green]" if entry.grant else "[red]deny[/red]"
        conditions = json.dumps(entry.conditions, default=str) if entry.conditions else "-"
        table.add_row(
            str(index),
            effect,
            ", ".join(entry.actions),
            ", ".join(entry.subjects),
            escape(conditions),
            escape(entry.reason or ""),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# aliases
# ---------------------------------------------------------------------------


@cli.command(name="aliases")
@_rules_option
def aliases_command(rules_path: str) -> None:
    """Show each alias and the full set of actions it expands to."""
    definition = _load_definition(rules_path)
    registry = definition.aliases

    table = Table(title="Action Aliases", box=box.SIMPLE)
    table.add_column("Alias", style="cyan")
    table.add_column("Targets")
    table.add_column("Expands to", style="magenta")
    for alias, targets in sorted(registry.aliases().items()):
        expanded = sorted(registry.expand(alias) - {alias})
        table.add_row(alias, ", ".join(targets), ", ".join(expanded))
    console.print(table)


if __name__ == "__main__":
    cli()
