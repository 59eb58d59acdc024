"""Command-line interface for inbox-triage."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from inbox_triage.config import Settings, load_name_maps, load_rules, save_rules
from inbox_triage.errors import ConfigurationMissingError, RuleValidationError
from inbox_triage.logging import configure_logging
from inbox_triage.mail.messages import MailContext, parse_address, parse_address_list
from inbox_triage.rules.conditions import ConditionKind
from inbox_triage.rules.engine import determine_actions
from inbox_triage.rules.models import ActionType, Rule
from inbox_triage.rules.ruleset import RuleSet

app = typer.Typer(
    name="inbox-triage",
    help="Rule engine for automated webmail triage",
    no_args_is_help=True,
)
console = Console()

# Sub-command groups
rules_app = typer.Typer(help="Manage triage rules")
llm_app = typer.Typer(help="LLM judge for AI-mode rules")

app.add_typer(rules_app, name="rules")
app.add_typer(llm_app, name="llm")

EXAMPLE_RULES = """# Inbox Triage Rules
# Rules run top to bottom; the first matching rule with stopProcessing ends the pass.

rules:
  - id: "1700000000000"
    name: "Invoices"
    enabled: true
    conditionMode: normal
    conditions:
      subject:
        - type: include
          keywords:
            - {keyword: "invoice", logic: or}
            - {keyword: "receipt", logic: or}
      sender:
        - type: exclude
          address: "noreply@"
    action:
      moveToFolder: "Finance"
      setLabel: "Bills"
      markAsRead: false
      stopProcessing: true

  - id: "1700000000001"
    name: "Newsletters"
    enabled: true
    conditionMode: normal
    conditions:
      body:
        - type: include
          keywords:
            - {keyword: "unsubscribe", logic: and}
            - {keyword: "newsletter", logic: or}
    action:
      markAsRead: true
      stopProcessing: false

  - id: "1700000000002"
    name: "Job offers (AI)"
    enabled: false
    conditionMode: ai
    aiPrompt:
      user: "Recruiting emails offering a job or an interview"
    action:
      setLabel: "Jobs"
"""

EXAMPLE_MAILBOX = """# Label and folder ids as reported by the webmail client

labels:
  Bills: "101"
  Jobs: "102"

folders:
  Inbox: "2"
  Finance: "7"
"""


def get_settings() -> Settings:
    """Load application settings."""
    return Settings()


def _load_ruleset(settings: Settings) -> RuleSet:
    try:
        return RuleSet.from_dicts(load_rules(settings.rules_path))
    except RuleValidationError as e:
        console.print(f"[red]Invalid rules file:[/red] {e}")
        raise typer.Exit(1)


def _save_ruleset(settings: Settings, ruleset: RuleSet) -> None:
    save_rules(settings.rules_path, ruleset.to_dicts())


def _edit_rule(rule_id: str, edit, verb: str) -> None:
    settings = get_settings()
    ruleset = _load_ruleset(settings)
    try:
        updated = edit(ruleset, rule_id)
    except KeyError:
        console.print(f"[red]No rule with id {rule_id}[/red]")
        raise typer.Exit(1)
    _save_ruleset(settings, updated)
    console.print(f"[green]{verb}[/green] {rule_id}")


@app.command()
def version() -> None:
    """Show version information."""
    from inbox_triage import __version__

    console.print(f"inbox-triage v{__version__}")


@app.command()
def init(
    config_dir: Annotated[
        Path | None,
        typer.Option("--config-dir", "-c", help="Configuration directory"),
    ] = None,
) -> None:
    """Initialize configuration directory with example files."""
    settings = get_settings()
    if config_dir:
        settings.config_dir = config_dir

    settings.ensure_config_dir()

    if not settings.rules_path.exists():
        settings.rules_path.write_text(EXAMPLE_RULES)
        console.print(f"[green]Created[/green] {settings.rules_path}")

    if not settings.mailbox_path.exists():
        settings.mailbox_path.write_text(EXAMPLE_MAILBOX)
        console.print(f"[green]Created[/green] {settings.mailbox_path}")

    console.print(f"\n[bold]Configuration initialized at:[/bold] {settings.config_dir}")


# === Rules Commands ===


def _action_summary(rule: Rule) -> str:
    action = rule.action
    if action.type == ActionType.DELETE:
        return "delete"
    parts = []
    if action.label_names:
        parts.append(f"label {', '.join(action.label_names)}")
    if action.mark_as_read:
        parts.append("mark read")
    if action.move_to_folder:
        parts.append(f"move to {action.move_to_folder}")
    return "; ".join(parts) or "-"


@rules_app.command("list")
def rules_list() -> None:
    """List all configured rules in evaluation order."""
    settings = get_settings()
    ruleset = _load_ruleset(settings)

    if not ruleset:
        console.print("[yellow]No rules configured[/yellow]")
        console.print("Run [bold]inbox-triage init[/bold] to create example rules")
        return

    table = Table(title="Triage Rules")
    table.add_column("#", style="dim", width=3)
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Mode", width=6)
    table.add_column("Action", style="green")
    table.add_column("Enabled", width=7)
    table.add_column("Stop", width=4)

    for position, rule in enumerate(ruleset, start=1):
        table.add_row(
            str(position),
            rule.id,
            rule.name,
            rule.condition_mode.value,
            _action_summary(rule),
            "✓" if rule.enabled else "✗",
            "✓" if rule.action.stop_processing else "",
        )

    console.print(table)


@rules_app.command("show")
def rules_show(
    rule_id: Annotated[str, typer.Argument(help="Rule id")],
) -> None:
    """Show one rule's conditions and actions."""
    settings = get_settings()
    rule = _load_ruleset(settings).get(rule_id)
    if rule is None:
        console.print(f"[red]No rule with id {rule_id}[/red]")
        raise typer.Exit(1)

    console.print(f"[bold]{rule.name}[/bold] ({rule.id})")
    console.print(f"Enabled: {'yes' if rule.enabled else 'no'}")
    console.print(f"Mode: {rule.condition_mode.value}")

    if rule.is_ai:
        user_prompt = rule.ai_prompt.user if rule.ai_prompt else None
        console.print(f"Prompt: {user_prompt or '[red](missing)[/red]'}")
    else:
        for kind in ConditionKind:
            for group in rule.conditions.groups(kind):
                state = "" if group.enabled else " [dim](disabled)[/dim]"
                if kind in (ConditionKind.SUBJECT, ConditionKind.BODY):
                    terms = " ".join(
                        f"{item.keyword} {(item.logic.value if item.logic else 'or').upper()}"
                        for item in group.keywords
                    ).rsplit(" ", 1)[0]
                else:
                    terms = group.address
                console.print(f"  {kind.value} {group.type.value}: {terms}{state}")

    console.print(f"Action: {_action_summary(rule)}")
    console.print(f"Stop processing: {'yes' if rule.action.stop_processing else 'no'}")


@rules_app.command("enable")
def rules_enable(rule_id: Annotated[str, typer.Argument(help="Rule id")]) -> None:
    """Enable a rule."""
    _edit_rule(rule_id, lambda rs, rid: rs.toggle(rid, enabled=True), "Enabled")


@rules_app.command("disable")
def rules_disable(rule_id: Annotated[str, typer.Argument(help="Rule id")]) -> None:
    """Disable a rule."""
    _edit_rule(rule_id, lambda rs, rid: rs.toggle(rid, enabled=False), "Disabled")


@rules_app.command("up")
def rules_up(rule_id: Annotated[str, typer.Argument(help="Rule id")]) -> None:
    """Move a rule one position earlier."""
    _edit_rule(rule_id, RuleSet.move_up, "Moved up")


@rules_app.command("down")
def rules_down(rule_id: Annotated[str, typer.Argument(help="Rule id")]) -> None:
    """Move a rule one position later."""
    _edit_rule(rule_id, RuleSet.move_down, "Moved down")


@rules_app.command("delete")
def rules_delete(
    rule_id: Annotated[str, typer.Argument(help="Rule id")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a rule."""
    if not yes and not typer.confirm(f"Delete rule {rule_id}?"):
        raise typer.Abort()
    _edit_rule(rule_id, RuleSet.delete, "Deleted")


@rules_app.command("test")
def rules_test(
    subject: Annotated[str | None, typer.Option("--subject", "-s", help="Message subject")] = None,
    sender: Annotated[
        str | None, typer.Option("--sender", "-f", help='Sender, e.g. "Name <a@b.c>"')
    ] = None,
    to: Annotated[list[str] | None, typer.Option("--to", help="Recipient (repeatable)")] = None,
    cc: Annotated[list[str] | None, typer.Option("--cc", help="Cc recipient (repeatable)")] = None,
    body: Annotated[str | None, typer.Option("--body", "-b", help="Message body")] = None,
    rule_ids: Annotated[
        list[str] | None, typer.Option("--rule", "-r", help="Only test these rule ids")
    ] = None,
) -> None:
    """Dry-run the rules against a message described on the command line."""
    settings = get_settings()
    ruleset = _load_ruleset(settings)
    if rule_ids:
        ruleset = ruleset.select(rule_ids)
    labels, folders = load_name_maps(settings.mailbox_path)

    context = MailContext(
        mail_id="2_0:cli-test",
        subject=subject,
        body=body,
        sender=parse_address(sender),
        recipient=parse_address_list(to),
        cc_recipients=parse_address_list(cc),
    )
    planned = determine_actions(context, ruleset, labels, folders)

    skipped_ai = [rule.name for rule in ruleset if rule.enabled and rule.is_ai]
    if skipped_ai:
        console.print(f"[dim]AI rules not evaluated: {', '.join(skipped_ai)}[/dim]")

    if not planned:
        console.print("[yellow]No actions would be taken[/yellow]")
        return

    names = {rule.id: rule.name for rule in ruleset}
    table = Table(title="Planned Actions")
    table.add_column("Rule", style="cyan")
    table.add_column("Action", style="green")
    for action in planned:
        table.add_row(names.get(action.rule_id or "", "?"), action.describe())
    console.print(table)


# === LLM Commands ===


@llm_app.command("status")
def llm_status() -> None:
    """Show the configured LLM judge and check that it is reachable."""
    from inbox_triage.ai import get_provider

    settings = get_settings()
    configure_logging(settings)

    config = settings.llm_config()
    if config is None and settings.llm_provider:
        console.print(
            f"[red]✗[/red] No API key for '{settings.llm_provider}'; AI-mode rules will not match"
        )
        raise typer.Exit(1)
    if config is None:
        console.print("[yellow]No LLM provider configured; AI-mode rules will not match[/yellow]")
        console.print("Set [bold]INBOX_TRIAGE_LLM_PROVIDER[/bold] to google, claude, openai or ollama")
        return

    console.print(f"Provider: [cyan]{config.provider}[/cyan]")
    console.print(f"Model: {config.model}")

    try:
        provider = get_provider(config)
    except ConfigurationMissingError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    available = asyncio.run(provider.is_available())
    if available:
        console.print("[green]✓[/green] Provider is reachable")
    else:
        console.print("[red]✗[/red] Provider is not reachable")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
