"""Flask CLI commands for the reporting chain.

Provides ``flask leadership set``, ``end``, ``history`` and ``eligible``.
"""

from datetime import date

import click
from flask.cli import AppGroup

from ..services.leadership_errors import LeadershipError
from ..services.leadership_service import LeadershipService

leadership_cli = AppGroup("leadership", help="Reporting chain (leadership) commands.")


def _today() -> str:
    return date.today().isoformat()


@leadership_cli.command("set")
@click.argument("child")
@click.argument("parent")
@click.option("--date", "effective_date", default=None, help="Effective date (YYYY-MM-DD). Defaults to today.")
@click.option("--actor", default=None, help="Who is making the change.")
def set_command(child: str, parent: str, effective_date: str | None, actor: str | None) -> None:
    """Make PARENT the leader of CHILD from the effective date."""
    try:
        change = LeadershipService().set_leader(
            child, parent, effective_date or _today(), actor=actor
        )
    except LeadershipError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if not change.changed:
        click.echo(f"{child} already reports to {parent}; nothing changed.")
        return

    click.echo(f"{child} now reports to {parent} from {change.effective_date.isoformat()}")
    if change.closed_edge_id:
        click.echo(f"  Closed edge: {change.closed_edge_id}")
    click.echo(f"  Opened edge: {change.opened_edge_id}")


@leadership_cli.command("end")
@click.argument("child")
@click.option("--date", "effective_date", default=None, help="Effective date (YYYY-MM-DD). Defaults to today.")
@click.option("--actor", default=None, help="Who is making the change.")
def end_command(child: str, effective_date: str | None, actor: str | None) -> None:
    """End CHILD's current reporting line."""
    try:
        change = LeadershipService().end_leadership(child, effective_date or _today(), actor=actor)
    except LeadershipError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if not change.changed:
        click.echo(f"{child} has no active leader; nothing changed.")
        return
    click.echo(
        f"{child} no longer reports to {change.parent_position_id} "
        f"from {change.effective_date.isoformat()}"
    )


@leadership_cli.command("history")
@click.argument("position")
def history_command(position: str) -> None:
    """Show the reporting history of POSITION, newest first."""
    service = LeadershipService()
    try:
        service.get_position(position)
        entries = service.history_for(position)
    except LeadershipError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if not entries:
        click.echo("No reporting history.")
        return

    rows = []
    for entry in entries:
        edge = entry.edge
        rows.append({
            "relation": entry.relation,
            "child": edge.child_position_id,
            "parent": edge.parent_position_id,
            "start": edge.start_date.isoformat(),
            "end": edge.end_date.isoformat() if edge.end_date else "-",
            "status": "active" if entry.is_active else "closed",
        })

    headers = {
        "relation": "Relation", "child": "Child", "parent": "Parent",
        "start": "Start", "end": "End", "status": "Status",
    }
    widths = {}
    for key, header in headers.items():
        widths[key] = max(len(header), max(len(r[key]) for r in rows))

    click.echo("  ".join(h.ljust(widths[k]) for k, h in headers.items()))
    click.echo("  ".join("-" * widths[k] for k in headers))
    for row in rows:
        click.echo("  ".join(row[k].ljust(widths[k]) for k in headers))


@leadership_cli.command("eligible")
@click.argument("child")
def eligible_command(child: str) -> None:
    """List positions eligible to lead CHILD."""
    try:
        result = LeadershipService().eligible_parents(child)
    except LeadershipError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if not result.candidates:
        click.echo("No eligible leaders.")
        return

    for candidate in result.candidates:
        click.echo(f"{candidate.position_id}  {candidate.label}")
    click.echo(f"\n{len(result.candidates)} candidate{'s' if len(result.candidates) != 1 else ''} (tier: {result.tier})")
