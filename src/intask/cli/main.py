"""Intask CLI application."""

from __future__ import annotations

import os
from enum import StrEnum
from pathlib import Path
from typing import Annotated

import typer
from rich import print as rprint

import intask as intask_pkg
from intask.types import OwnerKind, OwnerRef, Role


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    human = "human"
    json = "json"
    jsonl = "jsonl"


app = typer.Typer(
    name="intask",
    help="Interview scheduling and task hub for hiring and instructor readiness.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        rprint(f"intask {intask_pkg.__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    db: Annotated[
        str | None,
        typer.Option("--db", help="Path to the interview database"),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", "-u", help="Acting user id (or INTASK_USER)"),
    ] = None,
    role: Annotated[
        Role | None,
        typer.Option("--role", "-r", help="Acting user's role (or INTASK_ROLE)"),
    ] = None,
    chapter: Annotated[
        str | None,
        typer.Option("--chapter", "-c", help="Acting user's chapter (or INTASK_CHAPTER)"),
    ] = None,
) -> None:
    """Intask — interview scheduling and task hub."""
    from dotenv import load_dotenv

    from intask.cli.hub_cli import Session
    from intask.config import HubConfig
    from intask.types import Actor

    load_dotenv()

    try:
        config = HubConfig.from_env()
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    if db:
        config = config.model_copy(update={"db_path": Path(db)})

    user = user or os.environ.get("INTASK_USER") or None
    raw_role = role or os.environ.get("INTASK_ROLE") or None
    chapter = chapter or os.environ.get("INTASK_CHAPTER") or None
    actor = None
    if user and raw_role:
        try:
            actor = Actor(user_id=user, role=Role(raw_role), chapter_id=chapter)
        except ValueError as e:
            rprint(f"[red]Error:[/red] Unknown role: {raw_role}")
            raise typer.Exit(1) from e
    ctx.obj = Session(config=config, actor=actor)


def _owner(application: str | None, gate: str | None) -> OwnerRef:
    if bool(application) == bool(gate):
        rprint("[red]Error:[/red] Pass exactly one of --application or --gate.")
        raise typer.Exit(1)
    if application:
        return OwnerRef(kind=OwnerKind.APPLICATION, id=application)
    return OwnerRef(kind=OwnerKind.READINESS_GATE, id=gate or "")


ApplicationOpt = Annotated[
    str | None, typer.Option("--application", "-a", help="Application id")
]
GateOpt = Annotated[str | None, typer.Option("--gate", "-g", help="Readiness gate id")]
FormatOpt = Annotated[OutputFormat, typer.Option("--format", "-f", help="Output format")]


# --- Records ---


@app.command("import")
def import_records_cmd(
    ctx: typer.Context,
    records_file: Annotated[
        str,
        typer.Argument(help="Path to a JSON file of applications, gates and training records"),
    ],
    format: FormatOpt = OutputFormat.human,
) -> None:
    """Import owner records the hub derives tasks from."""
    from intask.cli.hub_cli import import_command

    exit_code = import_command(ctx.obj, Path(records_file), format=format.value)
    raise typer.Exit(exit_code)


# --- Slots ---

slots_app = typer.Typer(help="Post and confirm interview slots.", no_args_is_help=True)
app.add_typer(slots_app, name="slots")


@slots_app.command("post")
def slots_post(
    ctx: typer.Context,
    times: Annotated[
        list[str],
        typer.Option("--at", help="Proposed start time, ISO 8601 (repeat up to 3 times)"),
    ],
    application: ApplicationOpt = None,
    gate: GateOpt = None,
    duration: Annotated[
        int | None,
        typer.Option("--duration", "-d", help="Duration in minutes (15-180)"),
    ] = None,
    link: Annotated[str | None, typer.Option("--link", help="Meeting link")] = None,
    follow_ups: Annotated[
        bool,
        typer.Option("--follow-ups", help="Add options 2h and 4h after a single --at"),
    ] = False,
    format: FormatOpt = OutputFormat.human,
) -> None:
    """Post 1-3 interview options in one step."""
    from intask.cli.hub_cli import post_slots_command

    exit_code = post_slots_command(
        ctx.obj,
        _owner(application, gate),
        times,
        duration_minutes=duration,
        meeting_link=link,
        follow_ups=follow_ups,
        format=format.value,
    )
    raise typer.Exit(exit_code)


@slots_app.command("confirm")
def slots_confirm(
    ctx: typer.Context,
    slot_id: Annotated[str, typer.Argument(help="Slot to confirm")],
    format: FormatOpt = OutputFormat.human,
) -> None:
    """Confirm one proposed slot."""
    from intask.cli.hub_cli import confirm_slot_command

    raise typer.Exit(confirm_slot_command(ctx.obj, slot_id, format=format.value))


# --- Availability requests ---

requests_app = typer.Typer(help="Candidate availability requests.", no_args_is_help=True)
app.add_typer(requests_app, name="requests")


@requests_app.command("submit")
def requests_submit(
    ctx: typer.Context,
    windows: Annotated[
        list[str],
        typer.Option("--window", "-w", help="Preferred time, ISO 8601 (repeat up to 3 times)"),
    ],
    application: ApplicationOpt = None,
    gate: GateOpt = None,
    note: Annotated[str | None, typer.Option("--note", help="Note for the reviewer")] = None,
    format: FormatOpt = OutputFormat.human,
) -> None:
    """Submit preferred interview times (defaults to your readiness gate)."""
    from intask.cli.hub_cli import submit_request_command

    owner = _owner(application, gate) if application or gate else None
    exit_code = submit_request_command(
        ctx.obj, windows, owner=owner, note=note, format=format.value
    )
    raise typer.Exit(exit_code)


@requests_app.command("accept")
def requests_accept(
    ctx: typer.Context,
    request_id: Annotated[str, typer.Argument(help="Request to accept")],
    at: Annotated[str, typer.Option("--at", help="Interview start time, ISO 8601")],
    duration: Annotated[
        int | None,
        typer.Option("--duration", "-d", help="Duration in minutes (15-180)"),
    ] = None,
    link: Annotated[str | None, typer.Option("--link", help="Meeting link")] = None,
    format: FormatOpt = OutputFormat.human,
) -> None:
    """Accept a request and lock the interview time."""
    from intask.cli.hub_cli import accept_request_command

    exit_code = accept_request_command(
        ctx.obj,
        request_id,
        at,
        duration_minutes=duration,
        meeting_link=link,
        format=format.value,
    )
    raise typer.Exit(exit_code)


@requests_app.command("decline")
def requests_decline(
    ctx: typer.Context,
    request_id: Annotated[str, typer.Argument(help="Request to decline")],
    notes: Annotated[
        str | None, typer.Option("--notes", help="Reason shown to the candidate")
    ] = None,
    format: FormatOpt = OutputFormat.human,
) -> None:
    """Decline a pending request."""
    from intask.cli.hub_cli import decline_request_command

    raise typer.Exit(decline_request_command(ctx.obj, request_id, notes, format=format.value))


@requests_app.command("cancel")
def requests_cancel(
    ctx: typer.Context,
    request_id: Annotated[str, typer.Argument(help="Request to withdraw")],
    format: FormatOpt = OutputFormat.human,
) -> None:
    """Withdraw your own pending request."""
    from intask.cli.hub_cli import cancel_request_command

    raise typer.Exit(cancel_request_command(ctx.obj, request_id, format=format.value))


# --- Completion ---

complete_app = typer.Typer(help="Complete interviews and record outcomes.", no_args_is_help=True)
app.add_typer(complete_app, name="complete")


@complete_app.command("hiring")
def complete_hiring(
    ctx: typer.Context,
    application_id: Annotated[str, typer.Argument(help="Application id")],
    slot_id: Annotated[str, typer.Option("--slot", help="Confirmed slot id")],
    recommendation: Annotated[
        str, typer.Option("--recommendation", help="strong_yes, yes, maybe or no")
    ],
    content: Annotated[str, typer.Option("--content", help="Interview notes")],
    strengths: Annotated[str | None, typer.Option("--strengths")] = None,
    concerns: Annotated[str | None, typer.Option("--concerns")] = None,
    format: FormatOpt = OutputFormat.human,
) -> None:
    """Complete a hiring interview and save the recommendation in one step."""
    from intask.cli.hub_cli import complete_hiring_command

    exit_code = complete_hiring_command(
        ctx.obj,
        application_id,
        slot_id,
        recommendation,
        content,
        strengths=strengths,
        concerns=concerns,
        format=format.value,
    )
    raise typer.Exit(exit_code)


@complete_app.command("readiness")
def complete_readiness(
    ctx: typer.Context,
    gate_id: Annotated[str, typer.Argument(help="Readiness gate id")],
    outcome: Annotated[str, typer.Option("--outcome", help="pass, hold, fail or waive")],
    slot_id: Annotated[str | None, typer.Option("--slot", help="Confirmed slot id")] = None,
    notes: Annotated[str | None, typer.Option("--notes", help="Review notes")] = None,
    format: FormatOpt = OutputFormat.human,
) -> None:
    """Set the readiness outcome (waive is admin-only and needs no slot)."""
    from intask.cli.hub_cli import complete_readiness_command

    exit_code = complete_readiness_command(
        ctx.obj, gate_id, outcome, slot_id=slot_id, notes=notes, format=format.value
    )
    raise typer.Exit(exit_code)


@app.command("note")
def note(
    ctx: typer.Context,
    application_id: Annotated[str, typer.Argument(help="Application id")],
    recommendation: Annotated[
        str, typer.Option("--recommendation", help="strong_yes, yes, maybe or no")
    ],
    content: Annotated[str, typer.Option("--content", help="Recommendation note")],
    strengths: Annotated[str | None, typer.Option("--strengths")] = None,
    concerns: Annotated[str | None, typer.Option("--concerns")] = None,
    format: FormatOpt = OutputFormat.human,
) -> None:
    """Save a recommendation note without a scheduled interview."""
    from intask.cli.hub_cli import note_command

    exit_code = note_command(
        ctx.obj,
        application_id,
        recommendation,
        content,
        strengths=strengths,
        concerns=concerns,
        format=format.value,
    )
    raise typer.Exit(exit_code)


# --- Read side ---


@app.command("tasks")
def tasks(
    ctx: typer.Context,
    scope: Annotated[str, typer.Option("--scope", help="all, hiring or readiness")] = "all",
    state: Annotated[
        str,
        typer.Option("--state", help="all, needs_action, scheduled, completed or blocked"),
    ] = "all",
    view: Annotated[str | None, typer.Option("--view", help="mine or team")] = None,
    format: FormatOpt = OutputFormat.human,
) -> None:
    """List interview tasks for the acting user."""
    from intask.cli.hub_cli import tasks_command
    from intask.tasks import StateFilter, TaskScope, TaskView

    try:
        exit_code = tasks_command(
            ctx.obj,
            scope=TaskScope(scope),
            state=StateFilter(state),
            view=TaskView(view) if view else None,
            format=format.value,
        )
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    raise typer.Exit(exit_code)


@app.command("audit")
def audit(
    ctx: typer.Context,
    application: ApplicationOpt = None,
    gate: GateOpt = None,
    event: Annotated[str | None, typer.Option("--event", "-e", help="Event type")] = None,
    limit: Annotated[int | None, typer.Option("--limit", "-n", help="Most recent N events")] = None,
    format: FormatOpt = OutputFormat.human,
) -> None:
    """Show the scheduling audit trail."""
    from intask.audit import EventType
    from intask.cli.hub_cli import audit_command

    owner = _owner(application, gate) if application or gate else None
    try:
        event_type = EventType(event) if event else None
    except ValueError as e:
        rprint(f"[red]Error:[/red] Unknown event type: {event}")
        raise typer.Exit(1) from e
    raise typer.Exit(
        audit_command(ctx.obj, owner=owner, event_type=event_type, limit=limit, format=format.value)
    )
