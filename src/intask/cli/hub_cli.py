"""Interview hub CLI commands — scheduling, completion, task feed, audit."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from intask.audit import AuditEvent, AuditFilter, EventType
from intask.commands import InterviewCommands
from intask.config import HubConfig
from intask.records import import_records, load_records
from intask.scheduling import SchedulingError, SlotStore, suggest_follow_up_times
from intask.tasks import (
    InterviewTask,
    StateFilter,
    TaskScope,
    TaskStage,
    TaskView,
    build_task_board,
)
from intask.types import Actor, OwnerKind, OwnerRef

console = Console()

_STAGE_STYLE = {
    TaskStage.NEEDS_ACTION: "yellow",
    TaskStage.SCHEDULED: "cyan",
    TaskStage.COMPLETED: "green",
    TaskStage.BLOCKED: "red",
}


class Session(BaseModel):
    """Resolved CLI state shared by every subcommand."""

    config: HubConfig
    actor: Actor | None = None

    model_config = ConfigDict(frozen=True)


def _open_store(config: HubConfig) -> SlotStore:
    config.db_path.parent.mkdir(parents=True, exist_ok=True)
    return SlotStore(config.db_path, busy_timeout=config.busy_timeout_seconds)


def _print_error(message: str, format: str) -> None:
    if format == "human":
        console.print(f"[red]Error:[/red] {message}")
    else:
        print(json.dumps({"error": message}))


def _require_actor(session: Session, format: str) -> Actor | None:
    if session.actor is None:
        _print_error("No acting user. Pass --user and --role (or set INTASK_USER).", format)
    return session.actor


def _action_summary(task: InterviewTask) -> str:
    fields = task.primary_action.model_dump(mode="json", exclude={"kind", "label"})
    params = ", ".join(f"{k}={v}" for k, v in fields.items() if v not in (None, []))
    label = task.primary_action.label
    return f"{label} ({params})" if params else label


def _render_task(task: InterviewTask) -> None:
    style = _STAGE_STYLE[task.stage]
    lines = [
        f"[{style}]{task.stage.value}[/{style}] · {task.subtitle}",
        task.detail,
    ]
    for blocker in task.blockers:
        lines.append(f"[red]• {blocker}[/red]")
    lines.append(f"\n[bold]Next:[/bold] {_action_summary(task)}")
    links = "  ".join(f"{link.label}: {link.href}" for link in task.secondary_links)
    if links:
        lines.append(f"[dim]{links}[/dim]")
    console.print(Panel("\n".join(lines), title=task.title, border_style=style))


def _output_task(task: InterviewTask, format: str) -> None:
    if format == "json":
        print(json.dumps(task.model_dump(mode="json"), indent=2))
    elif format == "jsonl":
        print(task.model_dump_json())
    else:
        _render_task(task)


def _run_task_command(
    session: Session,
    format: str,
    action: Callable[[InterviewCommands, Actor], InterviewTask],
) -> int:
    """Run one mutating command and print the refreshed task.

    Returns:
        Exit code (0 = success, 1 = rejected or error).
    """
    actor = _require_actor(session, format)
    if actor is None:
        return 1
    try:
        with _open_store(session.config) as store:
            task = action(InterviewCommands(store, session.config), actor)
    except SchedulingError as e:
        _print_error(e.message, format)
        return 1
    _output_task(task, format)
    return 0


# --- Records ---


def import_command(session: Session, records_file: Path, format: str = "human") -> int:
    """Import owner records from a JSON file.

    Returns:
        Exit code (0 = imported, 1 = error).
    """
    actor = _require_actor(session, format)
    if actor is None:
        return 1
    try:
        bundle = load_records(records_file)
        with _open_store(session.config) as store:
            counts = import_records(store, bundle, actor)
    except (FileNotFoundError, ValueError) as e:
        _print_error(str(e), format)
        return 1

    if format == "human":
        summary = "\n".join(f"{kind}: {count}" for kind, count in counts.items())
        console.print(
            Panel(
                f"[green]✓ Records imported[/green]\n{summary}",
                title="Import Result",
                border_style="green",
            )
        )
    else:
        print(json.dumps({"imported": True, **counts}))
    return 0


# --- Slots ---


def post_slots_command(
    session: Session,
    owner: OwnerRef,
    times: list[str],
    duration_minutes: int | None = None,
    meeting_link: str | None = None,
    follow_ups: bool = False,
    format: str = "human",
) -> int:
    """Post 1-3 proposed slots for an application or readiness gate.

    With follow_ups, a single time is expanded to itself plus +2h and +4h.
    """
    if follow_ups and len(times) == 1:
        try:
            first = datetime.fromisoformat(times[0])
        except ValueError:
            _print_error(f"Interview time is invalid: {times[0]!r}", format)
            return 1
        times = [t.isoformat() for t in suggest_follow_up_times(first)]
    slots = [
        {"scheduled_at": t, "duration_minutes": duration_minutes, "meeting_link": meeting_link}
        for t in times
    ]

    def action(commands: InterviewCommands, actor: Actor) -> InterviewTask:
        if owner.kind == OwnerKind.APPLICATION:
            return commands.post_application_interview_slots_bulk(owner.id, slots, actor)
        gate = commands.store.get_gate(owner.id)
        return commands.post_instructor_interview_slots_bulk(
            gate.instructor_id, gate.id, slots, actor
        )

    return _run_task_command(session, format, action)


def confirm_slot_command(session: Session, slot_id: str, format: str = "human") -> int:
    """Confirm a proposed slot for either pipeline."""

    def action(commands: InterviewCommands, actor: Actor) -> InterviewTask:
        slot = commands.store.get_slot(slot_id)
        if slot.owner_kind == OwnerKind.APPLICATION:
            return commands.confirm_interview_slot(slot_id, actor)
        return commands.confirm_posted_interview_slot(slot_id, actor)

    return _run_task_command(session, format, action)


# --- Availability requests ---


def submit_request_command(
    session: Session,
    windows: list[str],
    owner: OwnerRef | None = None,
    note: str | None = None,
    format: str = "human",
) -> int:
    """Submit preferred interview windows as the candidate."""
    return _run_task_command(
        session,
        format,
        lambda commands, actor: commands.submit_interview_availability_request(
            windows, actor, owner=owner, note=note
        ),
    )


def accept_request_command(
    session: Session,
    request_id: str,
    scheduled_at: str,
    duration_minutes: int | None = None,
    meeting_link: str | None = None,
    format: str = "human",
) -> int:
    """Accept a pending availability request at the chosen time."""
    return _run_task_command(
        session,
        format,
        lambda commands, actor: commands.accept_interview_availability_request(
            request_id,
            scheduled_at,
            actor,
            duration_minutes=duration_minutes,
            meeting_link=meeting_link,
        ),
    )


def decline_request_command(
    session: Session, request_id: str, notes: str | None = None, format: str = "human"
) -> int:
    return _run_task_command(
        session,
        format,
        lambda commands, actor: commands.decline_interview_availability_request(
            request_id, actor, review_notes=notes
        ),
    )


def cancel_request_command(session: Session, request_id: str, format: str = "human") -> int:
    return _run_task_command(
        session,
        format,
        lambda commands, actor: commands.cancel_interview_availability_request(request_id, actor),
    )


# --- Completion ---


def complete_hiring_command(
    session: Session,
    application_id: str,
    slot_id: str,
    recommendation: str,
    content: str,
    strengths: str | None = None,
    concerns: str | None = None,
    format: str = "human",
) -> int:
    """Complete a hiring interview and save the recommendation."""
    return _run_task_command(
        session,
        format,
        lambda commands, actor: commands.complete_application_interview_and_note(
            application_id,
            slot_id,
            recommendation,
            content,
            actor,
            strengths=strengths,
            concerns=concerns,
        ),
    )


def complete_readiness_command(
    session: Session,
    gate_id: str,
    outcome: str,
    slot_id: str | None = None,
    notes: str | None = None,
    format: str = "human",
) -> int:
    """Set the readiness outcome for a gate."""
    return _run_task_command(
        session,
        format,
        lambda commands, actor: commands.complete_instructor_interview_and_set_outcome(
            gate_id, outcome, actor, slot_id=slot_id, review_notes=notes
        ),
    )


def note_command(
    session: Session,
    application_id: str,
    recommendation: str,
    content: str,
    strengths: str | None = None,
    concerns: str | None = None,
    format: str = "human",
) -> int:
    """Save a recommendation note without a scheduled interview."""
    return _run_task_command(
        session,
        format,
        lambda commands, actor: commands.save_structured_interview_note(
            application_id,
            recommendation,
            content,
            actor,
            strengths=strengths,
            concerns=concerns,
        ),
    )


# --- Read side ---


def _render_tasks(tasks: list[InterviewTask]) -> None:
    board = build_task_board(tasks)
    counts = board.counts()
    console.print(
        f"\n[bold]Interview Tasks[/bold] "
        f"({counts['needs_action']} need action, {counts['scheduled']} scheduled, "
        f"{counts['blocked']} blocked, {counts['completed']} completed)\n"
    )
    if not tasks:
        console.print("[yellow]No interview tasks.[/yellow]")
        return

    table = Table()
    table.add_column("Stage")
    table.add_column("Task", style="bold")
    table.add_column("Status")
    table.add_column("Next")
    for task in tasks:
        style = _STAGE_STYLE[task.stage]
        status = task.subtitle
        if task.blockers:
            status += "\n" + "\n".join(f"[red]{b}[/red]" for b in task.blockers)
        table.add_row(
            f"[{style}]{task.stage.value}[/{style}]",
            task.title,
            status,
            _action_summary(task),
        )
    console.print(table)


def tasks_command(
    session: Session,
    scope: TaskScope = TaskScope.ALL,
    state: StateFilter = StateFilter.ALL,
    view: TaskView | None = None,
    format: str = "human",
) -> int:
    """List interview tasks for the acting user.

    Returns:
        Exit code (0 = success, 1 = error).
    """
    actor = _require_actor(session, format)
    if actor is None:
        return 1
    try:
        with _open_store(session.config) as store:
            tasks = InterviewCommands(store, session.config).list_interview_tasks(
                actor.role,
                actor.user_id,
                chapter_id=actor.chapter_id,
                scope=scope,
                state=state,
                view=view,
            )
    except SchedulingError as e:
        _print_error(e.message, format)
        return 1

    if format == "json":
        print(json.dumps([t.model_dump(mode="json") for t in tasks], indent=2))
    elif format == "jsonl":
        for task in tasks:
            print(task.model_dump_json())
    else:
        _render_tasks(tasks)
    return 0


def _render_events(events: list[AuditEvent]) -> None:
    if not events:
        console.print("[yellow]No audit events found.[/yellow]")
        return
    table = Table(title="Audit Trail")
    table.add_column("Time", style="dim")
    table.add_column("Event", style="cyan")
    table.add_column("Actor")
    table.add_column("Owner")
    table.add_column("Subject")
    for event in events:
        owner = f"{event.owner_kind.value}:{event.owner_id}" if event.owner_kind else "-"
        table.add_row(
            event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            event.event_type.value,
            f"{event.actor_id} ({event.actor_role.value})",
            owner,
            event.subject_id or "-",
        )
    console.print(table)


def audit_command(
    session: Session,
    owner: OwnerRef | None = None,
    event_type: EventType | None = None,
    limit: int | None = None,
    format: str = "human",
) -> int:
    """Show the audit trail, oldest first; a limit keeps the most recent events."""
    filter = AuditFilter(
        event_type=event_type,
        owner_kind=owner.kind if owner else None,
        owner_id=owner.id if owner else None,
        limit=limit,
    )
    with _open_store(session.config) as store:
        events = store.query_events(filter)

    if format == "json":
        print(json.dumps([e.model_dump(mode="json") for e in events], indent=2))
    elif format == "jsonl":
        for event in events:
            print(event.model_dump_json())
    else:
        _render_events(events)
    return 0
