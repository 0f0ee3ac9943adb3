"""Interactive CLI application."""
import logging
import os
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from study_planner.dashboard import get_dashboard_stats, get_subject_progress, get_weekly_analytics, save_weekly_report
from study_planner.db import DEFAULT_DB_PATH, init_db
from study_planner.exceptions import PlannerError
from study_planner.importer import import_file
from study_planner.models import DEFAULT_DAYS_UNTIL_EXAM, MAX_CONFIDENCE, MIN_CONFIDENCE, SessionType, Strength, StudySlot
from study_planner.readiness import get_readiness_color, get_readiness_label
from study_planner.recovery import rebalance_after_missed
from study_planner.review import (
    get_revision_history, get_revision_summary_for_topics, get_weak_topics, rate_topic, record_revision,
)
from study_planner.study import (
    complete_session, delete_exam, generate_schedule_for_date, get_active_exam, get_days_until_exam,
    get_missed_minutes, get_profile, get_sessions_for_date, mark_missed_sessions, set_exam,
    skip_session, start_session, update_profile,
)
from study_planner.topics import (
    add_subject, add_topic, delete_subject, delete_topic, get_subject, get_subject_by_name,
    get_subjects_with_topics, get_topic, update_topic,
)
from study_planner.videos import build_search_query, get_cached_videos, get_topic_videos

logger = logging.getLogger(__name__)

console = Console()

SESSION_COLORS = {
    SessionType.LEARNING: "cyan",
    SessionType.REVISION: "magenta",
    SessionType.RECALL: "yellow",
}
STATUS_COLORS = {
    "scheduled": "white",
    "in_progress": "cyan",
    "completed": "green",
    "missed": "red",
    "skipped": "dim",
}
CONFIDENCE_CHOICES = [str(c) for c in range(MIN_CONFIDENCE, MAX_CONFIDENCE + 1)]
MISSED_LOOKBACK_DAYS = 7


class SessionExitRequested(Exception):
    """Raised when the student types 'q' or 'menu' in the middle of a study run."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in ("q", "menu"):
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str] | None = None, default: int | None = None) -> int:
    while True:
        kwargs = {}
        if default is not None:
            kwargs["default"] = str(default)
        answer = session_prompt(prompt, **kwargs).strip()
        if answer.isdigit() and (choices is None or answer in choices):
            return int(answer)
        hint = f" ({', '.join(choices)})" if choices else ""
        console.print(f"[red]Please enter a number{hint}.[/red]")


def configure_logging() -> None:
    level = os.environ.get("STUDY_PLANNER_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(name)s - %(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def show_welcome():
    console.print(Panel(
        "[bold]Study Planner[/bold]\n[dim]Daily schedules, revision and exam readiness[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("plan", "Generate today's schedule"),
        ("schedule", "Show today's sessions"),
        ("study", "Work through today's sessions"),
        ("subjects", "List subjects and topics"),
        ("add", "Add a subject or topic"),
        ("edit", "Edit or delete a topic, subject or exam"),
        ("topic", "Topic details, revisions and videos"),
        ("exam", "Set the exam date"),
        ("dashboard", "Readiness + progress"),
        ("revisions", "Revision summary and weak topics"),
        ("recover", "Catch-up plan for missed sessions"),
        ("import", "Import subjects/topics from a file"),
        ("settings", "Study hours, pomodoro and slot"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def _session_table(sessions: list[dict], title: str) -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Time")
    table.add_column("Topic", style="bold")
    table.add_column("Subject")
    table.add_column("Type")
    table.add_column("Min", justify="right")
    table.add_column("Priority", justify="right")
    table.add_column("Status")
    table.add_column("Why", style="dim")
    for s in sessions:
        kind = SessionType(s["session_type"])
        color = SESSION_COLORS[kind]
        status_color = STATUS_COLORS.get(s["status"], "white")
        table.add_row(
            str(s["id"]),
            datetime.fromisoformat(s["scheduled_at"]).strftime("%H:%M"),
            s["topic_name"],
            s["subject_name"],
            f"[{color}]{kind.value}[/{color}]",
            str(s["planned_duration_minutes"]),
            str(s["priority_score"]),
            f"[{status_color}]{s['status']}[/{status_color}]",
            s["reason"] or "",
        )
    return table


def cmd_plan(db_path: str):
    now = datetime.now()
    sessions = generate_schedule_for_date(db_path, now.date(), now)
    console.print(_session_table(sessions, f"Schedule for {now.date():%A %d %b}"))
    total = sum(s["planned_duration_minutes"] for s in sessions)
    console.print(f"\n  [bold]{len(sessions)}[/bold] sessions, [bold]{total}[/bold] minutes planned")


def cmd_schedule(db_path: str):
    today = date.today()
    sessions = get_sessions_for_date(db_path, today)
    if not sessions:
        console.print("[yellow]Nothing scheduled today. Use 'plan' to generate a schedule.[/yellow]")
        return
    console.print(_session_table(sessions, f"Schedule for {today:%A %d %b}"))


def run_study_session(db_path: str, session: dict) -> None:
    """Walk one scheduled session: start or skip, log minutes, then re-rate the topic."""
    kind = SessionType(session["session_type"])
    color = SESSION_COLORS[kind]
    console.print(Panel(
        f"[bold]{session['topic_name']}[/bold] ({session['subject_name']})\n"
        f"[{color}]{kind.value}[/{color}] for {session['planned_duration_minutes']} minutes\n"
        f"[dim]{session['reason'] or ''}[/dim]",
        title=f"Session {session['id']}", border_style=color,
    ))
    answer = session_prompt("[dim]Enter to start, 's' to skip[/dim]", default="")
    if answer.strip().lower() == "s":
        skip_session(db_path, session["id"])
        if kind is not SessionType.LEARNING:
            record_revision(
                db_path, session["topic_id"], completed=False, skipped=True, now=datetime.now(),
                session_id=session["id"], revision_type=kind.value,
            )
        console.print("[dim]Skipped.[/dim]\n")
        return

    start_session(db_path, session["id"], datetime.now())
    minutes = session_int_prompt("Minutes studied", default=session["planned_duration_minutes"])
    now = datetime.now()
    complete_session(db_path, session["id"], minutes, now)
    if kind is SessionType.LEARNING:
        confidence = session_int_prompt("How confident are you now? (1-5)", choices=CONFIDENCE_CHOICES)
        next_days = rate_topic(db_path, session["topic_id"], confidence, now)
        console.print(f"[green]Logged {minutes} minutes. Next revision in {next_days} days.[/green]\n")
    else:
        update = record_revision(
            db_path, session["topic_id"], completed=True, skipped=False, now=now,
            session_id=session["id"], revision_type=kind.value,
        )
        console.print(
            f"[green]Revision done! Confidence {update.new_confidence}/5, "
            f"next revision in {update.next_revision_days} days.[/green]\n"
        )


def cmd_study(db_path: str):
    pending = [
        s for s in get_sessions_for_date(db_path, date.today())
        if s["status"] in ("scheduled", "in_progress")
    ]
    if not pending:
        console.print("[yellow]No sessions left today. Use 'plan' to generate a schedule.[/yellow]")
        return
    console.print(f"\n[bold]Study Run[/bold] - {len(pending)} sessions [dim](type 'q' to stop)[/dim]\n")
    try:
        for session in pending:
            run_study_session(db_path, session)
    except SessionExitRequested:
        console.print("[dim]Stopped. Remaining sessions stay scheduled.[/dim]")
        return
    console.print("[green]All sessions for today are done![/green]")


def cmd_subjects(db_path: str):
    subjects = get_subjects_with_topics(db_path)
    if not subjects:
        console.print("[yellow]No subjects yet. Use 'add' or 'import'.[/yellow]")
        return
    for subject in subjects:
        table = Table(title=f"{subject.name} [dim]({subject.strength.value})[/dim]", title_justify="left")
        table.add_column("ID", justify="right")
        table.add_column("Topic")
        table.add_column("Confidence", justify="right")
        table.add_column("Hours", justify="right")
        table.add_column("Priority", justify="right")
        table.add_column("Next revision")
        for topic in subject.topics:
            name = f"[strike]{topic.name}[/strike]" if topic.is_completed else topic.name
            table.add_row(
                str(topic.id),
                name,
                f"{topic.confidence_level}/5",
                f"{topic.completed_hours:.1f}/{topic.estimated_hours:.1f}",
                str(topic.priority_score),
                topic.next_revision_at.strftime("%d %b") if topic.next_revision_at else "-",
            )
        console.print(table)


def cmd_add(db_path: str):
    kind = Prompt.ask("Add", choices=["subject", "topic"], default="topic")
    if kind == "subject":
        name = Prompt.ask("Subject name").strip()
        strength = Prompt.ask("Strength", choices=[s.value for s in Strength], default=Strength.AVERAGE.value)
        add_subject(db_path, name, strength)
        console.print(f"[green]Saved subject {name}.[/green]")
        return
    subject_name = Prompt.ask("Subject").strip()
    subject = get_subject_by_name(db_path, subject_name)
    if subject is None:
        console.print(f"[red]No subject named {subject_name}. Add it first.[/red]")
        return
    name = Prompt.ask("Topic name").strip()
    hours = float(Prompt.ask("Estimated hours", default="1"))
    confidence = int(Prompt.ask("Confidence (1-5)", choices=CONFIDENCE_CHOICES, default="1"))
    add_topic(db_path, subject["id"], name, hours, confidence)
    console.print(f"[green]Added {name} to {subject_name}.[/green]")


def _confirm(question: str) -> bool:
    return Prompt.ask(question, choices=["y", "n"], default="n") == "y"


def cmd_edit(db_path: str):
    target = Prompt.ask("Edit", choices=["topic", "subject", "exam"], default="topic")
    if target == "subject":
        name = Prompt.ask("Subject").strip()
        subject = get_subject_by_name(db_path, name)
        if subject is None:
            console.print(f"[red]No subject named {name}.[/red]")
            return
        if _confirm(f"Delete {name} and all its topics?"):
            delete_subject(db_path, subject["id"])
            console.print(f"[green]Deleted {name}.[/green]")
        return
    if target == "exam":
        exam = get_active_exam(db_path)
        if exam is None:
            console.print("[yellow]No exam date set.[/yellow]")
            return
        if _confirm(f"Delete {exam['name']} on {exam['exam_date']}?"):
            delete_exam(db_path, exam["id"])
            console.print(f"[green]Deleted {exam['name']}.[/green]")
        return

    topic = get_topic(db_path, int(Prompt.ask("Topic ID")))
    action = Prompt.ask("Action", choices=["edit", "delete"], default="edit")
    if action == "delete":
        if _confirm(f"Delete {topic.name}?"):
            delete_topic(db_path, topic.id)
            console.print(f"[green]Deleted {topic.name}.[/green]")
        return
    name = Prompt.ask("Topic name", default=topic.name)
    hours = float(Prompt.ask("Estimated hours", default=str(topic.estimated_hours)))
    notes = Prompt.ask("Notes", default=topic.notes)
    topic = update_topic(db_path, topic.id, name=name, estimated_hours=hours, notes=notes)
    console.print(f"[green]Saved {topic.name} ({topic.estimated_hours:.1f}h).[/green]")


def cmd_topic(db_path: str, fetch: Callable[[str], list[dict]] | None = None):
    """Topic details, recent revisions and video suggestions.

    Without a ``fetch`` callable only cached videos are shown.
    """
    topic = get_topic(db_path, int(Prompt.ask("Topic ID")))
    subject = get_subject(db_path, topic.subject_id)
    now = datetime.now()
    next_revision = topic.next_revision_at.strftime("%d %b") if topic.next_revision_at else "-"
    console.print(Panel(
        f"[bold]{topic.name}[/bold] ({subject['name']})\n"
        f"Confidence {topic.confidence_level}/5  |  "
        f"{topic.completed_hours:.1f}/{topic.estimated_hours:.1f} hours  |  "
        f"revised {topic.revision_count} times\n"
        f"Next revision: {next_revision}",
        title=f"Topic {topic.id}", border_style="blue",
    ))
    if topic.notes:
        console.print(f"[dim]{topic.notes}[/dim]")

    history = get_revision_history(db_path, topic.id, limit=5)
    if history:
        table = Table(title="Recent revisions")
        table.add_column("When")
        table.add_column("Type")
        table.add_column("Confidence", justify="right")
        table.add_column("Result")
        for h in history:
            result = "skipped" if h["skipped"] else "done" if h["completed"] else "-"
            table.add_row(
                h["created_at"][:10], h["revision_type"],
                f"{h['confidence_before']} -> {h['confidence_after']}", result,
            )
        console.print(table)

    if fetch is not None:
        exam = get_active_exam(db_path)
        query = build_search_query(topic.name, subject["name"], exam["name"] if exam else None)
        videos = get_topic_videos(db_path, topic.id, query, fetch, now)
    else:
        videos = get_cached_videos(db_path, topic.id, now) or []
    if not videos:
        console.print("[dim]No video suggestions cached for this topic.[/dim]")
        return
    console.print("\n[bold]Videos:[/bold]")
    for v in videos:
        console.print(f"  [cyan]{v.get('title', '')}[/cyan] [dim]({v.get('duration', '')})[/dim] {v.get('url', '')}")


def cmd_exam(db_path: str):
    exam = get_active_exam(db_path)
    if exam:
        console.print(f"Current exam: [bold]{exam['name']}[/bold] on {exam['exam_date']}")
    name = Prompt.ask("Exam name", default=exam["name"] if exam else "Final exam")
    raw = Prompt.ask("Exam date (YYYY-MM-DD)")
    try:
        exam_date = date.fromisoformat(raw.strip())
    except ValueError:
        console.print(f"[red]Not a date: {raw}[/red]")
        return
    set_exam(db_path, name, exam_date)
    days = get_days_until_exam(db_path, date.today())
    console.print(f"[green]{name} set for {exam_date:%d %b %Y} ({days} days away).[/green]")


def cmd_dashboard(db_path: str):
    today = date.today()
    stats = get_dashboard_stats(db_path, today)
    readiness = stats["readiness"]
    color = get_readiness_color(readiness.status)
    label = get_readiness_label(readiness.status)

    if stats["exam_name"]:
        header = f"{stats['exam_name']} in {stats['days_until_exam']} days"
    else:
        header = "No exam date set"
    console.print(Panel(f"[bold]{header}[/bold]", title="Exam Readiness Dashboard", border_style="blue"))

    bar_filled = int(readiness.percentage / 5)
    bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
    console.print(f"\n  Readiness: [bold]{readiness.percentage}%[/bold] {bar} [{color}]{label}[/{color}]")
    console.print(f"  [dim]{readiness.message}[/dim]\n")

    table = Table(title="Subjects")
    table.add_column("Subject", style="cyan")
    table.add_column("Topics", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Avg confidence", justify="right")
    for sp in get_subject_progress(db_path):
        table.add_row(sp["name"], f"{sp['completed']}/{sp['topics']}", f"{sp['progress']}%", str(sp["avg_confidence"]))
    console.print(table)

    week = Table(title="This Week")
    week.add_column("Day")
    week.add_column("Planned", justify="right")
    week.add_column("Done", justify="right")
    for day in get_weekly_analytics(db_path, today):
        week.add_row(day["day"], str(day["planned"]), str(day["completed"]))
    console.print(week)

    console.print(f"\n  Streak: [bold]{stats['streak']}[/bold] (best {stats['longest_streak']})  |  "
                  f"This week: [bold]{stats['weekly_hours']}h[/bold]  |  "
                  f"Today: [bold]{stats['today_completed']}/{stats['today_planned']}[/bold] min")
    save_weekly_report(db_path, today, datetime.now())


def cmd_revisions(db_path: str):
    summary = get_revision_summary_for_topics(db_path, datetime.now())
    table = Table(title="Revisions")
    table.add_column("Bucket")
    table.add_column("Count", justify="right")
    table.add_column("Topics", style="dim")
    for label, topics, color in (
        ("Overdue", summary.overdue, "red"),
        ("Upcoming (7 days)", summary.upcoming, "yellow"),
        ("Pending", summary.pending, "white"),
        ("Done this week", summary.completed_this_week, "green"),
    ):
        table.add_row(f"[{color}]{label}[/{color}]", str(len(topics)), ", ".join(t.name for t in topics[:5]))
    console.print(table)

    weak = get_weak_topics(db_path)
    if weak:
        console.print("\n[bold]Weakest topics:[/bold]")
        for w in weak[:5]:
            console.print(f"  [red]{w['confidence_level']}/5[/red] {w['topic_name']} ({w['subject_name']})")


def cmd_recover(db_path: str):
    today = date.today()
    newly_missed = mark_missed_sessions(db_path, today)
    missed = get_missed_minutes(db_path, today - timedelta(days=MISSED_LOOKBACK_DAYS))
    days_left = get_days_until_exam(db_path, today)
    profile = get_profile(db_path)
    if days_left is None:
        days_left = DEFAULT_DAYS_UNTIL_EXAM
    plan = rebalance_after_missed(missed, days_left, profile.daily_study_minutes)
    if newly_missed:
        console.print(f"[dim]{newly_missed} past sessions marked as missed.[/dim]")
    console.print(Panel(
        f"Missed in the last {MISSED_LOOKBACK_DAYS} days: [bold]{missed}[/bold] minutes\n"
        f"Extra per day: [bold]{plan.extra_minutes_per_day}[/bold] min for "
        f"[bold]{plan.days_to_recover}[/bold] days\n\n{plan.message}",
        title="Recovery Plan", border_style="yellow",
    ))


def cmd_import(db_path: str):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_file(db_path, file_path)
    console.print(
        f"[green]Imported {result['filename']}: {result['subjects']} subjects, "
        f"{result['topics']} topics ({result['skipped']} already present)[/green]"
    )


def cmd_settings(db_path: str):
    profile = get_profile(db_path)
    hours = float(Prompt.ask("Daily study hours", default=str(profile.daily_study_hours)))
    work = int(Prompt.ask("Pomodoro work minutes", default=str(profile.pomodoro_work_minutes)))
    rest = int(Prompt.ask("Pomodoro break minutes", default=str(profile.pomodoro_break_minutes)))
    slot = Prompt.ask(
        "Preferred study slot", choices=[s.value for s in StudySlot], default=profile.preferred_study_slot.value,
    )
    profile = update_profile(
        db_path,
        daily_study_hours=hours,
        pomodoro_work_minutes=work,
        pomodoro_break_minutes=rest,
        preferred_study_slot=slot,
    )
    console.print(f"[green]Saved: {profile.daily_study_minutes} minutes a day, starting in the {slot}.[/green]")


COMMANDS = {
    "plan": cmd_plan,
    "schedule": cmd_schedule,
    "study": cmd_study,
    "subjects": cmd_subjects,
    "add": cmd_add,
    "edit": cmd_edit,
    "topic": cmd_topic,
    "exam": cmd_exam,
    "dashboard": cmd_dashboard,
    "revisions": cmd_revisions,
    "recover": cmd_recover,
    "import": cmd_import,
    "settings": cmd_settings,
}


def main(db_path: str = DEFAULT_DB_PATH):
    configure_logging()
    init_db(db_path)
    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="schedule").strip().lower()
        if choice in ("quit", "exit", "q"):
            console.print("[dim]Good luck on your exam![/dim]")
            break
        command = COMMANDS.get(choice)
        if command is None:
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        try:
            command(db_path)
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except PlannerError as e:
            console.print(f"[red]{e.message}[/red]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
