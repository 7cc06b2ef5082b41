"""Interactive CLI application."""
import logging
from datetime import date

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from practice_tracker.attempts import (
    delete_attempt, list_attempts, record_attempt, renumber_attempts, update_attempt,
)
from practice_tracker.config import DEFAULT_DB_PATH, PROBLEM_KINDS, UPCOMING_HORIZON_DAYS
from practice_tracker.dashboard import attempt_matrix, group_by_due, list_due, list_upcoming
from practice_tracker.db import init_db
from practice_tracker.errors import TrackerError
from practice_tracker.models import Result, as_date, check_minutes, check_score
from practice_tracker.ordering import check_problem_key, problem_label
from practice_tracker.seed import is_seeded, seed_all
from practice_tracker.settings import get_int_setting, get_setting, set_setting
from practice_tracker.store import (
    add_series, add_subject, delete_problem, delete_series, get_or_create_series,
    get_subject, list_problems, list_series, list_subjects, move_series, move_subject,
)
from practice_tracker.status import compute_status

console = Console()

RESULT_STYLES = {Result.GOOD: "green", Result.FAIR: "yellow", Result.POOR: "red"}


class EntryCancelled(Exception):
    """Raised when the user types 'q' or 'menu' in the middle of an entry."""


def ask(prompt_text: str, **kwargs) -> str:
    """Prompt.ask wrapper that raises EntryCancelled on 'q' or 'menu'."""
    response = Prompt.ask(prompt_text, **kwargs)
    if response is not None and response.strip().lower() in ("q", "menu"):
        raise EntryCancelled()
    return response


def ask_int(prompt_text: str, default: int | None = None) -> int | None:
    """Integer prompt that allows a blank answer (returns default) and cancellation."""
    while True:
        response = ask(prompt_text, default="" if default is None else str(default), show_default=default is not None)
        if not response.strip():
            return default
        try:
            return int(response)
        except ValueError:
            console.print("[red]Please enter a whole number.[/red]")


def ask_number(prompt_text: str) -> float | None:
    while True:
        response = ask(prompt_text, default="", show_default=False)
        if not response.strip():
            return None
        try:
            return float(response)
        except ValueError:
            console.print("[red]Please enter a number.[/red]")


def configure_logging(db_path: str) -> None:
    level = get_setting(db_path, "log_level", "WARNING")
    logging.basicConfig(
        level=level.upper(), format="%(message)s", datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def show_welcome():
    console.print(Panel(
        "[bold]Practice Tracker[/bold]\n[dim]Review scheduling for repeated practice[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu(db_path: str):
    subject = current_subject(db_path)
    scope = subject.name if subject else "All subjects"
    console.print(f"\n[bold]Commands:[/bold]  [dim](scope: {scope})[/dim]")
    commands = [
        ("due", "Problems due for review"),
        ("upcoming", "Problems due in the next days"),
        ("record", "Record an attempt"),
        ("matrix", "Attempt grid for a series"),
        ("history", "View and edit a problem's attempts"),
        ("subjects", "List, add, reorder and select subjects"),
        ("series", "List, add, reorder and delete series"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def current_subject(db_path: str):
    subject_id = get_int_setting(db_path, "current_subject_id")
    return get_subject(db_path, subject_id) if subject_id else None


def require_subject(db_path: str):
    subject = current_subject(db_path)
    if subject is None:
        console.print("[yellow]Select a subject first (subjects → select).[/yellow]")
    return subject


def pick_series(db_path: str, subject_id: int):
    series = list_series(db_path, subject_id)
    if not series:
        console.print("[yellow]No series in this subject yet.[/yellow]")
        return None
    for i, s in enumerate(series, 1):
        console.print(f"  [cyan]{i}[/cyan]) {s.name}")
    choice = ask("Series", choices=[str(i) for i in range(1, len(series) + 1)])
    return series[int(choice) - 1]


def pick_problem(db_path: str, series_id: int):
    problems = list_problems(db_path, series_id)
    if not problems:
        console.print("[yellow]No problems recorded in this series.[/yellow]")
        return None
    for i, p in enumerate(problems, 1):
        console.print(f"  [cyan]{i}[/cyan]) {problem_label(p.kind, p.number)}")
    choice = ask("Problem", choices=[str(i) for i in range(1, len(problems) + 1)])
    return problems[int(choice) - 1]


def cmd_due(db_path: str, today: date | None = None):
    subject = current_subject(db_path)
    rows = list_due(db_path, subject.id if subject else None, today=today)
    if not rows:
        console.print("[green]Nothing is due. Well done![/green]")
        return
    table = Table(title="Due for review")
    table.add_column("Subject")
    table.add_column("Series", style="cyan")
    table.add_column("Problem")
    table.add_column("Last #", justify="right")
    table.add_column("Last date")
    table.add_column("Due")
    table.add_column("Overdue", justify="right")
    for r in rows:
        overdue = f"[red]{r.overdue_days}d[/red]" if r.overdue_days else "today"
        table.add_row(
            r.subject_name, r.series_name, r.label, str(r.last_no),
            r.last_date.isoformat(), r.next_due.isoformat(), overdue,
        )
    console.print(table)


def cmd_upcoming(db_path: str, today: date | None = None):
    subject = current_subject(db_path)
    horizon = get_int_setting(db_path, "horizon_days", UPCOMING_HORIZON_DAYS)
    rows = list_upcoming(db_path, subject.id if subject else None, horizon_days=horizon, today=today)
    if not rows:
        console.print(f"[dim]Nothing falls due in the next {horizon} days.[/dim]")
        return
    table = Table(title=f"Upcoming ({horizon} days)")
    table.add_column("Due", style="bold")
    table.add_column("Subject")
    table.add_column("Series", style="cyan")
    table.add_column("Problem")
    table.add_column("Last #", justify="right")
    table.add_column("Last date")
    for due, bucket in group_by_due(rows):
        for i, r in enumerate(bucket):
            table.add_row(
                due.isoformat() if i == 0 else "", r.subject_name, r.series_name,
                r.label, str(r.last_no), r.last_date.isoformat(),
            )
    console.print(table)


def cmd_record(db_path: str):
    subject = require_subject(db_path)
    if subject is None:
        return
    series_name = ask("Series name (e.g. 1-1)")
    kinds = [k.name for k in PROBLEM_KINDS]
    kind = ask("Kind", choices=kinds, default=kinds[0])
    numbered = next(k.numbered for k in PROBLEM_KINDS if k.name == kind)
    number = ask_int("Number") if numbered else None
    done_date = ask("Date", default=date.today().isoformat())
    minutes = ask_number("Minutes (blank to skip)")
    score = ask_number("Score (blank to skip)")
    result = ask("Result (○ good / △ fair / × poor)", choices=[r.value for r in Result], default=Result.GOOD.value)

    number = check_problem_key(kind, number)
    done_date = as_date(done_date)
    result = Result.parse(result)
    minutes = check_minutes(minutes)
    score = check_score(score)
    series_id = get_or_create_series(db_path, subject.id, series_name)
    attempt = record_attempt(db_path, series_id, kind, number, done_date, result, minutes=minutes, score=score)
    console.print(
        f"[green]Recorded {series_name} {problem_label(kind, number)} on "
        f"{attempt.done_date.isoformat()} (attempt {attempt.attempt_no}).[/green]"
    )


def cmd_matrix(db_path: str):
    subject = require_subject(db_path)
    if subject is None:
        return
    series = pick_series(db_path, subject.id)
    if series is None:
        return
    grid = attempt_matrix(db_path, series.id)
    table = Table(title=f"{subject.name} / {series.name}")
    table.add_column("Problem", style="cyan", no_wrap=True)
    for n in grid["columns"]:
        table.add_column(f"#{n}", justify="center")
    for row in grid["rows"]:
        cells = []
        for n in grid["columns"]:
            a = row["cells"].get(n)
            cells.append(f"[{RESULT_STYLES[a.result]}]{a.result.symbol}[/{RESULT_STYLES[a.result]}]" if a else "")
        table.add_row(row["label"], *cells)
    console.print(table)


def show_history(db_path: str, problem) -> list:
    attempts = list_attempts(db_path, problem.id)
    status = compute_status(db_path, problem)
    table = Table(title=problem_label(problem.kind, problem.number))
    table.add_column("#", justify="right")
    table.add_column("Date")
    table.add_column("Minutes", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Result", justify="center")
    for a in attempts:
        table.add_row(
            str(a.attempt_no), a.done_date.isoformat(),
            "" if a.minutes is None else f"{a.minutes:g}",
            "" if a.score is None else f"{a.score:g}",
            f"[{RESULT_STYLES[a.result]}]{a.result.symbol}[/{RESULT_STYLES[a.result]}]",
        )
    console.print(table)
    if status.next_due:
        console.print(f"  Next review: [bold]{status.next_due.isoformat()}[/bold] ({status.state.value})")
    else:
        console.print(f"  [dim]{status.state.value}: not scheduled for review[/dim]")
    return attempts


def pick_attempt(attempts: list):
    attempt_no = ask_int("Attempt #")
    for a in attempts:
        if a.attempt_no == attempt_no:
            return a
    console.print(f"[red]No attempt #{attempt_no}.[/red]")
    return None


def cmd_history(db_path: str):
    subject = require_subject(db_path)
    if subject is None:
        return
    series = pick_series(db_path, subject.id)
    if series is None:
        return
    problem = pick_problem(db_path, series.id)
    if problem is None:
        return
    while True:
        attempts = show_history(db_path, problem)
        action = ask("Action", choices=["edit", "delete", "renumber", "remove-problem", "done"], default="done")
        if action == "done":
            return
        if action == "renumber":
            if Confirm.ask("Renumber attempts 1..n in date order?"):
                renumber_attempts(db_path, problem.id)
        elif action == "remove-problem":
            if Confirm.ask("Delete this problem and its whole history?"):
                delete_problem(db_path, problem.id)
                console.print("[green]Problem deleted.[/green]")
                return
        elif action in ("edit", "delete"):
            attempt = pick_attempt(attempts)
            if attempt is None:
                continue
            if action == "delete":
                if Confirm.ask(f"Delete attempt #{attempt.attempt_no}?"):
                    delete_attempt(db_path, attempt.id)
                continue
            try:
                update_attempt(
                    db_path, attempt.id,
                    attempt_no=ask_int("Attempt #", default=attempt.attempt_no),
                    done_date=ask("Date", default=attempt.done_date.isoformat()),
                    result=ask("Result", choices=[r.value for r in Result], default=attempt.result.value),
                )
            except TrackerError as e:
                console.print(f"[red]{e}[/red]")


def cmd_subjects(db_path: str):
    subjects = list_subjects(db_path)
    selected = get_int_setting(db_path, "current_subject_id")
    table = Table(title="Subjects")
    table.add_column("#", justify="right")
    table.add_column("Name")
    for i, s in enumerate(subjects, 1):
        marker = " ←" if s.id == selected else ""
        table.add_row(str(i), f"{s.name}{marker}")
    console.print(table)
    action = ask("Action", choices=["select", "all", "add", "up", "down", "done"], default="done")
    if action == "done":
        return
    if action == "add":
        subject = add_subject(db_path, ask("Subject name"))
        console.print(f"[green]Added {subject.name}.[/green]")
        return
    if action == "all":
        set_setting(db_path, "current_subject_id", "")
        return
    if not subjects:
        return
    index = ask_int("Subject #")
    if index is None or not 1 <= index <= len(subjects):
        console.print("[red]No such subject.[/red]")
        return
    subject = subjects[index - 1]
    if action == "select":
        set_setting(db_path, "current_subject_id", subject.id)
    else:
        move_subject(db_path, subject.id, -1 if action == "up" else 1)


def cmd_series(db_path: str):
    subject = require_subject(db_path)
    if subject is None:
        return
    series = list_series(db_path, subject.id)
    table = Table(title=f"Series in {subject.name}")
    table.add_column("#", justify="right")
    table.add_column("Name")
    for i, s in enumerate(series, 1):
        table.add_row(str(i), s.name)
    console.print(table)
    action = ask("Action", choices=["add", "up", "down", "delete", "done"], default="done")
    if action == "done":
        return
    if action == "add":
        add_series(db_path, subject.id, ask("Series name"))
        return
    index = ask_int("Series #")
    if index is None or not 1 <= index <= len(series):
        console.print("[red]No such series.[/red]")
        return
    target = series[index - 1]
    if action == "delete":
        if Confirm.ask(f"Delete {target.name} with all its problems and attempts?"):
            delete_series(db_path, target.id)
    else:
        move_series(db_path, target.id, -1 if action == "up" else 1)


COMMANDS = {
    "due": cmd_due,
    "upcoming": cmd_upcoming,
    "record": cmd_record,
    "matrix": cmd_matrix,
    "history": cmd_history,
    "subjects": cmd_subjects,
    "series": cmd_series,
}


def main():
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    configure_logging(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready![/green]\n")

    show_welcome()

    while True:
        show_menu(db_path)
        choice = Prompt.ask("\n[bold]>[/bold]", default="due").strip().lower()
        if choice in ("quit", "exit", "q"):
            console.print("[dim]See you next session![/dim]")
            break
        command = COMMANDS.get(choice)
        if command is None:
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        try:
            command(db_path)
        except EntryCancelled:
            console.print("[dim]Cancelled.[/dim]")
        except TrackerError as e:
            console.print(f"[red]{e}[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")


if __name__ == "__main__":
    main()
