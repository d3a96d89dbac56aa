"""Interactive CLI application."""
from datetime import date, timedelta
from pathlib import Path

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from studybloom.analytics import (
    calc_weekly_trends, get_daily_stats, get_study_heatmap, get_study_stats,
    log_pomodoro_completion,
)
from studybloom.calendar_view import (
    FREE_DAY, GOAL_ACHIEVED, MISSED, NOT_STARTED, PARTIAL_PROGRESS, build_month_grid,
)
from studybloom.db import DEFAULT_DB_PATH, get_setting, init_db, set_setting
from studybloom.flashcards import add_flashcard, get_due_cards, record_flashcard_result
from studybloom.models import StudyPlan
from studybloom.planner import InvalidPlanError, is_free_day, tasks_for_day, validate_plan
from studybloom.sm2 import button_quality
from studybloom.tracker import (
    add_chapter, choose_log_target, create_default_plan, get_chapters, get_logs, get_plan,
    log_progress, recompute_schedule, save_plan, toggle_free_day,
)

console = Console()

WEEKDAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

STATE_STYLE = {
    FREE_DAY: "blue",
    NOT_STARTED: "white",
    MISSED: "red",
    PARTIAL_PROGRESS: "yellow",
    GOAL_ACHIEVED: "green",
}


class SessionExitRequested(Exception):
    """Raised when the user types q/menu at a prompt to abandon the command."""


EXIT_WORDS = ("q", "menu")


def session_prompt(text: str, **kwargs) -> str:
    answer = Prompt.ask(text, **kwargs)
    if answer is not None and answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(text: str, choices: list[str] | None = None, default=None) -> int:
    while True:
        answer = session_prompt(text, choices=choices, default=default)
        try:
            return int(answer)
        except (TypeError, ValueError):
            console.print("[red]Please enter a number.[/red]")


def show_welcome():
    console.print(Panel(
        "[bold]StudyBloom[/bold]\n[dim]Chapter tracker & study planner[/dim]",
        title="Welcome", border_style="magenta",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("today", "Today's goal"),
        ("calendar", "Month calendar"),
        ("schedule", "Upcoming study days"),
        ("log", "Log pages studied"),
        ("free", "Toggle a free day"),
        ("chapters", "Chapter progress"),
        ("add", "Add a chapter"),
        ("plan", "Daily goal & free weekdays"),
        ("flashcards", "Review due flashcards"),
        ("pomodoro", "Record a finished focus session"),
        ("stats", "Streaks & weekly trends"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def _task_line(task) -> str:
    return (
        f"[{task.color_hex}]■[/{task.color_hex}] {task.chapter_title}: "
        f"pages {task.start_page}-{task.end_page} ({task.pages_to_read} pages)"
    )


def cmd_today(db_path: str, today: date | None = None):
    today = today or date.today()
    chapters, plan, logs = get_chapters(db_path), get_plan(db_path), get_logs(db_path)
    schedule = recompute_schedule(db_path, today=today)
    tasks = tasks_for_day(schedule, today)
    if tasks:
        body = "\n".join(_task_line(t) for t in tasks)
    elif is_free_day(today, plan, logs):
        body = "[blue]Free day. Enjoy your rest![/blue]"
    elif not chapters:
        body = "[dim]Add chapters to start planning.[/dim]"
    elif all(c.is_complete for c in chapters):
        body = "[green]All chapters finished![/green]"
    elif any(log.date == today and not log.is_free_day for log in logs):
        body = "[green]Daily goal done. See you tomorrow![/green]"
    else:
        body = "[dim]No tasks scheduled.[/dim]"
    console.print(Panel(body, title=f"Today's Goal, {today:%a %d %b}", border_style="magenta"))


def cmd_schedule(db_path: str, days: int = 14, today: date | None = None):
    today = today or date.today()
    schedule = recompute_schedule(db_path, today=today)
    if not schedule:
        console.print("[yellow]Nothing scheduled. Add chapters or set up a plan.[/yellow]")
        return
    table = Table(title="Upcoming Study Days")
    table.add_column("Date")
    table.add_column("Chapter", style="cyan")
    table.add_column("Pages", justify="right")
    for day in sorted(schedule)[:days]:
        for task in schedule[day]:
            table.add_row(
                f"{day:%a %d %b}", task.chapter_title,
                f"{task.start_page}-{task.end_page} ({task.pages_to_read})",
            )
    console.print(table)
    last_day = max(schedule)
    console.print(f"[dim]Finishes on {last_day:%a %d %b %Y}[/dim]")


def cmd_calendar(db_path: str, today: date | None = None):
    today = today or date.today()
    chapters, plan, logs = get_chapters(db_path), get_plan(db_path), get_logs(db_path)
    schedule = recompute_schedule(db_path, today=today)
    grid = build_month_grid(today.year, today.month, schedule, logs, chapters, plan, today=today)
    table = Table(title=f"{today:%B %Y}")
    for name in WEEKDAY_NAMES:
        table.add_column(name, justify="center")
    for week in grid:
        cells = []
        for info in week:
            if info is None:
                cells.append("")
                continue
            style = STATE_STYLE.get(info.state, "dim")
            label = f"[{style}]{info.date.day}[/{style}]"
            if info.date == today:
                label = f"[reverse]{label}[/reverse]"
            cells.append(label)
        table.add_row(*cells)
    console.print(table)
    console.print(
        "[green]goal[/green]  [yellow]partial[/yellow]  [red]missed[/red]  "
        "[blue]free[/blue]  [white]planned[/white]"
    )


def _ask_day(text: str) -> date:
    raw = session_prompt(text, default=date.today().isoformat())
    return date.fromisoformat(raw)


def cmd_log(db_path: str):
    chapters = get_chapters(db_path)
    if not chapters:
        console.print("[yellow]Add a chapter first.[/yellow]")
        return
    day = _ask_day("Day (YYYY-MM-DD)")
    schedule = recompute_schedule(db_path)
    chapter = choose_log_target(day, schedule, chapters)
    if chapter is None:
        console.print("[green]Every chapter is already finished.[/green]")
        return
    console.print(
        f"Logging [cyan]{chapter.title}[/cyan]: "
        f"{chapter.pages_studied}/{chapter.total_pages} pages so far"
    )
    pages = session_int_prompt("Pages studied", default="0")
    log = log_progress(db_path, chapter.id, chapter.pages_studied + pages, day=day)
    if log:
        console.print(f"[green]Logged {log.pages_learned} pages.[/green]")
    else:
        console.print("[dim]No new pages logged.[/dim]")


def cmd_free(db_path: str):
    day = _ask_day("Day to toggle (YYYY-MM-DD)")
    if toggle_free_day(db_path, day):
        console.print(f"[blue]{day:%a %d %b} is now a free day.[/blue]")
    else:
        console.print(f"[cyan]{day:%a %d %b} is a study day again.[/cyan]")


def cmd_chapters(db_path: str):
    chapters = get_chapters(db_path)
    if not chapters:
        console.print("[yellow]No chapters yet. Use 'add'.[/yellow]")
        return
    table = Table(title="Chapters")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Progress", justify="right")
    table.add_column("")
    for i, c in enumerate(chapters, 1):
        filled = int(20 * min(c.pages_studied, c.total_pages) / c.total_pages) if c.total_pages else 0
        bar = f"[{c.color_hex}]{'█' * filled}{'░' * (20 - filled)}[/{c.color_hex}]"
        table.add_row(str(i), c.title, f"{c.pages_studied}/{c.total_pages}", bar)
    console.print(table)


def cmd_add(db_path: str):
    title = session_prompt("Chapter title").strip()
    if not title:
        console.print("[red]Title is required.[/red]")
        return
    total = session_int_prompt("Total pages")
    if total <= 0:
        console.print("[red]Total pages must be positive.[/red]")
        return
    color = session_prompt("Color (hex)", default="#FFB3BA")
    chapter = add_chapter(db_path, title, total, color_hex=color)
    console.print(f"[green]Added {chapter.title} ({chapter.total_pages} pages).[/green]")


def cmd_plan(db_path: str):
    plan = create_default_plan(db_path)
    free = ", ".join(WEEKDAY_NAMES[d - 1] for d in sorted(plan.free_days)) or "none"
    console.print(f"Daily goal: [bold]{plan.daily_page_goal}[/bold] pages  |  Free days: [bold]{free}[/bold]")
    goal = session_int_prompt("Daily page goal", default=str(plan.daily_page_goal))
    raw = session_prompt("Free weekdays (e.g. Sat,Sun; blank for none)", default="")
    names = [n.strip().title()[:3] for n in raw.split(",") if n.strip()]
    unknown = [n for n in names if n not in WEEKDAY_NAMES]
    if unknown:
        console.print(f"[red]Unknown weekday(s): {', '.join(unknown)}[/red]")
        return
    free_days = frozenset(WEEKDAY_NAMES.index(n) + 1 for n in names)
    new_plan = StudyPlan(daily_page_goal=goal, start_date=plan.start_date, free_days=free_days)
    try:
        validate_plan(new_plan)
    except InvalidPlanError as e:
        console.print(f"[red]{e}[/red]")
        return
    save_plan(db_path, new_plan)
    console.print("[green]Plan saved.[/green]")


def run_flashcard_session(db_path: str, cards: list) -> int:
    if not cards:
        console.print("[yellow]No flashcards due right now![/yellow]")
        return 0
    console.print(f"\n[bold]Flashcard Review[/bold] ({len(cards)} cards)\n")
    reviewed = 0
    for i, card in enumerate(cards, 1):
        console.print(Panel(card.front, title=f"Card {i}/{len(cards)}", border_style="cyan"))
        session_prompt("[dim]Press Enter to reveal answer[/dim]", default="")
        console.print(Panel(card.back, border_style="green"))
        button = session_prompt("How did it go?", choices=["again", "easy"])
        record_flashcard_result(db_path, card.id, button_quality(button))
        reviewed += 1
        console.print()
    return reviewed


def cmd_flashcards(db_path: str):
    if session_prompt("Review or add?", choices=["review", "add"], default="review") == "add":
        front = session_prompt("Front")
        back = session_prompt("Back")
        add_flashcard(db_path, front, back)
        console.print("[green]Card added.[/green]")
        return
    run_flashcard_session(db_path, get_due_cards(db_path))


def cmd_pomodoro(db_path: str):
    default_minutes = get_setting(db_path, "pomodoro_minutes", "25")
    minutes = session_int_prompt("Focus minutes", default=default_minutes)
    set_setting(db_path, "pomodoro_minutes", str(minutes))
    log_pomodoro_completion(db_path, duration=minutes * 60)
    console.print(f"[green]Recorded a {minutes}-minute focus session.[/green]")


def cmd_stats(db_path: str, today: date | None = None):
    today = today or date.today()
    stats = get_study_stats(db_path, today=today)
    console.print(Panel(
        f"Current streak: [bold]{stats['current_streak']}[/bold] days  |  "
        f"Longest: [bold]{stats['longest_streak']}[/bold] days\n"
        f"Pages: [bold]{stats['total_pages']}[/bold]  |  "
        f"Study time: [bold]{stats['total_study_time'] / 3600:.1f}[/bold] h  |  "
        f"Pomodoros: [bold]{stats['pomodoro_sessions']}[/bold]  |  "
        f"Cards: [bold]{stats['flashcards_reviewed']}[/bold]",
        title="Study Stats", border_style="blue",
    ))
    daily = get_daily_stats(db_path)
    trends = calc_weekly_trends(daily)[:4]
    if trends:
        table = Table(title="Weekly Trends")
        table.add_column("Week of")
        table.add_column("Pages", justify="right")
        table.add_column("Days", justify="right")
        table.add_column("Avg/day", justify="right")
        for week in trends:
            table.add_row(f"{week.week_start:%d %b}", str(week.total_pages),
                          str(week.days_studied), f"{week.average_per_day}")
        console.print(table)
    heatmap = get_study_heatmap(daily, today=today, days=28)
    cells = []
    for offset in range(27, -1, -1):
        pages = heatmap[today - timedelta(days=offset)]
        cells.append("[green]█[/green]" if pages else "[dim]░[/dim]")
    console.print("Last 4 weeks: " + "".join(cells))


def main():
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    logger.remove()
    logger.add(Path(db_path).parent / "studybloom.log", level="INFO", rotation="1 MB")
    create_default_plan(db_path)
    show_welcome()

    commands = {
        "today": cmd_today,
        "calendar": cmd_calendar,
        "schedule": cmd_schedule,
        "log": cmd_log,
        "free": cmd_free,
        "chapters": cmd_chapters,
        "add": cmd_add,
        "plan": cmd_plan,
        "flashcards": cmd_flashcards,
        "pomodoro": cmd_pomodoro,
        "stats": cmd_stats,
    }
    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="today").strip().lower()
        if choice in ("quit", "exit", "q"):
            console.print("[dim]Happy studying![/dim]")
            break
        command = commands.get(choice)
        if command is None:
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        try:
            command(db_path)
        except SessionExitRequested:
            console.print("[dim]Back to menu.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command {} failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
