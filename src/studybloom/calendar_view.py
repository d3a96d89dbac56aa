"""Per-day calendar state derived from the schedule and the log history."""
import calendar
from datetime import date

from studybloom.models import Chapter, DailyLog, DayInfo, StudyPlan
from studybloom.planner import is_free_day, logs_for_day, normalize_day, tasks_for_day

DEFAULT_DAILY_GOAL = 10

FREE_DAY = "free_day"
NOT_STARTED = "not_started"
NOT_SCHEDULED = "not_scheduled"
MISSED = "missed"
PARTIAL_PROGRESS = "partial_progress"
GOAL_ACHIEVED = "goal_achieved"

DAY_STATES = (FREE_DAY, NOT_STARTED, NOT_SCHEDULED, MISSED, PARTIAL_PROGRESS, GOAL_ACHIEVED)


def _progress_state(pages: int, goal: int) -> str:
    return GOAL_ACHIEVED if pages >= goal else PARTIAL_PROGRESS


def get_day_info(
    day: date,
    schedule: dict,
    logs: list[DailyLog],
    chapters: list[Chapter],
    plan: StudyPlan | None,
    today: date | None = None,
) -> DayInfo:
    """Classify one calendar day for display.

    Precedence: free day, then future days (planned or not), then today
    and past days by pages logged against the daily goal. A day with no
    scheduled task still counts as progress if the user logged pages.
    """
    day = normalize_day(day)
    today = normalize_day(today or date.today())
    day_logs = logs_for_day(day, logs)
    study_logs = [log for log in day_logs if not log.is_free_day]
    total_logged = sum(log.pages_learned for log in study_logs)
    tasks = tasks_for_day(schedule, day)
    task = tasks[0] if tasks else None
    goal = plan.daily_page_goal if plan else DEFAULT_DAILY_GOAL

    color = title = None
    by_id = {c.id: c for c in chapters}
    logged_chapter = by_id.get(study_logs[0].chapter_id) if study_logs else None
    if logged_chapter is not None:
        color, title = logged_chapter.color_hex, logged_chapter.title
    elif task is not None:
        color, title = task.color_hex, task.chapter_title

    if is_free_day(day, plan, logs):
        state = FREE_DAY
    elif day > today:
        state = NOT_STARTED if task else NOT_SCHEDULED
    elif total_logged >= goal or total_logged > 0:
        state = _progress_state(total_logged, goal)
    else:
        state = MISSED if task else NOT_SCHEDULED

    # Unplanned extra study still shows as progress.
    if state == NOT_SCHEDULED and total_logged > 0:
        state = _progress_state(total_logged, goal)

    return DayInfo(
        date=day,
        state=state,
        scheduled_task=task,
        logs=day_logs,
        total_pages_logged=total_logged,
        daily_goal=goal,
        chapter_color=color,
        chapter_title=title,
    )


def build_month_grid(
    year: int,
    month: int,
    schedule: dict,
    logs: list[DailyLog],
    chapters: list[Chapter],
    plan: StudyPlan | None,
    today: date | None = None,
) -> list[list]:
    """Weeks of the month, Sunday first; padding cells are None."""
    cal = calendar.Calendar(firstweekday=calendar.SUNDAY)
    weeks = []
    for week in cal.monthdatescalendar(year, month):
        weeks.append([
            get_day_info(d, schedule, logs, chapters, plan, today) if d.month == month else None
            for d in week
        ])
    return weeks
