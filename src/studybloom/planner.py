"""Adaptive study-plan scheduler.

Turns a snapshot of chapters, the active study plan and the daily log
history into a day-by-day reading schedule. The schedule is never stored:
callers recompute it from the latest snapshot whenever a log or chapter
changes.
"""
from datetime import date, datetime, timedelta

from loguru import logger

from studybloom.models import Chapter, DailyLog, StudyPlan, StudyTask

# Upper bound on days walked per run, so a plan with no workable days
# (e.g. every weekday free) still terminates.
MAX_SCHEDULE_DAYS = 365


class InvalidPlanError(ValueError):
    """Raised when a study plan cannot produce a schedule."""


def normalize_day(value) -> date:
    """Reduce a date, datetime or ISO string to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def weekday_number(day: date) -> int:
    """Weekday as stored in plans: 1 = Sunday, 2 = Monday ... 7 = Saturday."""
    return day.isoweekday() % 7 + 1


def logs_for_day(day: date, logs: list[DailyLog]) -> list[DailyLog]:
    day = normalize_day(day)
    return [log for log in logs if normalize_day(log.date) == day]


def is_free_day(day: date, plan: StudyPlan | None, logs: list[DailyLog]) -> bool:
    """A day is free if a log marks it so or its weekday is a plan free day."""
    day = normalize_day(day)
    if any(log.is_free_day for log in logs_for_day(day, logs)):
        return True
    return plan is not None and weekday_number(day) in plan.free_days


def tasks_for_day(schedule: dict, day: date) -> list[StudyTask]:
    return schedule.get(normalize_day(day), [])


def _finished_chapter_today(
    today: date, chapters: list[Chapter], logs: list[DailyLog]
) -> bool:
    by_id = {c.id: c for c in chapters}
    for log in logs_for_day(today, logs):
        if log.is_free_day:
            continue
        chapter = by_id.get(log.chapter_id)
        if chapter is not None and chapter.is_complete:
            return True
    return False


def validate_plan(plan: StudyPlan) -> None:
    if plan.daily_page_goal <= 0:
        raise InvalidPlanError(
            f"daily page goal must be positive, got {plan.daily_page_goal}"
        )


def compute_schedule(
    chapters: list[Chapter],
    plan: StudyPlan | None,
    logs: list[DailyLog],
    today: date | None = None,
    max_days: int = MAX_SCHEDULE_DAYS,
) -> dict[date, list[StudyTask]]:
    """Assign each upcoming study day one contiguous page range of one chapter.

    Chapters are worked strictly in ``order_index`` order, starting today.
    Free days (recurring weekdays or per-day log overrides) are skipped.
    Each study day gets at most ``plan.daily_page_goal`` pages from the
    chapter at the front of the queue, and never more than one task, even
    when the chapter finishes with quota to spare.

    Returns a mapping of day -> [task]; days without a task are absent.
    """
    if plan is None:
        return {}
    validate_plan(plan)

    today = normalize_day(today or date.today())
    ordered = sorted(chapters, key=lambda c: c.order_index)
    queue = [[c, c.remaining_pages] for c in ordered if c.remaining_pages > 0]
    if not queue:
        return {}

    schedule: dict[date, list[StudyTask]] = {}
    current = today
    days_processed = 0
    while queue and days_processed < max_days:
        if is_free_day(current, plan, logs):
            current += timedelta(days=1)
            days_processed += 1
            continue

        # A chapter finished today means today's session is over.
        if current == today and _finished_chapter_today(today, chapters, logs):
            logger.debug("Chapter completed today, scheduling from tomorrow")
            current += timedelta(days=1)
            days_processed += 1
            continue

        chapter, remaining = queue[0]
        pages = min(plan.daily_page_goal, remaining)
        consumed_this_run = chapter.remaining_pages - remaining
        start_page = chapter.pages_studied + consumed_this_run + 1
        schedule[current] = [
            StudyTask(
                date=current,
                chapter_id=chapter.id,
                chapter_title=chapter.title,
                pages_to_read=pages,
                start_page=start_page,
                end_page=start_page + pages - 1,
                color_hex=chapter.color_hex,
            )
        ]
        queue[0][1] -= pages
        if queue[0][1] <= 0:
            queue.pop(0)

        current += timedelta(days=1)
        days_processed += 1

    if queue:
        logger.warning(
            "Schedule truncated at {} days with {} chapters left",
            max_days,
            len(queue),
        )
    logger.debug("Computed schedule with {} study days", len(schedule))
    return schedule
