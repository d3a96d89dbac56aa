"""Study statistics: daily activity totals, streaks, weekly trends and heatmap."""
from datetime import date, timedelta

from loguru import logger

from studybloom.db import get_connection
from studybloom.models import DailyStat, WeeklyStat
from studybloom.planner import normalize_day

_COUNTERS = ("pages_studied", "study_time", "pomodoro_sessions", "flashcards_reviewed")


def _bump(db_path: str, day: date | None, **increments) -> None:
    day = normalize_day(day or date.today()).isoformat()
    values = [increments.get(c, 0) for c in _COUNTERS]
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO daily_stats (stat_date, pages_studied, study_time, pomodoro_sessions, flashcards_reviewed)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(stat_date) DO UPDATE SET
            pages_studied = pages_studied + excluded.pages_studied,
            study_time = study_time + excluded.study_time,
            pomodoro_sessions = pomodoro_sessions + excluded.pomodoro_sessions,
            flashcards_reviewed = flashcards_reviewed + excluded.flashcards_reviewed""",
        (day, *values),
    )
    conn.commit()
    conn.close()


def log_study_session(db_path: str, pages: int, duration: float = 0.0, day: date | None = None) -> None:
    _bump(db_path, day, pages_studied=pages, study_time=duration)
    logger.info("Logged study session", pages=pages, duration=duration)


def log_pomodoro_completion(db_path: str, duration: float, day: date | None = None) -> None:
    """Record a finished focus session: its time and one pomodoro."""
    _bump(db_path, day, study_time=duration, pomodoro_sessions=1)
    logger.info("Logged pomodoro", duration=duration)


def log_flashcard_review(db_path: str, count: int = 1, day: date | None = None) -> None:
    _bump(db_path, day, flashcards_reviewed=count)


def get_daily_stats(db_path: str) -> list[DailyStat]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM daily_stats ORDER BY stat_date").fetchall()
    conn.close()
    return [
        DailyStat(
            date=date.fromisoformat(r["stat_date"]),
            pages_studied=r["pages_studied"],
            study_time=r["study_time"],
            pomodoro_sessions=r["pomodoro_sessions"],
            flashcards_reviewed=r["flashcards_reviewed"],
        )
        for r in rows
    ]


def calc_current_streak(stats: list[DailyStat], today: date | None = None) -> int:
    """Consecutive active days ending today or yesterday."""
    today = normalize_day(today or date.today())
    active = sorted({s.date for s in stats if s.is_active}, reverse=True)
    if not active or (today - active[0]).days > 1:
        return 0
    streak = 1
    for prev, cur in zip(active, active[1:]):
        if (prev - cur).days != 1:
            break
        streak += 1
    return streak


def calc_longest_streak(stats: list[DailyStat]) -> int:
    active = sorted({s.date for s in stats if s.is_active})
    longest = run = 0
    previous = None
    for day in active:
        run = run + 1 if previous and (day - previous).days == 1 else 1
        longest = max(longest, run)
        previous = day
    return longest


def week_start(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=day.isoweekday() % 7)


def calc_weekly_trends(stats: list[DailyStat]) -> list[WeeklyStat]:
    weeks: dict[date, WeeklyStat] = {}
    for s in stats:
        start = week_start(s.date)
        week = weeks.setdefault(start, WeeklyStat(week_start=start))
        week.total_pages += s.pages_studied
        week.total_time += s.study_time
        if s.pages_studied > 0:
            week.days_studied += 1
        if week.days_studied:
            week.average_per_day = round(week.total_pages / week.days_studied, 1)
    return sorted(weeks.values(), key=lambda w: w.week_start, reverse=True)


def get_study_heatmap(stats: list[DailyStat], today: date | None = None, days: int = 90) -> dict[date, int]:
    today = normalize_day(today or date.today())
    heatmap = {today - timedelta(days=offset): 0 for offset in range(days)}
    for s in stats:
        if s.date in heatmap:
            heatmap[s.date] = s.pages_studied
    return heatmap


def get_average_study_time(stats: list[DailyStat]) -> float:
    timed = [s.study_time for s in stats if s.study_time > 0]
    if not timed:
        return 0.0
    return sum(timed) / len(timed)


def get_study_stats(db_path: str, today: date | None = None) -> dict:
    stats = get_daily_stats(db_path)
    return {
        "total_pages": sum(s.pages_studied for s in stats),
        "total_study_time": sum(s.study_time for s in stats),
        "pomodoro_sessions": sum(s.pomodoro_sessions for s in stats),
        "flashcards_reviewed": sum(s.flashcards_reviewed for s in stats),
        "current_streak": calc_current_streak(stats, today),
        "longest_streak": calc_longest_streak(stats),
        "average_study_time": round(get_average_study_time(stats), 1),
    }
