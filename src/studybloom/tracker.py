"""Chapter, study plan and daily log storage, plus the progress write-backs.

Logging progress and toggling a free day are the two events after which
the schedule must be recomputed; ``recompute_schedule`` does that from a
fresh snapshot of the store.
"""
import json
import uuid
from datetime import date, datetime

from loguru import logger

from studybloom.analytics import log_study_session
from studybloom.db import get_connection
from studybloom.models import DEFAULT_COLOR_HEX, Chapter, DailyLog, StudyPlan, StudyTask
from studybloom.planner import compute_schedule, logs_for_day, normalize_day, tasks_for_day


class ChapterNotFoundError(LookupError):
    """Raised when a chapter id does not exist in the store."""


def _row_to_chapter(row) -> Chapter:
    return Chapter(
        id=row["id"],
        title=row["title"],
        total_pages=row["total_pages"],
        order_index=row["order_index"],
        pages_studied=row["pages_studied"],
        color_hex=row["color_hex"],
    )


def _row_to_log(row) -> DailyLog:
    return DailyLog(
        id=row["id"],
        date=date.fromisoformat(row["log_date"]),
        pages_learned=row["pages_learned"],
        chapter_id=row["chapter_id"] or "",
        is_free_day=bool(row["is_free_day"]),
    )


# --- Chapters ---


def add_chapter(
    db_path: str,
    title: str,
    total_pages: int,
    pages_studied: int = 0,
    color_hex: str = DEFAULT_COLOR_HEX,
) -> Chapter:
    """Append a chapter after the existing ones."""
    conn = get_connection(db_path)
    max_order = conn.execute("SELECT MAX(order_index) FROM chapters").fetchone()[0]
    order_index = -1 if max_order is None else max_order
    chapter = Chapter(
        id=str(uuid.uuid4()),
        title=title,
        total_pages=total_pages,
        order_index=order_index + 1,
        pages_studied=pages_studied,
        color_hex=color_hex,
    )
    now = datetime.now().isoformat()
    conn.execute(
        """INSERT INTO chapters (id, title, total_pages, order_index, pages_studied, color_hex, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (chapter.id, title, total_pages, chapter.order_index, pages_studied, color_hex, now, now),
    )
    conn.commit()
    conn.close()
    logger.info("Added chapter", title=title, total_pages=total_pages)
    return chapter


def get_chapters(db_path: str) -> list[Chapter]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM chapters ORDER BY order_index").fetchall()
    conn.close()
    return [_row_to_chapter(r) for r in rows]


def get_chapter(db_path: str, chapter_id: str) -> Chapter:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM chapters WHERE id = ?", (chapter_id,)).fetchone()
    conn.close()
    if row is None:
        raise ChapterNotFoundError(chapter_id)
    return _row_to_chapter(row)


def update_chapter(db_path: str, chapter: Chapter) -> None:
    conn = get_connection(db_path)
    cursor = conn.execute(
        """UPDATE chapters SET title=?, total_pages=?, order_index=?, pages_studied=?, color_hex=?, updated_at=?
        WHERE id=?""",
        (
            chapter.title, chapter.total_pages, chapter.order_index, chapter.pages_studied,
            chapter.color_hex, datetime.now().isoformat(), chapter.id,
        ),
    )
    updated = cursor.rowcount
    conn.commit()
    conn.close()
    if updated == 0:
        raise ChapterNotFoundError(chapter.id)


def delete_chapter(db_path: str, chapter_id: str) -> None:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM chapters WHERE id = ?", (chapter_id,))
    conn.commit()
    conn.close()
    logger.info("Deleted chapter", chapter_id=chapter_id)


def reorder_chapters(db_path: str, chapter_ids: list[str]) -> None:
    """Give each chapter its position in ``chapter_ids`` as order_index."""
    conn = get_connection(db_path)
    now = datetime.now().isoformat()
    for index, chapter_id in enumerate(chapter_ids):
        conn.execute(
            "UPDATE chapters SET order_index = ?, updated_at = ? WHERE id = ?",
            (index, now, chapter_id),
        )
    conn.commit()
    conn.close()


# --- Study plan ---


def get_plan(db_path: str) -> StudyPlan | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM study_plan WHERE id = 1").fetchone()
    conn.close()
    if row is None:
        return None
    return StudyPlan(
        daily_page_goal=row["daily_page_goal"],
        start_date=date.fromisoformat(row["start_date"]),
        free_days=frozenset(json.loads(row["free_days"] or "[]")),
    )


def save_plan(db_path: str, plan: StudyPlan) -> None:
    free_days = json.dumps(sorted(plan.free_days))
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO study_plan (id, daily_page_goal, start_date, free_days, updated_at)
        VALUES (1, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET daily_page_goal=excluded.daily_page_goal,
            start_date=excluded.start_date, free_days=excluded.free_days, updated_at=excluded.updated_at""",
        (plan.daily_page_goal, plan.start_date.isoformat(), free_days, datetime.now().isoformat()),
    )
    conn.commit()
    conn.close()
    logger.info("Saved study plan", daily_page_goal=plan.daily_page_goal, free_days=free_days)


def create_default_plan(db_path: str) -> StudyPlan:
    """Return the stored plan, creating the default one on first use."""
    plan = get_plan(db_path)
    if plan is None:
        plan = StudyPlan(daily_page_goal=10, start_date=date.today(), free_days=frozenset())
        save_plan(db_path, plan)
    return plan


# --- Daily logs ---


def get_logs(db_path: str) -> list[DailyLog]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM daily_logs ORDER BY log_date, id").fetchall()
    conn.close()
    return [_row_to_log(r) for r in rows]


def add_log(db_path: str, log: DailyLog) -> DailyLog:
    conn = get_connection(db_path)
    cursor = conn.execute(
        """INSERT INTO daily_logs (log_date, pages_learned, chapter_id, is_free_day, created_at)
        VALUES (?, ?, ?, ?, ?)""",
        (
            normalize_day(log.date).isoformat(), log.pages_learned, log.chapter_id,
            int(log.is_free_day), datetime.now().isoformat(),
        ),
    )
    conn.commit()
    log_id = cursor.lastrowid
    conn.close()
    return DailyLog(
        id=log_id,
        date=normalize_day(log.date),
        pages_learned=log.pages_learned,
        chapter_id=log.chapter_id,
        is_free_day=log.is_free_day,
    )


def delete_log(db_path: str, log: DailyLog) -> None:
    """Remove a log; a progress log also takes its pages back off its chapter."""
    if not log.is_free_day and log.chapter_id:
        try:
            chapter = get_chapter(db_path, log.chapter_id)
        except ChapterNotFoundError:
            logger.warning("Log refers to a deleted chapter", chapter_id=log.chapter_id)
        else:
            chapter.pages_studied = max(0, chapter.pages_studied - log.pages_learned)
            update_chapter(db_path, chapter)
    conn = get_connection(db_path)
    conn.execute("DELETE FROM daily_logs WHERE id = ?", (log.id,))
    conn.commit()
    conn.close()


def _set_free_flag(db_path: str, log_id: int, is_free: bool) -> None:
    conn = get_connection(db_path)
    conn.execute("UPDATE daily_logs SET is_free_day = ? WHERE id = ?", (int(is_free), log_id))
    conn.commit()
    conn.close()


# --- Write-back triggers ---


def log_progress(db_path: str, chapter_id: str, new_total: int, day: date | None = None) -> DailyLog | None:
    """Set a chapter's studied pages to ``new_total`` and log the increase.

    Returns the new log, or None when progress did not move forward.
    """
    day = normalize_day(day or date.today())
    chapter = get_chapter(db_path, chapter_id)
    new_total = max(0, min(new_total, chapter.total_pages))
    delta = new_total - chapter.pages_studied
    chapter.pages_studied = new_total
    update_chapter(db_path, chapter)
    if delta <= 0:
        return None
    log = add_log(db_path, DailyLog(date=day, pages_learned=delta, chapter_id=chapter_id))
    log_study_session(db_path, pages=delta, day=day)
    logger.info("Logged progress", chapter=chapter.title, pages=delta, day=day.isoformat())
    return log


def toggle_free_day(db_path: str, day: date) -> bool:
    """Flip a day's free-day override. Returns whether the day is now free."""
    day = normalize_day(day)
    existing = logs_for_day(day, get_logs(db_path))
    if existing and existing[0].is_free_day:
        delete_log(db_path, existing[0])
        is_free = False
    elif existing:
        _set_free_flag(db_path, existing[0].id, True)
        is_free = True
    else:
        add_log(db_path, DailyLog(date=day, pages_learned=0, chapter_id="", is_free_day=True))
        is_free = True
    logger.info("Toggled free day", day=day.isoformat(), is_free=is_free)
    return is_free


def choose_log_target(
    day: date,
    schedule: dict,
    chapters: list[Chapter],
    task: StudyTask | None = None,
) -> Chapter | None:
    """Chapter to log progress against on ``day``."""
    by_id = {c.id: c for c in chapters}
    if task is not None and task.chapter_id in by_id:
        return by_id[task.chapter_id]
    for planned in tasks_for_day(schedule, day):
        if planned.chapter_id in by_id:
            return by_id[planned.chapter_id]
    return next((c for c in chapters if not c.is_complete), None)


def load_snapshot(db_path: str) -> tuple[list[Chapter], StudyPlan | None, list[DailyLog]]:
    return get_chapters(db_path), get_plan(db_path), get_logs(db_path)


def recompute_schedule(db_path: str, today: date | None = None) -> dict[date, list[StudyTask]]:
    chapters, plan, logs = load_snapshot(db_path)
    return compute_schedule(chapters, plan, logs, today=today)
