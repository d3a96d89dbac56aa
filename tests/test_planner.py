"""Tests for the study-plan scheduler."""
import copy
from datetime import date, datetime, timedelta

import pytest

from studybloom.models import Chapter, DailyLog, StudyPlan
from studybloom.planner import (
    MAX_SCHEDULE_DAYS, InvalidPlanError, compute_schedule, is_free_day,
    logs_for_day, normalize_day, tasks_for_day, weekday_number,
)

MONDAY = date(2026, 10, 19)
SUNDAY, SATURDAY, TUESDAY = 1, 7, 3


def chapter(cid, total, order=0, studied=0):
    return Chapter(id=cid, title=f"Chapter {cid}", total_pages=total, order_index=order,
                   pages_studied=studied, color_hex=f"#{cid}")


def plan(goal=10, free_days=()):
    return StudyPlan(daily_page_goal=goal, start_date=MONDAY, free_days=frozenset(free_days))


def day(offset):
    return MONDAY + timedelta(days=offset)


def ranges(schedule):
    return [(d, t.chapter_id, t.start_page, t.end_page, t.pages_to_read)
            for d in sorted(schedule) for t in schedule[d]]


# --- helpers ---


def test_weekday_number_sunday_is_one():
    assert weekday_number(date(2026, 10, 18)) == 1
    assert weekday_number(MONDAY) == 2
    assert weekday_number(date(2026, 10, 24)) == 7


def test_normalize_day_accepts_datetime_and_string():
    assert normalize_day(datetime(2026, 10, 19, 23, 59)) == MONDAY
    assert normalize_day("2026-10-19") == MONDAY
    assert normalize_day(MONDAY) is MONDAY


def test_logs_for_day_ignores_time_of_day():
    logs = [
        DailyLog(date=datetime(2026, 10, 19, 8, 0), pages_learned=3, chapter_id="a"),
        DailyLog(date=datetime(2026, 10, 19, 22, 0), pages_learned=4, chapter_id="a"),
        DailyLog(date=day(1), pages_learned=5, chapter_id="a"),
    ]
    assert [log.pages_learned for log in logs_for_day(MONDAY, logs)] == [3, 4]


def test_is_free_day_by_plan_or_log():
    logs = [DailyLog(date=day(2), pages_learned=0, is_free_day=True)]
    p = plan(free_days=[SATURDAY])
    assert is_free_day(day(5), p, logs)  # Saturday
    assert is_free_day(day(2), p, logs)  # override
    assert not is_free_day(MONDAY, p, logs)
    assert not is_free_day(MONDAY, None, [])


def test_tasks_for_day_missing_is_empty():
    assert tasks_for_day({}, MONDAY) == []


# --- scenarios ---


def test_scenario_a_single_chapter_three_days():
    schedule = compute_schedule([chapter("a", 30)], plan(10), [], today=MONDAY)
    assert ranges(schedule) == [
        (day(0), "a", 1, 10, 10),
        (day(1), "a", 11, 20, 10),
        (day(2), "a", 21, 30, 10),
    ]


def test_scenario_b_partially_studied_chapter():
    schedule = compute_schedule([chapter("a", 10, studied=5)], plan(10), [], today=MONDAY)
    assert ranges(schedule) == [(day(0), "a", 6, 10, 5)]


def test_scenario_c_today_is_recurring_free_day():
    schedule = compute_schedule([chapter("a", 30)], plan(10, free_days=[weekday_number(MONDAY)]), [],
                                today=MONDAY)
    assert MONDAY not in schedule
    assert min(schedule) == day(1)


def test_scenario_d_one_chapter_per_day():
    chapters = [chapter("a", 5, order=0), chapter("b", 20, order=1)]
    schedule = compute_schedule(chapters, plan(10), [], today=MONDAY)
    assert ranges(schedule) == [
        (day(0), "a", 1, 5, 5),
        (day(1), "b", 1, 10, 10),
        (day(2), "b", 11, 20, 10),
    ]


def test_scenario_e_no_plan():
    assert compute_schedule([chapter("a", 30)], None, [], today=MONDAY) == {}


# --- edge cases ---


def test_no_remaining_work_gives_empty_schedule():
    chapters = [chapter("a", 10, studied=10), chapter("b", 5, studied=5)]
    assert compute_schedule(chapters, plan(), [], today=MONDAY) == {}
    assert compute_schedule([], plan(), [], today=MONDAY) == {}


def test_chapters_sorted_by_order_index():
    chapters = [chapter("late", 5, order=3), chapter("early", 5, order=1)]
    schedule = compute_schedule(chapters, plan(10), [], today=MONDAY)
    assert [t.chapter_id for d in sorted(schedule) for t in schedule[d]] == ["early", "late"]


def test_partial_start_page_accounts_for_studied_pages():
    schedule = compute_schedule([chapter("a", 30, studied=7)], plan(10), [], today=MONDAY)
    assert [(t.start_page, t.end_page) for d in sorted(schedule) for t in schedule[d]] == [
        (8, 17), (18, 27), (28, 30),
    ]


def test_quota_larger_than_chapter_does_not_carry_over():
    chapters = [chapter("a", 3, order=0), chapter("b", 3, order=1)]
    schedule = compute_schedule(chapters, plan(50), [], today=MONDAY)
    assert ranges(schedule) == [(day(0), "a", 1, 3, 3), (day(1), "b", 1, 3, 3)]


def test_weekend_free_days_are_skipped():
    schedule = compute_schedule([chapter("a", 100)], plan(10, free_days=[SATURDAY, SUNDAY]), [],
                                today=MONDAY)
    assert day(5) not in schedule and day(6) not in schedule
    assert len(schedule) == 10
    assert max(schedule) == day(11)


def test_free_day_log_override_with_time_of_day():
    logs = [DailyLog(date=datetime(2026, 10, 20, 15, 30), pages_learned=0, is_free_day=True)]
    schedule = compute_schedule([chapter("a", 30)], plan(10), logs, today=MONDAY)
    assert sorted(schedule) == [day(0), day(2), day(3)]
    assert schedule[day(2)][0].start_page == 11


def test_chapter_finished_today_pushes_schedule_to_tomorrow():
    done = chapter("a", 10, order=0, studied=10)
    next_up = chapter("b", 20, order=1)
    logs = [DailyLog(date=MONDAY, pages_learned=10, chapter_id="a")]
    schedule = compute_schedule([done, next_up], plan(10), logs, today=MONDAY)
    assert MONDAY not in schedule
    assert ranges(schedule)[0] == (day(1), "b", 1, 10, 10)


def test_unfinished_chapter_logged_today_still_gets_task():
    logs = [DailyLog(date=MONDAY, pages_learned=4, chapter_id="a")]
    schedule = compute_schedule([chapter("a", 20, studied=4)], plan(10), logs, today=MONDAY)
    assert ranges(schedule)[0] == (day(0), "a", 5, 14, 10)


def test_completion_guard_only_applies_to_today():
    done = chapter("a", 10, order=0, studied=10)
    logs = [DailyLog(date=day(1), pages_learned=10, chapter_id="a")]
    schedule = compute_schedule([done, chapter("b", 20, order=1)], plan(10), logs, today=MONDAY)
    assert sorted(schedule) == [day(0), day(1)]


def test_completion_guard_ignores_unknown_chapter():
    logs = [DailyLog(date=MONDAY, pages_learned=10, chapter_id="deleted")]
    schedule = compute_schedule([chapter("a", 10)], plan(10), logs, today=MONDAY)
    assert MONDAY in schedule


def test_overstudied_chapter_is_clamped_out():
    chapters = [chapter("a", 10, order=0, studied=15), chapter("b", 10, order=1)]
    schedule = compute_schedule(chapters, plan(10), [], today=MONDAY)
    assert ranges(schedule) == [(day(0), "b", 1, 10, 10)]


@pytest.mark.parametrize("goal", [0, -5])
def test_non_positive_goal_is_rejected(goal):
    with pytest.raises(InvalidPlanError):
        compute_schedule([chapter("a", 10)], plan(goal), [], today=MONDAY)


def test_every_day_free_stops_at_bound():
    schedule = compute_schedule([chapter("a", 10)], plan(10, free_days=range(1, 8)), [], today=MONDAY)
    assert schedule == {}


def test_bound_truncates_long_schedule():
    schedule = compute_schedule([chapter("a", 1000)], plan(1), [], today=MONDAY)
    assert len(schedule) == MAX_SCHEDULE_DAYS
    schedule = compute_schedule([chapter("a", 1000)], plan(1), [], today=MONDAY, max_days=3)
    assert sorted(schedule) == [day(0), day(1), day(2)]


def test_inputs_are_not_mutated():
    chapters = [chapter("a", 25, order=1), chapter("b", 5, order=0)]
    logs = [DailyLog(date=day(2), pages_learned=0, is_free_day=True)]
    p = plan(10, free_days=[SUNDAY])
    before = copy.deepcopy((chapters, p, logs))
    compute_schedule(chapters, p, logs, today=MONDAY)
    assert (chapters, p, logs) == before


# --- properties over a handful of snapshots ---

SNAPSHOTS = [
    ([chapter("a", 30), chapter("b", 17, order=1, studied=2), chapter("c", 9, order=2)], plan(7), []),
    ([chapter("a", 45, order=2), chapter("b", 12, order=0)], plan(10, free_days=[SATURDAY, SUNDAY]),
     [DailyLog(date=day(1), pages_learned=0, is_free_day=True)]),
    ([chapter("a", 3), chapter("b", 100, order=5, studied=99), chapter("c", 64, order=9)], plan(8, [TUESDAY]),
     [DailyLog(date=day(3), pages_learned=0, is_free_day=True),
      DailyLog(date=MONDAY, pages_learned=2, chapter_id="a")]),
]


@pytest.mark.parametrize("chapters,p,logs", SNAPSHOTS)
def test_schedule_properties(chapters, p, logs):
    schedule = compute_schedule(chapters, p, logs, today=MONDAY)
    remaining = {c.id: c.remaining_pages for c in chapters if c.remaining_pages > 0}

    # every chapter with work is scheduled, and exactly its remaining pages
    allocated = {}
    for d, tasks in schedule.items():
        assert len(tasks) == 1
        assert not is_free_day(d, p, logs)
        assert tasks[0].date == d
        assert 0 < tasks[0].pages_to_read <= p.daily_page_goal
        allocated[tasks[0].chapter_id] = allocated.get(tasks[0].chapter_id, 0) + tasks[0].pages_to_read
    assert allocated == remaining

    # contiguous page ranges per chapter
    by_id = {c.id: c for c in chapters}
    for cid in remaining:
        tasks = [schedule[d][0] for d in sorted(schedule) if schedule[d][0].chapter_id == cid]
        assert tasks[0].start_page == by_id[cid].pages_studied + 1
        for prev, cur in zip(tasks, tasks[1:]):
            assert cur.start_page == prev.end_page + 1
        assert tasks[-1].end_page == by_id[cid].total_pages

    assert compute_schedule(chapters, p, logs, today=MONDAY) == schedule


def test_default_today_is_used():
    schedule = compute_schedule([chapter("a", 5)], plan(10), [])
    assert list(schedule) == [date.today()]
