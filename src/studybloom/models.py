"""Data classes for the study tracker domain model."""
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

DEFAULT_COLOR_HEX = "#FFB3BA"


@dataclass
class Chapter:
    id: str
    title: str
    total_pages: int
    order_index: int
    pages_studied: int = 0
    color_hex: str = DEFAULT_COLOR_HEX

    @property
    def remaining_pages(self) -> int:
        # Over-logged chapters count as finished, never negative.
        return max(0, self.total_pages - self.pages_studied)

    @property
    def is_complete(self) -> bool:
        return self.pages_studied >= self.total_pages


@dataclass
class StudyPlan:
    daily_page_goal: int = 10
    start_date: date = field(default_factory=date.today)
    free_days: frozenset = frozenset()  # 1 = Sunday ... 7 = Saturday


@dataclass
class DailyLog:
    date: date
    pages_learned: int
    chapter_id: str = ""
    is_free_day: bool = False
    id: Optional[int] = None


@dataclass(frozen=True)
class StudyTask:
    date: date
    chapter_id: str
    chapter_title: str
    pages_to_read: int
    start_page: int
    end_page: int
    color_hex: str


@dataclass
class DayInfo:
    date: date
    state: str
    scheduled_task: Optional[StudyTask]
    logs: list
    total_pages_logged: int
    daily_goal: int
    chapter_color: Optional[str] = None
    chapter_title: Optional[str] = None

    @property
    def progress_percentage(self) -> float:
        if self.daily_goal <= 0:
            return 0.0
        return min(self.total_pages_logged / self.daily_goal, 1.0)


@dataclass
class Flashcard:
    id: int
    front: str
    back: str
    ease_factor: float = 2.5
    interval: int = 0
    repetitions: int = 0
    next_review: Optional[str] = None


@dataclass
class DailyStat:
    date: date
    pages_studied: int = 0
    study_time: float = 0.0  # seconds
    pomodoro_sessions: int = 0
    flashcards_reviewed: int = 0

    @property
    def is_active(self) -> bool:
        return (
            self.pages_studied > 0
            or self.study_time > 0
            or self.pomodoro_sessions > 0
            or self.flashcards_reviewed > 0
        )


@dataclass
class WeeklyStat:
    week_start: date
    total_pages: int = 0
    total_time: float = 0.0
    average_per_day: float = 0.0
    days_studied: int = 0
