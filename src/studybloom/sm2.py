"""SM-2 spaced repetition for flashcard review."""
from datetime import date, timedelta

MIN_EASE_FACTOR = 1.3

# The review screen offers two buttons; each maps onto an SM-2 grade.
BUTTON_QUALITY = {"again": 1, "easy": 5}


def button_quality(button: str) -> int:
    try:
        return BUTTON_QUALITY[button]
    except KeyError:
        raise ValueError(f"unknown review button: {button!r}") from None


def sm2_update(quality: int, repetitions: int, ease_factor: float, interval: int) -> dict:
    """Calculate next review parameters.

    Args:
        quality: Grade 0-5 (0=blackout, 5=perfect recall)
        repetitions: Consecutive successful reviews so far
        ease_factor: Current ease factor
        interval: Current interval in days

    Returns:
        Dict with the new interval, repetitions and ease_factor.
    """
    if not 0 <= quality <= 5:
        raise ValueError(f"quality must be 0-5, got {quality}")
    new_ef = ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
    new_ef = max(MIN_EASE_FACTOR, new_ef)

    if quality < 3:
        new_repetitions, new_interval = 0, 1
    else:
        if repetitions == 0:
            new_interval = 1
        elif repetitions == 1:
            new_interval = 6
        else:
            new_interval = round(interval * ease_factor)
        new_repetitions = repetitions + 1

    return {
        "interval": new_interval,
        "repetitions": new_repetitions,
        "ease_factor": round(new_ef, 2),
    }


def next_review_date(interval: int, today: date | None = None) -> date:
    return (today or date.today()) + timedelta(days=interval)
