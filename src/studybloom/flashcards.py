"""Flashcard deck storage and review with SM-2 scheduling."""
from datetime import date

from loguru import logger

from studybloom.analytics import log_flashcard_review
from studybloom.db import get_connection
from studybloom.models import Flashcard
from studybloom.sm2 import next_review_date, sm2_update


def _row_to_card(row) -> Flashcard:
    return Flashcard(
        id=row["id"],
        front=row["front"],
        back=row["back"],
        ease_factor=row["ease_factor"],
        interval=row["interval"],
        repetitions=row["repetitions"],
        next_review=row["next_review"],
    )


def add_flashcard(db_path: str, front: str, back: str) -> Flashcard:
    conn = get_connection(db_path)
    cursor = conn.execute("INSERT INTO flashcards (front, back) VALUES (?, ?)", (front, back))
    conn.commit()
    card_id = cursor.lastrowid
    conn.close()
    return Flashcard(id=card_id, front=front, back=back)


def delete_flashcard(db_path: str, card_id: int) -> None:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))
    conn.commit()
    conn.close()


def get_due_cards(db_path: str, limit: int = 15, today: date | None = None) -> list[Flashcard]:
    """New cards first, then the most overdue."""
    today = (today or date.today()).isoformat()
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT * FROM flashcards
        WHERE next_review IS NULL OR next_review <= ?
        ORDER BY next_review ASC NULLS FIRST, id
        LIMIT ?""",
        (today, limit),
    ).fetchall()
    conn.close()
    return [_row_to_card(r) for r in rows]


def record_flashcard_result(db_path: str, card_id: int, rating: int, today: date | None = None) -> Flashcard:
    today = today or date.today()
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM flashcards WHERE id = ?", (card_id,)).fetchone()
    if row is None:
        conn.close()
        raise LookupError(f"flashcard {card_id} not found")
    updated = sm2_update(
        quality=rating,
        repetitions=row["repetitions"],
        ease_factor=row["ease_factor"],
        interval=row["interval"],
    )
    next_review = next_review_date(updated["interval"], today).isoformat()
    conn.execute(
        """UPDATE flashcards SET ease_factor=?, interval=?, repetitions=?, next_review=?
        WHERE id=?""",
        (updated["ease_factor"], updated["interval"], updated["repetitions"], next_review, card_id),
    )
    conn.execute(
        "INSERT INTO flashcard_results (flashcard_id, rating, reviewed_at) VALUES (?, ?, ?)",
        (card_id, rating, today.isoformat()),
    )
    conn.commit()
    conn.close()
    log_flashcard_review(db_path, 1, day=today)
    logger.debug("Reviewed flashcard", card_id=card_id, rating=rating, next_review=next_review)
    return Flashcard(
        id=card_id,
        front=row["front"],
        back=row["back"],
        next_review=next_review,
        **updated,
    )
