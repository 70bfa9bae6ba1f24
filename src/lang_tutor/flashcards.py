"""SQLite persistence for flashcard SRS records."""
import logging
from datetime import datetime
from typing import Iterable, Optional

from lang_tutor import sm2
from lang_tutor.db import get_connection
from lang_tutor.models import SRSRecord, SRSSettings

logger = logging.getLogger(__name__)

_UPSERT = """INSERT INTO srs_records
    (exercise_id, card_id, ease_factor, interval, repetitions, state, last_review, next_review)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(exercise_id, card_id) DO UPDATE SET
        ease_factor=excluded.ease_factor, interval=excluded.interval,
        repetitions=excluded.repetitions, state=excluded.state,
        last_review=excluded.last_review, next_review=excluded.next_review"""


def _to_text(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_text(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _row_to_record(row) -> SRSRecord:
    return SRSRecord(
        card_id=row["card_id"],
        exercise_id=row["exercise_id"],
        ease_factor=max(sm2.MIN_EASE_FACTOR, row["ease_factor"]),
        interval=row["interval"],
        repetitions=row["repetitions"],
        state=row["state"],
        last_review=_from_text(row["last_review"]),
        next_review=_from_text(row["next_review"]),
    )


def _params(record: SRSRecord) -> tuple:
    return (
        record.exercise_id, record.card_id, record.ease_factor, record.interval,
        record.repetitions, record.state, _to_text(record.last_review), _to_text(record.next_review),
    )


def save_card_progress(db_path: str, record: SRSRecord) -> None:
    conn = get_connection(db_path)
    conn.execute(_UPSERT, _params(record))
    conn.commit()
    conn.close()


def save_multiple_cards(db_path: str, records: Iterable[SRSRecord]) -> int:
    """Save a batch of records in one transaction. Returns how many were written."""
    rows = [_params(r) for r in records]
    conn = get_connection(db_path)
    with conn:
        conn.executemany(_UPSERT, rows)
    conn.close()
    logger.info("Saved %d SRS records", len(rows))
    return len(rows)


def load_exercise_progress(db_path: str, exercise_id: str) -> dict[str, SRSRecord]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM srs_records WHERE exercise_id = ? ORDER BY rowid", (exercise_id,)
    ).fetchall()
    conn.close()
    return {row["card_id"]: _row_to_record(row) for row in rows}


def load_card_progress(db_path: str, exercise_id: str, card_id: str) -> SRSRecord | None:
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT * FROM srs_records WHERE exercise_id = ? AND card_id = ?", (exercise_id, card_id)
    ).fetchone()
    conn.close()
    return _row_to_record(row) if row else None


def reset_exercise_progress(db_path: str, exercise_id: str) -> None:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM srs_records WHERE exercise_id = ?", (exercise_id,))
    conn.execute("DELETE FROM review_log WHERE exercise_id = ?", (exercise_id,))
    conn.commit()
    conn.close()


def clear_all_data(db_path: str) -> None:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM srs_records")
    conn.execute("DELETE FROM review_log")
    conn.commit()
    conn.close()


def get_exercise_stats(db_path: str, exercise_id: str, now: datetime | None = None) -> dict:
    return sm2.srs_statistics(load_exercise_progress(db_path, exercise_id).values(), now)


def get_due_records(db_path: str, exercise_id: str, now: datetime | None = None,
                    limit: int | None = None) -> list[SRSRecord]:
    due = sm2.rank_due(load_exercise_progress(db_path, exercise_id).values(), now)
    return due[:limit] if limit is not None else due


def record_review(db_path: str, record: SRSRecord, quality: int,
                  settings: SRSSettings | None = None, now: datetime | None = None) -> SRSRecord:
    """Schedule ``record`` with SM-2, persist the result and log the rating."""
    now = now or datetime.now()
    updated = sm2.review(record, quality, settings, now)
    conn = get_connection(db_path)
    conn.execute(_UPSERT, _params(updated))
    conn.execute(
        "INSERT INTO review_log (exercise_id, card_id, quality, reviewed_at) VALUES (?, ?, ?, ?)",
        (record.exercise_id, record.card_id, quality, now.isoformat()),
    )
    conn.commit()
    conn.close()
    return updated


def log_reviews(db_path: str, reviews: dict[str, SRSRecord], ratings: dict[str, int]) -> None:
    """Persist the records a session produced, logging each card's rating."""
    save_multiple_cards(db_path, reviews.values())
    conn = get_connection(db_path)
    with conn:
        conn.executemany(
            "INSERT INTO review_log (exercise_id, card_id, quality, reviewed_at) VALUES (?, ?, ?, ?)",
            [
                (r.exercise_id, r.card_id, ratings[card_id], _to_text(r.last_review))
                for card_id, r in reviews.items() if card_id in ratings
            ],
        )
    conn.close()
