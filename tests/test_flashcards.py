# tests/test_flashcards.py
from datetime import datetime, timedelta

from lang_tutor.db import get_connection
from lang_tutor.flashcards import (
    clear_all_data, get_due_records, get_exercise_stats, load_card_progress,
    load_exercise_progress, log_reviews, record_review, reset_exercise_progress,
    save_card_progress, save_multiple_cards,
)
from lang_tutor.models import SRSRecord
from lang_tutor.sm2 import initial_record

NOW = datetime(2024, 5, 1, 9, 0)


def test_save_and_load_card(ready_db):
    record = SRSRecord("hello", "greetings", ease_factor=2.36, interval=3, repetitions=2,
                       state="review", last_review=NOW, next_review=NOW + timedelta(days=3))
    save_card_progress(ready_db, record)
    assert load_card_progress(ready_db, "greetings", "hello") == record


def test_load_missing_card(ready_db):
    assert load_card_progress(ready_db, "greetings", "nope") is None


def test_save_overwrites(ready_db):
    save_card_progress(ready_db, initial_record("hello", "greetings"))
    save_card_progress(ready_db, SRSRecord("hello", "greetings", repetitions=1, state="learning"))
    progress = load_exercise_progress(ready_db, "greetings")
    assert len(progress) == 1
    assert progress["hello"].state == "learning"


def test_save_multiple_cards(ready_db):
    count = save_multiple_cards(ready_db, [initial_record(c, "greetings") for c in ("a", "b", "c")])
    assert count == 3
    assert list(load_exercise_progress(ready_db, "greetings")) == ["a", "b", "c"]


def test_progress_is_per_exercise(ready_db):
    save_card_progress(ready_db, initial_record("a", "one"))
    save_card_progress(ready_db, initial_record("a", "two"))
    reset_exercise_progress(ready_db, "one")
    assert load_exercise_progress(ready_db, "one") == {}
    assert "a" in load_exercise_progress(ready_db, "two")


def test_below_floor_ease_clamped_on_load(ready_db):
    conn = get_connection(ready_db)
    conn.execute(
        "INSERT INTO srs_records (exercise_id, card_id, ease_factor) VALUES (?, ?, ?)",
        ("greetings", "hello", 1.1),
    )
    conn.commit()
    conn.close()
    assert load_card_progress(ready_db, "greetings", "hello").ease_factor == 1.3


def test_record_review_persists_and_logs(ready_db):
    updated = record_review(ready_db, initial_record("hello", "greetings"), 4, now=NOW)
    assert updated.repetitions == 1
    assert updated.interval == 1
    assert load_card_progress(ready_db, "greetings", "hello") == updated
    conn = get_connection(ready_db)
    row = conn.execute("SELECT * FROM review_log WHERE card_id = ?", ("hello",)).fetchone()
    conn.close()
    assert row["quality"] == 4
    assert row["reviewed_at"] == NOW.isoformat()


def test_log_reviews(ready_db):
    reviews = {
        "a": SRSRecord("a", "deck", repetitions=1, state="learning", last_review=NOW),
        "b": SRSRecord("b", "deck", state="new", last_review=NOW),
    }
    log_reviews(ready_db, reviews, {"a": 5, "b": 1})
    assert load_exercise_progress(ready_db, "deck") == reviews
    conn = get_connection(ready_db)
    rows = conn.execute("SELECT card_id, quality FROM review_log ORDER BY id").fetchall()
    conn.close()
    assert [(r["card_id"], r["quality"]) for r in rows] == [("a", 5), ("b", 1)]


def test_get_exercise_stats(ready_db):
    save_multiple_cards(ready_db, [
        initial_record("a", "deck"),
        SRSRecord("b", "deck", ease_factor=2.1, state="review", next_review=NOW + timedelta(days=2)),
    ])
    stats = get_exercise_stats(ready_db, "deck", NOW)
    assert stats["total"] == 2
    assert stats["new"] == 1
    assert stats["review"] == 1
    assert stats["due"] == 1
    assert stats["average_ease_factor"] == 2.3


def test_get_exercise_stats_empty(ready_db):
    stats = get_exercise_stats(ready_db, "deck", NOW)
    assert stats["total"] == 0
    assert stats["due"] == 0


def test_get_due_records(ready_db):
    save_multiple_cards(ready_db, [
        SRSRecord("r", "deck", state="review", next_review=NOW - timedelta(days=1)),
        SRSRecord("n", "deck", state="new", next_review=NOW),
        SRSRecord("l", "deck", state="learning", next_review=NOW),
        SRSRecord("later", "deck", state="review", next_review=NOW + timedelta(days=1)),
    ])
    assert [r.card_id for r in get_due_records(ready_db, "deck", NOW)] == ["n", "l", "r"]
    assert [r.card_id for r in get_due_records(ready_db, "deck", NOW, limit=1)] == ["n"]


def test_clear_all_data(ready_db):
    record_review(ready_db, initial_record("hello", "greetings"), 3, now=NOW)
    clear_all_data(ready_db)
    conn = get_connection(ready_db)
    assert conn.execute("SELECT COUNT(*) FROM srs_records").fetchone()[0] == 0
    assert conn.execute("SELECT COUNT(*) FROM review_log").fetchone()[0] == 0
    conn.close()
