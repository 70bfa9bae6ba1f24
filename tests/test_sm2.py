# tests/test_sm2.py
from datetime import datetime, timedelta

import pytest

from lang_tutor.models import SRSRecord, SRSSettings
from lang_tutor.sm2 import (
    MIN_EASE_FACTOR, initial_record, is_due, next_ease_factor, rank_due, review, srs_statistics,
)

NOW = datetime(2024, 5, 1, 9, 0)


def test_first_review_correct():
    """First correct answer graduates to learning with a 1 day interval."""
    result = review(initial_record("c1", "deck"), 4, now=NOW)
    assert result.interval == 1
    assert result.repetitions == 1
    assert result.ease_factor == 2.5
    assert result.state == "learning"
    assert result.last_review == NOW
    assert result.next_review == NOW + timedelta(days=1)


def test_second_review_easy_uses_easy_interval():
    record = SRSRecord("c1", "deck", interval=1, repetitions=1, state="learning")
    result = review(record, 5, now=NOW)
    assert result.interval == 4
    assert result.state == "review"
    assert result.ease_factor == 2.6


def test_second_review_hard_uses_graduation_step():
    record = SRSRecord("c1", "deck", interval=1, repetitions=1, state="learning")
    assert review(record, 3, now=NOW).interval == 3


def test_third_review_applies_ease_and_easy_bonus():
    record = SRSRecord("c1", "deck", interval=4, repetitions=2, state="review")
    result = review(record, 4, now=NOW)
    assert result.interval == 13  # round(round(4 * 2.5) * 1.3)
    assert result.repetitions == 3


def test_custom_settings():
    settings = SRSSettings(graduating_interval=2)
    assert review(initial_record("c1", "deck"), 4, settings, NOW).interval == 2


def test_incorrect_resets():
    """Quality < 3 resets repetitions and interval."""
    record = SRSRecord("c1", "deck", interval=30, repetitions=5, state="review")
    result = review(record, 1, now=NOW)
    assert result.repetitions == 0
    assert result.interval == 0
    assert result.state == "relearning"
    assert result.next_review == NOW


def test_incorrect_new_card_stays_new():
    assert review(initial_record("c1", "deck"), 0, now=NOW).state == "new"


def test_review_does_not_mutate_input():
    record = initial_record("c1", "deck")
    review(record, 5, now=NOW)
    assert record.repetitions == 0
    assert record.next_review is None


def test_graduation_intervals_strictly_increase():
    """Three quality-3 reviews in a row give growing intervals."""
    record = initial_record("c1", "deck")
    intervals = []
    for _ in range(3):
        record = review(record, 3, now=NOW)
        intervals.append(record.interval)
    assert intervals == [1, 3, 7]
    assert intervals[0] < intervals[1] < intervals[2]


def test_ease_factor_floor():
    """Ease factor never drops below 1.3."""
    record = initial_record("c1", "deck")
    previous = record.ease_factor
    for _ in range(10):
        record = review(record, 0, now=NOW)
        assert MIN_EASE_FACTOR <= record.ease_factor <= previous
        previous = record.ease_factor
    assert record.ease_factor == MIN_EASE_FACTOR


def test_below_floor_ease_is_clamped_before_update():
    assert next_ease_factor(1.1, 5) == 1.4


def test_easy_increases_ease():
    assert next_ease_factor(2.5, 5) > 2.5


@pytest.mark.parametrize("quality", [-1, 6, 2.5, "4", None, True])
def test_invalid_quality_rejected(quality):
    with pytest.raises(ValueError):
        review(initial_record("c1", "deck"), quality, now=NOW)


def test_is_due():
    assert is_due(initial_record("c1", "deck"), NOW)
    assert is_due(SRSRecord("c1", "deck", next_review=NOW), NOW)
    assert not is_due(SRSRecord("c1", "deck", next_review=NOW + timedelta(hours=1)), NOW)


def test_due_ordering_by_state():
    records = [
        SRSRecord("r", "deck", state="review", next_review=NOW - timedelta(days=1)),
        SRSRecord("n", "deck", state="new", next_review=NOW),
        SRSRecord("l", "deck", state="learning", next_review=NOW),
    ]
    assert [r.card_id for r in rank_due(records, NOW)] == ["n", "l", "r"]


def test_due_ordering_most_overdue_first():
    records = [
        SRSRecord("a", "deck", state="review", next_review=NOW - timedelta(days=1)),
        SRSRecord("b", "deck", state="relearning", next_review=NOW - timedelta(days=5)),
        SRSRecord("c", "deck", state="review", next_review=NOW + timedelta(days=2)),
        SRSRecord("d", "deck", state="review"),
    ]
    assert [r.card_id for r in rank_due(records, NOW)] == ["d", "b", "a"]


def test_due_ordering_keeps_input_order_on_ties():
    records = [initial_record(card_id, "deck") for card_id in ("x", "y", "z")]
    assert [r.card_id for r in rank_due(records, NOW)] == ["x", "y", "z"]


def test_srs_statistics():
    records = [
        initial_record("a", "deck"),
        SRSRecord("b", "deck", ease_factor=2.0, state="review", next_review=NOW + timedelta(days=3)),
        SRSRecord("c", "deck", ease_factor=1.5, state="relearning", next_review=NOW),
    ]
    stats = srs_statistics(records, NOW)
    assert stats["total"] == 3
    assert stats["new"] == 1
    assert stats["review"] == 1
    assert stats["relearning"] == 1
    assert stats["learning"] == 0
    assert stats["due"] == 2
    assert stats["average_ease_factor"] == 2.0


def test_srs_statistics_empty():
    stats = srs_statistics([], NOW)
    assert stats["total"] == 0
    assert stats["average_ease_factor"] == 2.5
