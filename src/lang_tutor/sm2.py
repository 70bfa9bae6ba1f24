"""SM-2 spaced repetition algorithm."""
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable, Optional

from lang_tutor.models import CARD_STATES, SRSRecord, SRSSettings

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5

_STATE_PRIORITY = {"new": 0, "learning": 1, "review": 2, "relearning": 2}


def initial_record(card_id: str, exercise_id: str) -> SRSRecord:
    return SRSRecord(card_id=card_id, exercise_id=exercise_id)


def next_ease_factor(ease_factor: float, quality: int) -> float:
    ease = max(MIN_EASE_FACTOR, ease_factor)
    ease += 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
    return round(max(MIN_EASE_FACTOR, ease), 2)


def review(
    record: SRSRecord,
    quality: int,
    settings: Optional[SRSSettings] = None,
    now: Optional[datetime] = None,
) -> SRSRecord:
    """Calculate the next review schedule for a card using SM-2.

    Args:
        record: The card's current SRS record
        quality: Rating 0-5 (0=complete blackout, 5=perfect)
        settings: Graduation intervals and easy bonus (defaults if omitted)
        now: Review time (defaults to the current time)

    Returns:
        A new SRSRecord; the input record is left untouched.
    """
    if isinstance(quality, bool) or not isinstance(quality, int) or not 0 <= quality <= 5:
        raise ValueError(f"quality must be an integer from 0 to 5, got {quality!r}")
    settings = settings or SRSSettings()
    now = now or datetime.now()
    ease_factor = next_ease_factor(record.ease_factor, quality)

    if quality < 3:
        # Incorrect: start the card over
        repetitions = 0
        interval = 0
        state = "new" if record.state == "new" else "relearning"
    else:
        repetitions = record.repetitions + 1
        if repetitions == 1:
            interval = settings.graduating_interval
            state = "learning"
        elif repetitions == 2:
            interval = settings.easy_interval if quality >= 4 else settings.graduation_step
            state = "review"
        else:
            interval = round(record.interval * ease_factor)
            if quality >= 4:
                interval = round(interval * settings.easy_bonus)
            state = "review"

    return replace(
        record,
        ease_factor=ease_factor,
        interval=interval,
        repetitions=repetitions,
        state=state,
        last_review=now,
        next_review=now + timedelta(days=interval),
    )


def is_due(record: SRSRecord, now: Optional[datetime] = None) -> bool:
    if record.next_review is None:
        return True
    return record.next_review <= (now or datetime.now())


def _rank_key(record: SRSRecord, now: datetime) -> tuple:
    priority = _STATE_PRIORITY.get(record.state, 2)
    if record.next_review is None:
        return (priority, 0, 0.0)
    overdue = (now - record.next_review).total_seconds()
    return (priority, 1, -overdue)


def rank_due(records: Iterable[SRSRecord], now: Optional[datetime] = None) -> list[SRSRecord]:
    """Due records in presentation order: new, learning, then review/relearning.

    Within a state group the most overdue card comes first; a card that was
    never scheduled counts as the most overdue. Ties keep input order.
    """
    now = now or datetime.now()
    due = [r for r in records if is_due(r, now)]
    return sorted(due, key=lambda r: _rank_key(r, now))


def srs_statistics(records: Iterable[SRSRecord], now: Optional[datetime] = None) -> dict:
    records = list(records)
    now = now or datetime.now()
    stats = {"total": len(records)}
    for state in CARD_STATES:
        stats[state] = sum(1 for r in records if r.state == state)
    stats["due"] = sum(1 for r in records if is_due(r, now))
    if records:
        stats["average_ease_factor"] = round(sum(r.ease_factor for r in records) / len(records), 2)
    else:
        stats["average_ease_factor"] = DEFAULT_EASE_FACTOR
    return stats
