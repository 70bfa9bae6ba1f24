"""Exercise session state machine.

The machine is a pure reducer: ``reduce(state, event)`` returns the next
state and never touches clocks, timers or storage. Hosts drive the timed
transitions themselves by asking ``pending_timer`` what to schedule after each
change (see ``lang_tutor.session``).

Three exercise variants share the same status set and event vocabulary:

* word-form: free-text answers checked by ``lang_tutor.evaluator``
* multiple-choice: the answer is the selected option id
* flashcard: flip the card, rate recall 0-5, and each rating is scheduled
  with SM-2

An event that is not valid for the current status is ignored and the same
state object is returned.
"""
import logging
import random
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from lang_tutor import sm2
from lang_tutor.config import DISPLAY_DELAY_MS
from lang_tutor.errors import ContentError
from lang_tutor.evaluator import check_answer
from lang_tutor.models import (
    FLASHCARD, MULTIPLE_CHOICE, WORD_FORM, ExerciseSettings, SRSRecord, WordFormBlock, WordFormCase,
)
from lang_tutor.stats import SessionStats, completion_result, now_ms

logger = logging.getLogger(__name__)


class Status(str, Enum):
    WAITING_INPUT = "WAITING_INPUT"
    CHECKING = "CHECKING"
    CORRECT_ANSWER = "CORRECT_ANSWER"
    WRONG_ANSWER = "WRONG_ANSWER"
    REQUIRE_CORRECTION = "REQUIRE_CORRECTION"
    REQUIRE_CONTINUE = "REQUIRE_CONTINUE"
    COMPLETED = "COMPLETED"


# --- Events ---------------------------------------------------------------

@dataclass(frozen=True)
class Submit:
    answer: str


@dataclass(frozen=True)
class Advance:
    at_ms: int = field(default_factory=now_ms)


@dataclass(frozen=True)
class Skip:
    at_ms: int = field(default_factory=now_ms)


@dataclass(frozen=True)
class RequireContinue:
    pass


@dataclass(frozen=True)
class ToggleAutoAdvance:
    pass


@dataclass(frozen=True)
class ToggleHint:
    kind: str


@dataclass(frozen=True)
class Restart:
    content: Any
    settings: Optional[ExerciseSettings] = None
    records: Any = None
    seed: Optional[int] = None
    at_ms: int = field(default_factory=now_ms)


@dataclass(frozen=True)
class Flip:
    pass


@dataclass(frozen=True)
class Rate:
    quality: int
    at: datetime = field(default_factory=datetime.now)


# --- State ----------------------------------------------------------------

@dataclass(frozen=True)
class AnswerState:
    value: str = ""
    original_value: str = ""
    is_correct: Optional[bool] = None
    show_answer: bool = False
    incorrect_attempts: int = 0


@dataclass(frozen=True)
class CaseRef:
    """A word-form case together with the block it belongs to."""
    block_index: int
    case_index: int
    block: WordFormBlock
    case: WordFormCase


@dataclass(frozen=True)
class SessionState:
    kind: str
    content: Any
    settings: ExerciseSettings
    items: tuple
    status: Status = Status.WAITING_INPUT
    position: int = 0
    answer: AnswerState = field(default_factory=AnswerState)
    stats: SessionStats = field(default_factory=SessionStats)
    auto_advance_enabled: bool = True
    hints: frozenset = frozenset()
    started_at_ms: int = 0
    finished_at_ms: Optional[int] = None
    result: Optional[dict] = None
    records: dict = field(default_factory=dict)
    reviews: dict = field(default_factory=dict)
    ratings: dict = field(default_factory=dict)


# --- Variants -------------------------------------------------------------

_ANSWERING = frozenset({Status.WAITING_INPUT, Status.REQUIRE_CORRECTION})


class WordFormVariant:
    kind = WORD_FORM
    hint_kinds = frozenset({"name", "prompt", "additional"})
    submit_from = _ANSWERING
    advance_from = frozenset({Status.CORRECT_ANSWER, Status.REQUIRE_CONTINUE})
    skip_from = frozenset({Status.WAITING_INPUT})
    timer_from = frozenset({Status.CORRECT_ANSWER})

    def build_items(self, content, settings, rng, records, at_ms) -> tuple:
        items = []
        for b, block in enumerate(content.blocks):
            cases = list(block.cases)
            if settings.shuffle:
                rng.shuffle(cases)
            items.extend(CaseRef(b, c, block, case) for c, case in enumerate(cases))
        return tuple(items)

    def evaluate(self, item: CaseRef, answer: str) -> bool:
        return check_answer(answer, item.case.answers)

    def describe(self, item: CaseRef, state: SessionState) -> dict:
        return {
            "block": item.block.name,
            "block_translation": item.block.translation,
            "prompt": item.case.prompt,
            "hint": item.case.hint,
            "correct_answers": list(item.case.answers) if state.answer.show_answer else None,
        }


class ChoiceVariant:
    kind = MULTIPLE_CHOICE
    hint_kinds = frozenset({"hint"})
    submit_from = _ANSWERING
    advance_from = frozenset({Status.CORRECT_ANSWER, Status.REQUIRE_CONTINUE})
    skip_from = frozenset({Status.WAITING_INPUT})
    timer_from = frozenset({Status.CORRECT_ANSWER})

    def build_items(self, content, settings, rng, records, at_ms) -> tuple:
        questions = list(content.questions)
        if settings.shuffle:
            rng.shuffle(questions)
        return tuple(questions)

    def evaluate(self, item, answer: str) -> bool:
        return answer.strip() == item.correct_option_id

    def describe(self, item, state: SessionState) -> dict:
        return {
            "question_id": item.id,
            "text": item.text,
            "options": [{"id": o.id, "text": o.text} for o in item.options],
            "hint": item.hint,
            "selected_option_id": state.answer.value or None,
            "correct_option_id": item.correct_option_id if state.answer.show_answer else None,
        }


class FlashcardVariant:
    kind = FLASHCARD
    hint_kinds = frozenset()
    submit_from = frozenset()
    advance_from = frozenset({Status.CORRECT_ANSWER, Status.WRONG_ANSWER, Status.REQUIRE_CONTINUE})
    skip_from = frozenset({Status.WAITING_INPUT, Status.CHECKING})
    timer_from = frozenset({Status.CORRECT_ANSWER, Status.WRONG_ANSWER})

    def prepare_records(self, content, records) -> dict:
        if records is None:
            records = {}
        elif not isinstance(records, dict):
            records = {r.card_id: r for r in records}
        return {
            card.id: records.get(card.id) or sm2.initial_record(card.id, content.id)
            for card in content.cards
        }

    def build_items(self, content, settings, rng, records, at_ms) -> tuple:
        cards = list(content.cards)
        if settings.shuffle:
            rng.shuffle(cards)
        by_id = {card.id: card for card in cards}
        now = datetime.fromtimestamp(at_ms / 1000)
        limits = content.srs_settings
        new_count = review_count = 0
        items = []
        for record in sm2.rank_due([records[card.id] for card in cards], now):
            if record.state == "new":
                if new_count >= limits.new_cards_per_session:
                    continue
                new_count += 1
            else:
                if review_count >= limits.reviews_per_session:
                    continue
                review_count += 1
            items.append(by_id[record.card_id])
        return tuple(items)

    def evaluate(self, item, answer: str) -> bool:
        return False

    def describe(self, item, state: SessionState) -> dict:
        record = state.reviews.get(item.id) or state.records.get(item.id)
        return {
            "card_id": item.id,
            "front": item.front,
            "back": item.back if state.answer.show_answer else None,
            "card_state": record.state if record else None,
        }


VARIANTS = {
    WORD_FORM: WordFormVariant(),
    MULTIPLE_CHOICE: ChoiceVariant(),
    FLASHCARD: FlashcardVariant(),
}


def _variant(kind: str):
    try:
        return VARIANTS[kind]
    except KeyError:
        raise ContentError(f"unknown exercise type {kind!r}") from None


# --- Initialization -------------------------------------------------------

def initialize_state(
    content,
    settings: Optional[ExerciseSettings] = None,
    records=None,
    seed: Optional[int] = None,
    at_ms: Optional[int] = None,
) -> SessionState:
    """Build the initial state for one run of ``content``.

    Raises ContentError when there is nothing to run, e.g. an exercise with
    no cases or a flashcard deck with no cards due.
    """
    variant = _variant(getattr(content, "type", None))
    settings = settings or content.settings
    at_ms = now_ms() if at_ms is None else at_ms
    if variant.kind == FLASHCARD:
        records = variant.prepare_records(content, records)
    else:
        records = {}
    items = variant.build_items(content, settings, random.Random(seed), records, at_ms)
    if not items:
        raise ContentError(f"exercise {content.id!r} has no items to run")
    return SessionState(
        kind=variant.kind,
        content=content,
        settings=settings,
        items=items,
        auto_advance_enabled=settings.auto_advance,
        started_at_ms=at_ms,
        records=records,
    )


# --- Transitions ----------------------------------------------------------

def _move_next(state: SessionState, at_ms: int, stats: SessionStats) -> SessionState:
    if state.position + 1 < len(state.items):
        return replace(
            state,
            status=Status.WAITING_INPUT,
            position=state.position + 1,
            answer=AnswerState(),
            stats=stats,
        )
    result = completion_result(stats, len(state.items), state.started_at_ms, at_ms)
    logger.info("Exercise %s completed: %s", state.content.id, result)
    return replace(state, status=Status.COMPLETED, stats=stats, result=result, finished_at_ms=at_ms)


def _submit(state: SessionState, event: Submit) -> SessionState:
    variant = VARIANTS[state.kind]
    answer = event.answer if isinstance(event.answer, str) else ""
    if state.status not in variant.submit_from or not answer.strip():
        return state
    first_attempt = state.status is Status.WAITING_INPUT
    if variant.evaluate(current_item(state), answer):
        return replace(
            state,
            status=Status.CORRECT_ANSWER,
            answer=replace(state.answer, value=answer, is_correct=True, incorrect_attempts=0),
            stats=state.stats.record_correct() if first_attempt else state.stats,
        )
    return replace(
        state,
        status=Status.REQUIRE_CORRECTION,
        answer=replace(
            state.answer,
            value=answer,
            original_value=answer if first_attempt else state.answer.original_value,
            is_correct=False,
            show_answer=True,
            incorrect_attempts=state.answer.incorrect_attempts + 1,
        ),
        stats=state.stats.record_incorrect() if first_attempt else state.stats,
    )


def _advance(state: SessionState, event: Advance) -> SessionState:
    if state.status not in VARIANTS[state.kind].advance_from:
        return state
    return _move_next(state, event.at_ms, state.stats)


def _skip(state: SessionState, event: Skip) -> SessionState:
    if not state.settings.allow_skip or state.status not in VARIANTS[state.kind].skip_from:
        return state
    return _move_next(state, event.at_ms, state.stats.record_skipped())


def _require_continue(state: SessionState, event: RequireContinue) -> SessionState:
    if state.status not in VARIANTS[state.kind].timer_from:
        return state
    return replace(state, status=Status.REQUIRE_CONTINUE)


def _toggle_auto_advance(state: SessionState, event: ToggleAutoAdvance) -> SessionState:
    return replace(state, auto_advance_enabled=not state.auto_advance_enabled)


def _toggle_hint(state: SessionState, event: ToggleHint) -> SessionState:
    if event.kind not in VARIANTS[state.kind].hint_kinds:
        return state
    return replace(state, hints=state.hints ^ {event.kind})


def _flip(state: SessionState, event: Flip) -> SessionState:
    if state.kind != FLASHCARD or state.status is not Status.WAITING_INPUT:
        return state
    return replace(state, status=Status.CHECKING, answer=replace(state.answer, show_answer=True))


def _rate(state: SessionState, event: Rate) -> SessionState:
    quality = event.quality
    if state.kind != FLASHCARD or state.status is not Status.CHECKING:
        return state
    if isinstance(quality, bool) or not isinstance(quality, int) or not 0 <= quality <= 5:
        return state
    card = current_item(state)
    updated = sm2.review(state.records[card.id], quality, state.content.srs_settings, event.at)
    recalled = quality >= 3
    return replace(
        state,
        status=Status.CORRECT_ANSWER if recalled else Status.WRONG_ANSWER,
        answer=replace(state.answer, value=str(quality), is_correct=recalled),
        stats=state.stats.record_correct() if recalled else state.stats.record_incorrect(),
        reviews={**state.reviews, card.id: updated},
        ratings={**state.ratings, card.id: quality},
    )


def _restart(state: SessionState, event: Restart) -> SessionState:
    """Start over. Restarting the same deck keeps the ratings made so far.

    Rated cards are rescheduled from their updated records, and the pending
    reviews and ratings carry over so the host can still persist them.
    """
    carry_over = event.records is None and event.content.id == state.content.id
    records = {**state.records, **state.reviews} if carry_over else event.records
    new_state = initialize_state(event.content, event.settings, records, event.seed, event.at_ms)
    if carry_over and state.reviews:
        new_state = replace(new_state, reviews=dict(state.reviews), ratings=dict(state.ratings))
    return new_state


_HANDLERS = {
    Submit: _submit,
    Advance: _advance,
    Skip: _skip,
    RequireContinue: _require_continue,
    ToggleAutoAdvance: _toggle_auto_advance,
    ToggleHint: _toggle_hint,
    Restart: _restart,
    Flip: _flip,
    Rate: _rate,
}


def reduce(state: SessionState, event) -> SessionState:
    handler = _HANDLERS.get(type(event))
    if handler is None or (state.status is Status.COMPLETED and not isinstance(event, Restart)):
        logger.debug("Ignored %s in %s", type(event).__name__, state.status.value)
        return state
    new_state = handler(state, event)
    if new_state is state:
        logger.debug("Ignored %s in %s", type(event).__name__, state.status.value)
    return new_state


# --- Timers ---------------------------------------------------------------

def pending_timer(state: SessionState, display_delay_ms: int = DISPLAY_DELAY_MS):
    """The timed transition the host should schedule for ``state``.

    Returns ``(event_type, delay_ms)`` or None. The host instantiates the
    event when the timer fires.
    """
    if state.status not in VARIANTS[state.kind].timer_from:
        return None
    if state.auto_advance_enabled:
        return Advance, state.settings.auto_advance_delay_ms
    return RequireContinue, display_delay_ms


# --- Selectors ------------------------------------------------------------

def current_item(state: SessionState):
    return state.items[state.position]


def current_block(state: SessionState) -> Optional[WordFormBlock]:
    item = current_item(state)
    return item.block if isinstance(item, CaseRef) else None


def current_record(state: SessionState) -> Optional[SRSRecord]:
    if state.kind != FLASHCARD:
        return None
    card = current_item(state)
    return state.reviews.get(card.id) or state.records.get(card.id)


def average_quality(state: SessionState) -> float:
    if not state.ratings:
        return 0.0
    return round(sum(state.ratings.values()) / len(state.ratings), 2)


def progress(state: SessionState) -> dict:
    total = len(state.items)
    completed = total if state.status is Status.COMPLETED else state.position
    return {"current": min(state.position + 1, total), "total": total, "completed_count": completed}


def snapshot(state: SessionState) -> dict:
    """Read-only view of the state for a host to render."""
    variant = VARIANTS[state.kind]
    return {
        "status": state.status.value,
        "kind": state.kind,
        "exercise_id": state.content.id,
        "position": state.position,
        "item": variant.describe(current_item(state), state),
        "progress": progress(state),
        "stats": state.stats.as_dict(),
        "answer": {
            "value": state.answer.value,
            "original_value": state.answer.original_value,
            "is_correct": state.answer.is_correct,
            "show_answer": state.answer.show_answer,
            "incorrect_attempts": state.answer.incorrect_attempts,
        },
        "hints": {kind: kind in state.hints for kind in sorted(variant.hint_kinds)},
        "auto_advance_enabled": state.auto_advance_enabled,
        "result": state.result,
    }
