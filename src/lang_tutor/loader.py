"""Load exercise content from JSON/YAML files or plain dicts."""
import json
from pathlib import Path

import yaml

from lang_tutor.config import DEFAULT_SRS_SETTINGS, default_settings
from lang_tutor.errors import ContentError
from lang_tutor.models import (
    FLASHCARD, MULTIPLE_CHOICE, WORD_FORM, ChoiceExercise, ChoiceOption, ChoiceQuestion,
    ExerciseSettings, Flashcard, FlashcardExercise, SRSSettings, WordFormBlock, WordFormCase,
    WordFormExercise,
)

# Content files from the web app use camelCase keys
SETTING_KEYS = {
    "auto_advance": ("auto_advance", "autoAdvance"),
    "auto_advance_delay_ms": ("auto_advance_delay_ms", "autoAdvanceDelayMs"),
    "allow_skip": ("allow_skip", "allowSkip"),
    "shuffle": ("shuffle", "shuffleCases", "shuffleCards", "shuffleQuestions"),
}

SRS_KEYS = {
    "graduating_interval": ("graduating_interval", "graduatingInterval"),
    "graduation_step": ("graduation_step", "graduationStep"),
    "easy_interval": ("easy_interval", "easyInterval"),
    "easy_bonus": ("easy_bonus", "easyBonus"),
    "new_cards_per_session": ("new_cards_per_session", "newCardsPerDay"),
    "reviews_per_session": ("reviews_per_session", "reviewsPerDay"),
}


def read_file_content(file_path: str) -> dict:
    path = Path(file_path)
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    try:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ContentError(f"Could not parse {path.name}: {e}") from e
    if not isinstance(data, dict):
        raise ContentError(f"{path.name} must contain a single exercise object")
    return data


def _pick(data: dict, keys: tuple, default=None):
    for key in keys:
        if key in data:
            return data[key]
    return default


def _text(value, where: str) -> str:
    if isinstance(value, dict):
        # Localized text: prefer English, else the first translation
        value = value.get("en") or next(iter(value.values()), "")
    if not isinstance(value, str) or not value.strip():
        raise ContentError(f"{where} must be a non-empty string")
    return value


def _list(data: dict, keys: tuple, where: str) -> list:
    value = _pick(data, keys)
    if not isinstance(value, list) or not value:
        raise ContentError(f"{where} must be a non-empty list")
    return value


def parse_settings(raw: dict | None, exercise_type: str) -> ExerciseSettings:
    base = default_settings(exercise_type)
    if not raw:
        return base
    values = {}
    for name, keys in SETTING_KEYS.items():
        value = _pick(raw, keys, getattr(base, name))
        if name == "auto_advance_delay_ms":
            if isinstance(value, bool):
                raise ContentError(f"setting {keys[0]!r} must be a number of milliseconds")
            values[name] = int(value)
        elif isinstance(value, bool):
            values[name] = value
        else:
            raise ContentError(f"setting {keys[0]!r} must be true or false")
    if values["auto_advance_delay_ms"] < 0:
        raise ContentError("auto-advance delay must not be negative")
    return ExerciseSettings(**values)


def parse_srs_settings(raw: dict | None) -> SRSSettings:
    if not raw:
        return DEFAULT_SRS_SETTINGS
    values = {}
    for name, keys in SRS_KEYS.items():
        value = _pick(raw, keys, getattr(DEFAULT_SRS_SETTINGS, name))
        values[name] = float(value) if name == "easy_bonus" else int(value)
    return SRSSettings(**values)


def _parse_word_form(data: dict, exercise_id: str, title: str, settings) -> WordFormExercise:
    blocks = []
    for b, raw_block in enumerate(_list(data, ("blocks",), "blocks")):
        cases = []
        for c, raw_case in enumerate(_list(raw_block, ("cases",), f"blocks[{b}].cases")):
            where = f"blocks[{b}].cases[{c}]"
            answers = _pick(raw_case, ("answers", "correct"))
            if isinstance(answers, str):
                answers = [answers]
            if not isinstance(answers, list) or not answers:
                raise ContentError(f"{where} needs at least one accepted answer")
            cases.append(WordFormCase(
                prompt=_text(raw_case.get("prompt"), f"{where}.prompt"),
                answers=tuple(_text(a, f"{where}.answers") for a in answers),
                hint=raw_case.get("hint") or "",
            ))
        translation = _pick(raw_block, ("translation", "nameHintI18n"))
        blocks.append(WordFormBlock(
            name=_text(raw_block.get("name"), f"blocks[{b}].name"),
            cases=tuple(cases),
            translation=_text(translation, f"blocks[{b}].translation") if translation else "",
        ))
    return WordFormExercise(id=exercise_id, title=title, blocks=tuple(blocks), settings=settings)


def _parse_choice(data: dict, exercise_id: str, title: str, settings) -> ChoiceExercise:
    questions = []
    for q, raw in enumerate(_list(data, ("questions",), "questions")):
        where = f"questions[{q}]"
        options = tuple(
            ChoiceOption(id=str(o["id"]), text=_text(o.get("text"), f"{where}.options"))
            for o in _list(raw, ("options",), f"{where}.options")
        )
        correct = str(_pick(raw, ("correct_option_id", "correctOptionId"), ""))
        if correct not in {o.id for o in options}:
            raise ContentError(f"{where} correct option {correct!r} is not one of its options")
        questions.append(ChoiceQuestion(
            id=str(raw.get("id", q)),
            text=_text(raw.get("text"), f"{where}.text"),
            options=options,
            correct_option_id=correct,
            hint=raw.get("hint") or "",
        ))
    return ChoiceExercise(id=exercise_id, title=title, questions=tuple(questions), settings=settings)


def _parse_flashcards(data: dict, exercise_id: str, title: str, settings) -> FlashcardExercise:
    cards = []
    for i, raw in enumerate(_list(data, ("cards",), "cards")):
        cards.append(Flashcard(
            id=str(raw.get("id", i)),
            front=_text(raw.get("front"), f"cards[{i}].front"),
            back=_text(_pick(raw, ("back", "backHintI18n")), f"cards[{i}].back"),
        ))
    if len({c.id for c in cards}) != len(cards):
        raise ContentError("card ids must be unique")
    return FlashcardExercise(
        id=exercise_id, title=title, cards=tuple(cards), settings=settings,
        srs_settings=parse_srs_settings(_pick(data, ("srs_settings", "srsSettings"))),
    )


PARSERS = {
    WORD_FORM: _parse_word_form,
    MULTIPLE_CHOICE: _parse_choice,
    FLASHCARD: _parse_flashcards,
}


def parse_exercise(data: dict):
    """Build exercise content from a dict. Raises ContentError if it is malformed or empty."""
    if not isinstance(data, dict):
        raise ContentError("exercise must be an object")
    exercise_type = data.get("type", WORD_FORM)
    parser = PARSERS.get(exercise_type)
    if parser is None:
        raise ContentError(f"unknown exercise type {exercise_type!r}")
    exercise_id = str(data.get("id") or "").strip()
    if not exercise_id:
        raise ContentError("exercise id is required")
    title = data.get("title") or exercise_id
    try:
        settings = parse_settings(data.get("settings"), exercise_type)
        return parser(data, exercise_id, title, settings)
    except ContentError:
        raise
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise ContentError(f"malformed {exercise_type} exercise {exercise_id!r}: {e}") from e


def load_exercise(file_path: str):
    return parse_exercise(read_file_content(file_path))
