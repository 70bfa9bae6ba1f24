"""Data classes for exercise content and spaced-repetition records."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

WORD_FORM = "word-form"
MULTIPLE_CHOICE = "multiple-choice"
FLASHCARD = "flashcard"
EXERCISE_TYPES = (WORD_FORM, MULTIPLE_CHOICE, FLASHCARD)

CARD_STATES = ("new", "learning", "review", "relearning")


@dataclass(frozen=True)
class ExerciseSettings:
    auto_advance: bool = True
    auto_advance_delay_ms: int = 1500
    allow_skip: bool = False
    shuffle: bool = False


@dataclass(frozen=True)
class SRSSettings:
    graduating_interval: int = 1
    graduation_step: int = 3
    easy_interval: int = 4
    easy_bonus: float = 1.3
    new_cards_per_session: int = 20
    reviews_per_session: int = 100


@dataclass(frozen=True)
class WordFormCase:
    prompt: str
    answers: tuple[str, ...]
    hint: str = ""


@dataclass(frozen=True)
class WordFormBlock:
    name: str
    cases: tuple[WordFormCase, ...]
    translation: str = ""


@dataclass(frozen=True)
class WordFormExercise:
    id: str
    title: str
    blocks: tuple[WordFormBlock, ...]
    settings: ExerciseSettings = field(default_factory=ExerciseSettings)
    type: str = WORD_FORM


@dataclass(frozen=True)
class ChoiceOption:
    id: str
    text: str


@dataclass(frozen=True)
class ChoiceQuestion:
    id: str
    text: str
    options: tuple[ChoiceOption, ...]
    correct_option_id: str
    hint: str = ""

    @property
    def correct_option(self) -> Optional[ChoiceOption]:
        for option in self.options:
            if option.id == self.correct_option_id:
                return option
        return None


@dataclass(frozen=True)
class ChoiceExercise:
    id: str
    title: str
    questions: tuple[ChoiceQuestion, ...]
    settings: ExerciseSettings = field(
        default_factory=lambda: ExerciseSettings(auto_advance_delay_ms=300)
    )
    type: str = MULTIPLE_CHOICE


@dataclass(frozen=True)
class Flashcard:
    id: str
    front: str
    back: str


@dataclass(frozen=True)
class FlashcardExercise:
    id: str
    title: str
    cards: tuple[Flashcard, ...]
    settings: ExerciseSettings = field(
        default_factory=lambda: ExerciseSettings(auto_advance_delay_ms=50)
    )
    srs_settings: SRSSettings = field(default_factory=SRSSettings)
    type: str = FLASHCARD


Exercise = Union[WordFormExercise, ChoiceExercise, FlashcardExercise]


@dataclass(frozen=True)
class SRSRecord:
    card_id: str
    exercise_id: str
    ease_factor: float = 2.5
    interval: int = 0
    repetitions: int = 0
    state: str = "new"
    last_review: Optional[datetime] = None
    next_review: Optional[datetime] = None
