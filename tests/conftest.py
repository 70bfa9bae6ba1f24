import pytest

from lang_tutor.db import init_db
from lang_tutor.models import (
    ChoiceExercise, ChoiceOption, ChoiceQuestion, Flashcard, FlashcardExercise,
    WordFormBlock, WordFormCase, WordFormExercise,
)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tutor.db")
    return db_path


@pytest.fixture
def ready_db(tmp_db):
    init_db(tmp_db)
    return tmp_db


@pytest.fixture
def word_form():
    """Two Vietnamese pronoun cases in one block."""
    block = WordFormBlock(
        name="Pronouns",
        translation="Đại từ",
        cases=(
            WordFormCase(prompt="I (neutral)", answers=("tôi",), hint="formal"),
            WordFormCase(prompt="you (older man)", answers=("anh",)),
        ),
    )
    return WordFormExercise(id="pronouns", title="Pronouns", blocks=(block,))


@pytest.fixture
def choice():
    options = (ChoiceOption("a", "cat"), ChoiceOption("b", "dog"), ChoiceOption("c", "fish"))
    return ChoiceExercise(
        id="animals",
        title="Animals",
        questions=(
            ChoiceQuestion("q1", "con mèo", options, "a", hint="meow"),
            ChoiceQuestion("q2", "con chó", options, "b"),
        ),
    )


@pytest.fixture
def deck():
    return FlashcardExercise(
        id="greetings",
        title="Greetings",
        cards=(
            Flashcard("hello", "xin chào", "hello"),
            Flashcard("thanks", "cảm ơn", "thank you"),
            Flashcard("bye", "tạm biệt", "goodbye"),
        ),
    )
