"""Tests for data model classes."""
import dataclasses

import pytest

from lang_tutor.models import (
    ChoiceOption, ChoiceQuestion, ExerciseSettings, SRSRecord, SRSSettings,
)


def test_exercise_settings_defaults():
    s = ExerciseSettings()
    assert s.auto_advance is True
    assert s.auto_advance_delay_ms == 1500
    assert s.allow_skip is False
    assert s.shuffle is False


def test_srs_settings_defaults():
    s = SRSSettings()
    assert s.graduating_interval == 1
    assert s.easy_interval == 4
    assert s.easy_bonus == 1.3


def test_srs_record_defaults():
    r = SRSRecord(card_id="hello", exercise_id="greetings")
    assert r.ease_factor == 2.5
    assert r.interval == 0
    assert r.repetitions == 0
    assert r.state == "new"
    assert r.next_review is None


def test_records_are_frozen():
    r = SRSRecord(card_id="hello", exercise_id="greetings")
    with pytest.raises(dataclasses.FrozenInstanceError):
        r.interval = 3


def test_choice_question_correct_option():
    q = ChoiceQuestion("q1", "con mèo", (ChoiceOption("a", "cat"), ChoiceOption("b", "dog")), "b")
    assert q.correct_option.text == "dog"
    assert q.hint == ""


def test_word_form_fixture(word_form):
    assert word_form.type == "word-form"
    assert word_form.settings.auto_advance_delay_ms == 1500


def test_default_delays_by_type(choice, deck):
    assert choice.settings.auto_advance_delay_ms == 300
    assert deck.settings.auto_advance_delay_ms == 50
    assert deck.type == "flashcard"
