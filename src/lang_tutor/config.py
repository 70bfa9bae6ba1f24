"""Default settings and stored user preferences."""
from dataclasses import replace

from lang_tutor.db import DEFAULT_DB_PATH, get_connection
from lang_tutor.models import (
    FLASHCARD, MULTIPLE_CHOICE, WORD_FORM, ExerciseSettings, SRSSettings,
)

# Pause on a correct answer before asking for an explicit continue
DISPLAY_DELAY_MS = 1000

DEFAULT_SETTINGS = {
    WORD_FORM: ExerciseSettings(auto_advance=True, auto_advance_delay_ms=1500),
    MULTIPLE_CHOICE: ExerciseSettings(auto_advance=True, auto_advance_delay_ms=300),
    FLASHCARD: ExerciseSettings(auto_advance=True, auto_advance_delay_ms=50),
}

DEFAULT_SRS_SETTINGS = SRSSettings()

_TRUE_VALUES = ("1", "true", "yes", "on")


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def default_settings(exercise_type: str) -> ExerciseSettings:
    return DEFAULT_SETTINGS.get(exercise_type, DEFAULT_SETTINGS[WORD_FORM])


def apply_preferences(settings: ExerciseSettings, db_path: str = DEFAULT_DB_PATH) -> ExerciseSettings:
    """Overlay the stored auto-advance preferences on an exercise's settings."""
    auto_advance = get_setting(db_path, "auto_advance")
    delay = get_setting(db_path, "auto_advance_delay_ms")
    if auto_advance is not None:
        settings = replace(settings, auto_advance=auto_advance.strip().lower() in _TRUE_VALUES)
    if delay is not None and delay.strip().isdigit():
        settings = replace(settings, auto_advance_delay_ms=int(delay))
    return settings
