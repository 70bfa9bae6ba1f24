"""Tolerant answer matching for free-response exercises."""
import logging
import unicodedata

logger = logging.getLogger(__name__)


def normalize_answer(text: str) -> str:
    """Trim, case-fold and strip diacritics/tone marks from an answer."""
    decomposed = unicodedata.normalize("NFD", text.strip().casefold())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return unicodedata.normalize("NFC", stripped)


def is_correct(user_input: str, accepted_answers) -> bool:
    normalized = normalize_answer(user_input)
    return any(normalize_answer(answer) == normalized for answer in accepted_answers)


def check_answer(user_input: str, accepted_answers) -> bool:
    """Like is_correct, but a failure while normalizing counts as a wrong answer."""
    try:
        return is_correct(user_input, accepted_answers)
    except Exception:
        logger.warning("Answer evaluation failed for %r", user_input, exc_info=True)
        return False
