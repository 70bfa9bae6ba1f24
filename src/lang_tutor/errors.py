"""Exceptions raised by the tutor core."""


class TutorError(Exception):
    """Base class for all tutor errors."""


class ContentError(TutorError, ValueError):
    """Exercise content is malformed or has nothing to run."""
