"""
Input validation utilities
"""
from typing import List, Optional

from watchparty.config import settings
from watchparty.utils.errors import LimitExceeded, ValidationError

MAX_NAME_LENGTH = 50
MAX_QUESTION_LENGTH = 500


def validate_user_name(name: Optional[str]) -> str:
    """Validate a display name and return it stripped"""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Name is required", {"field": "name"})
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"Name must be at most {MAX_NAME_LENGTH} characters",
            {"field": "name", "max_length": MAX_NAME_LENGTH}
        )
    return cleaned


def validate_question(
    text: Optional[str],
    options: Optional[List[str]],
    correct_index: int,
    duration_seconds: int
) -> tuple:
    """
    Validate a draft question

    Returns:
        Tuple of (text, options) stripped of surrounding whitespace

    Raises:
        LimitExceeded: option count outside [MIN_OPTIONS, MAX_OPTIONS]
        ValidationError: empty text/option, bad correct index or duration
    """
    cleaned_text = (text or "").strip()
    if not cleaned_text:
        raise ValidationError("Question text is required", {"field": "text"})
    if len(cleaned_text) > MAX_QUESTION_LENGTH:
        raise ValidationError(
            f"Question text must be at most {MAX_QUESTION_LENGTH} characters",
            {"field": "text", "max_length": MAX_QUESTION_LENGTH}
        )

    options = options or []
    if len(options) < settings.MIN_OPTIONS:
        raise LimitExceeded(
            f"A question needs at least {settings.MIN_OPTIONS} options",
            {"field": "options", "count": len(options), "min": settings.MIN_OPTIONS}
        )
    if len(options) > settings.MAX_OPTIONS:
        raise LimitExceeded(
            f"A question can have at most {settings.MAX_OPTIONS} options",
            {"field": "options", "count": len(options), "max": settings.MAX_OPTIONS}
        )

    cleaned_options = [str(option).strip() for option in options]
    if any(not option for option in cleaned_options):
        raise ValidationError("Options cannot be empty", {"field": "options"})

    if isinstance(correct_index, bool) or not isinstance(correct_index, int):
        raise ValidationError("Correct index must be an integer", {"field": "correct_index"})
    if not 0 <= correct_index < len(cleaned_options):
        raise ValidationError(
            "Correct index is out of range",
            {"field": "correct_index", "value": correct_index, "options": len(cleaned_options)}
        )

    if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, int):
        raise ValidationError("Duration must be an integer", {"field": "duration_seconds"})
    if not settings.MIN_DURATION_SECONDS <= duration_seconds <= settings.MAX_DURATION_SECONDS:
        raise ValidationError(
            f"Duration must be between {settings.MIN_DURATION_SECONDS} "
            f"and {settings.MAX_DURATION_SECONDS} seconds",
            {
                "field": "duration_seconds",
                "value": duration_seconds,
                "min": settings.MIN_DURATION_SECONDS,
                "max": settings.MAX_DURATION_SECONDS
            }
        )

    return cleaned_text, cleaned_options
