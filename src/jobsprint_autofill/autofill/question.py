"""Question extraction for discovered form fields."""

import re
from typing import Iterable, Optional

from jobsprint_autofill.config import settings
from jobsprint_autofill.core.models import FormField

_WHITESPACE = re.compile(r"\s+")
# Asterisks, daggers and "(required)" markers at either end of a prompt
_LEADING_MARKERS = re.compile(r"^(?:[*†]+|\(\s*required\s*\)|-)\s*", re.IGNORECASE)
_TRAILING_MARKERS = re.compile(r"\s*(?:[*†]+|\(\s*required\s*\))$", re.IGNORECASE)


def clean_question_text(text: Optional[str], max_length: Optional[int] = None) -> str:
    """Trim, collapse whitespace and strip required markers from prompt text."""
    if not text:
        return ""
    cleaned = _WHITESPACE.sub(" ", text).strip()

    previous = None
    while previous != cleaned:
        previous = cleaned
        cleaned = _LEADING_MARKERS.sub("", cleaned)
        cleaned = _TRAILING_MARKERS.sub("", cleaned).strip()

    limit = max_length if max_length is not None else settings.max_question_length
    return cleaned[:limit].strip()


class QuestionExtractor:
    """Derives the natural-language question for a field.

    Candidate sources are tried in order: the associated label, the
    accessibility description, the placeholder, and finally the text of the
    surrounding container. The first candidate that is non-empty after
    cleaning wins. An empty result means the field should be skipped.
    """

    def __init__(self, max_length: Optional[int] = None):
        self.max_length = max_length if max_length is not None else settings.max_question_length

    def candidates(self, field: FormField) -> Iterable[Optional[str]]:
        return (field.label, field.description, field.placeholder, field.container_text)

    def extract(self, field: FormField) -> str:
        for candidate in self.candidates(field):
            cleaned = clean_question_text(candidate, self.max_length)
            if cleaned:
                return cleaned
        return ""
