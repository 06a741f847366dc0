"""Token-set similarity matching against the knowledge base."""

import re
from typing import FrozenSet, Iterable, Optional

from jobsprint_autofill.config import settings
from jobsprint_autofill.core.models import MatchResult, QAEntry
from jobsprint_autofill.utils.logging import get_logger

logger = get_logger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")


def tokenize(text: str) -> FrozenSet[str]:
    """Lower-case, drop punctuation and split into a set of tokens."""
    return frozenset(_NON_WORD.sub("", text.lower()).split())


def similarity(a: str, b: str) -> float:
    """Jaccard index of the token sets of ``a`` and ``b``.

    Two token-less inputs score 0.0 rather than dividing by zero.
    """
    tokens_a = tokenize(a)
    tokens_b = tokenize(b)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


class SimilarityMatcher:
    """Finds the stored question most similar to a prompt."""

    def __init__(self, threshold: Optional[float] = None):
        self.threshold = settings.similarity_threshold if threshold is None else threshold
        self.logger = logger.bind(component="similarity_matcher")

    def similarity(self, a: str, b: str) -> float:
        return similarity(a, b)

    def find_best(self, prompt: str, entries: Iterable[QAEntry]) -> Optional[MatchResult]:
        """Return the best entry scoring strictly above the threshold.

        Ties go to the earliest entry in input order.
        """
        best_entry: Optional[QAEntry] = None
        best_score = 0.0
        for entry in entries:
            score = similarity(prompt, entry.question)
            if best_entry is None or score > best_score:
                best_entry = entry
                best_score = score

        if best_entry is None:
            return None
        if best_score <= self.threshold:
            self.logger.debug(
                "Best match below threshold",
                prompt=prompt,
                best_question=best_entry.question,
                score=round(best_score, 3),
                threshold=self.threshold,
            )
            return None
        return MatchResult(entry=best_entry, score=best_score)
