"""Abstract knowledge base interface."""

from abc import ABC, abstractmethod
from typing import List

from jobsprint_autofill.core.models import AnswerType, QAEntry


class KnowledgeBaseStore(ABC):
    """Storage for question/answer pairs keyed by exact question text."""

    @abstractmethod
    async def get_all(self) -> List[QAEntry]:
        """Get all entries in insertion order."""
        pass

    @abstractmethod
    async def upsert_by_question(self, question: str, answer: str, answer_type: AnswerType) -> bool:
        """Replace the entry with the identical question or append a new one.

        Returns True when a new entry was inserted.
        """
        pass
