"""Record mode: capture the user's own answers into the knowledge base."""

from typing import Dict, List, Optional, Tuple

from jobsprint_autofill.autofill.answers import AnswerTypeClassifier
from jobsprint_autofill.autofill.question import QuestionExtractor
from jobsprint_autofill.config import settings
from jobsprint_autofill.core.models import FormField, QAEntry
from jobsprint_autofill.knowledge.base import KnowledgeBaseStore
from jobsprint_autofill.utils.logging import get_logger

logger = get_logger(__name__)


class AnswerRecorder:
    """
    Collects question/answer pairs while the user fills a form by hand.

    Captured pairs are held in memory, keyed by question (the latest value
    wins), and written to the store only when recording stops.
    """

    def __init__(
        self,
        knowledge_base: KnowledgeBaseStore,
        extractor: Optional[QuestionExtractor] = None,
        classifier: Optional[AnswerTypeClassifier] = None,
        min_question_length: Optional[int] = None,
    ):
        self.knowledge_base = knowledge_base
        self.extractor = extractor or QuestionExtractor()
        self.classifier = classifier or AnswerTypeClassifier()
        self.min_question_length = (
            settings.min_question_length if min_question_length is None else min_question_length
        )
        self.active = False
        self._captured: Dict[str, QAEntry] = {}
        self.logger = logger.bind(component="answer_recorder")

    def start(self) -> None:
        if self.active:
            self.logger.warning("Record mode already active")
            return
        self.active = True
        self._captured.clear()
        self.logger.info("Record mode started")

    def pause(self) -> None:
        if not self.active:
            return
        self.active = False
        self.logger.info("Record mode paused", captured=len(self._captured))

    def resume(self) -> None:
        self.active = True
        self.logger.info("Record mode resumed", captured=len(self._captured))

    def capture(self, field: FormField, value: Optional[str]) -> Optional[QAEntry]:
        """Capture the value the user gave a field.

        Returns the captured entry, or None when recording is inactive, the
        value is empty or no question could be extracted.
        """
        if not self.active:
            return None
        if value is None or not value.strip():
            return None

        question = self.extractor.extract(field)
        if len(question) < self.min_question_length:
            self.logger.warning("Could not extract question for input", field_id=field.id, name=field.name)
            return None

        entry = QAEntry(
            question=question,
            answer=value.strip(),
            answer_type=self.classifier.classify(field),
        )
        updated = entry.question in self._captured
        self._captured[entry.question] = entry
        self.logger.info("Updated Q&A pair" if updated else "Captured Q&A pair", question=entry.question)
        return entry

    @property
    def captured(self) -> List[QAEntry]:
        return list(self._captured.values())

    async def stop(self) -> Tuple[int, int]:
        """
        Stop recording and save captured pairs.

        Returns:
            Tuple of (new_count, updated_count)
        """
        self.active = False
        new_count = 0
        updated_count = 0
        for entry in self._captured.values():
            inserted = await self.knowledge_base.upsert_by_question(entry.question, entry.answer, entry.answer_type)
            if inserted:
                new_count += 1
            else:
                updated_count += 1

        self.logger.info(
            "Record mode stopped",
            captured=len(self._captured),
            new=new_count,
            updated=updated_count,
        )
        self._captured.clear()
        return new_count, updated_count
