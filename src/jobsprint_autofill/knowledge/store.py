"""Knowledge base store implementations."""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from jobsprint_autofill.config import settings
from jobsprint_autofill.core.exceptions import KnowledgeBaseError
from jobsprint_autofill.core.models import AnswerType, QAEntry
from jobsprint_autofill.knowledge.base import KnowledgeBaseStore
from jobsprint_autofill.utils.logging import get_logger

logger = get_logger(__name__)


class InMemoryKnowledgeBase(KnowledgeBaseStore):
    """Process-local store.

    Readers get a snapshot list, so concurrent sessions never observe a
    partially applied write. Writes are serialized by a lock.
    """

    def __init__(self, entries: Optional[List[QAEntry]] = None):
        self._entries: List[QAEntry] = []
        self._lock = asyncio.Lock()
        self.logger = logger.bind(component="knowledge_base", backend="memory")
        for entry in entries or []:
            self._upsert_entry(entry)

    async def get_all(self) -> List[QAEntry]:
        return list(self._entries)

    async def upsert_by_question(self, question: str, answer: str, answer_type: AnswerType) -> bool:
        entry = QAEntry(question=question, answer=answer, answer_type=answer_type)
        async with self._lock:
            inserted = self._upsert_entry(entry)
        self.logger.info("Q&A pair saved", question=entry.question, inserted=inserted)
        return inserted

    def _upsert_entry(self, entry: QAEntry) -> bool:
        # Copy-on-write keeps snapshots handed to readers stable
        entries = list(self._entries)
        for index, existing in enumerate(entries):
            if existing.question == entry.question:
                entries[index] = entry
                self._entries = entries
                return False
        entries.append(entry)
        self._entries = entries
        return True

    def __len__(self) -> int:
        return len(self._entries)


class JsonFileKnowledgeBase(InMemoryKnowledgeBase):
    """Store persisted as ``{"qaDatabase": [...]}`` in a JSON file."""

    def __init__(self, path: Optional[str] = None):
        super().__init__()
        self.path = Path(path or settings.knowledge_base_path)
        self.logger = logger.bind(component="knowledge_base", backend="json", path=str(self.path))
        self._loaded = False

    async def get_all(self) -> List[QAEntry]:
        if not self._loaded:
            async with self._lock:
                self._load()
        return await super().get_all()

    async def upsert_by_question(self, question: str, answer: str, answer_type: AnswerType) -> bool:
        entry = QAEntry(question=question, answer=answer, answer_type=answer_type)
        async with self._lock:
            self._load()
            inserted = self._upsert_entry(entry)
            self._save()
        self.logger.info("Q&A pair saved", question=entry.question, inserted=inserted)
        return inserted

    def _load(self) -> None:
        if self._loaded:
            return
        if not self.path.exists():
            self._loaded = True
            return

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            records = raw.get("qaDatabase", []) if isinstance(raw, dict) else raw
            for record in records:
                if "answerType" in record and "answer_type" not in record:
                    record = {**record, "answer_type": record["answerType"]}
                self._upsert_entry(QAEntry.model_validate(record))
        except (OSError, ValueError, ValidationError, AttributeError, TypeError) as e:
            raise KnowledgeBaseError(f"Could not load knowledge base from {self.path}: {e}") from e

        self._loaded = True
        self.logger.info("Knowledge base loaded", entries=len(self._entries))

    def _save(self) -> None:
        payload = {"qaDatabase": [entry.model_dump(mode="json") for entry in self._entries]}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".qa_", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise KnowledgeBaseError(f"Could not save knowledge base to {self.path}: {e}") from e
