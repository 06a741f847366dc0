"""Question/answer knowledge base storage and recording."""

from jobsprint_autofill.knowledge.base import KnowledgeBaseStore
from jobsprint_autofill.knowledge.store import InMemoryKnowledgeBase, JsonFileKnowledgeBase
from jobsprint_autofill.knowledge.recorder import AnswerRecorder

__all__ = ["KnowledgeBaseStore", "InMemoryKnowledgeBase", "JsonFileKnowledgeBase", "AnswerRecorder"]
