"""
JobSprint Autofill: semi-supervised form filling from previously given answers.

This package discovers fillable fields on a form surface, derives a question
for each, matches it against a knowledge base of earlier answers and applies
the best answer after optional user approval, one field at a time. It never
submits a form on its own.
"""

__version__ = "0.1.0"
__author__ = "JobSprint Team"

from jobsprint_autofill.autofill.coordinator import MultiSessionCoordinator
from jobsprint_autofill.autofill.session import SessionStateMachine
from jobsprint_autofill.core.safety import SafetyGate
from jobsprint_autofill.knowledge.store import InMemoryKnowledgeBase, JsonFileKnowledgeBase

__all__ = [
    "MultiSessionCoordinator",
    "SessionStateMachine",
    "SafetyGate",
    "InMemoryKnowledgeBase",
    "JsonFileKnowledgeBase",
]
