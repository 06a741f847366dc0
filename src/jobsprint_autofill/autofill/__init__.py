"""Field resolution engine: extraction, matching, application and sessions."""

from jobsprint_autofill.autofill.answers import AnswerApplier, AnswerTypeClassifier, resolve_value
from jobsprint_autofill.autofill.approval import (
    ApprovalHandler,
    AutoDecisionHandler,
    ConsoleApprovalHandler,
    PendingApprovalHandler,
)
from jobsprint_autofill.autofill.coordinator import MultiSessionCoordinator
from jobsprint_autofill.autofill.events import SessionEventLog
from jobsprint_autofill.autofill.question import QuestionExtractor, clean_question_text
from jobsprint_autofill.autofill.session import SessionStateMachine
from jobsprint_autofill.autofill.similarity import SimilarityMatcher, similarity

__all__ = [
    "AnswerApplier", "AnswerTypeClassifier", "resolve_value",
    "ApprovalHandler", "AutoDecisionHandler", "ConsoleApprovalHandler", "PendingApprovalHandler",
    "MultiSessionCoordinator",
    "SessionEventLog",
    "QuestionExtractor", "clean_question_text",
    "SessionStateMachine",
    "SimilarityMatcher", "similarity",
]
