"""Safety gate for action controls found on form surfaces."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog

from jobsprint_autofill.core.models import Control, ControlClass

logger = structlog.get_logger(__name__)


DANGEROUS_KEYWORDS = (
    "submit",
    "send",
    "complete",
    "finish",
    "finalize",
    "confirm",
    "apply",
    "review",
)

PROCEED_KEYWORDS = (
    "next",
    "continue",
    "proceed",
    "forward",
    "go",
    "advance",
)


@dataclass
class ControlClassification:
    """Classification of a control for safety assessment."""
    text: str
    control_class: ControlClass
    matched_keyword: Optional[str] = None

    @property
    def is_dangerous(self) -> bool:
        return self.control_class == ControlClass.DANGEROUS


@dataclass
class AutoInvokeRecord:
    """Audit entry for one auto-proceed attempt."""
    timestamp: datetime
    session_id: Optional[str]
    control_text: Optional[str]
    control_class: Optional[ControlClass]
    invoked: bool
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "session_id": self.session_id,
            "control_text": self.control_text,
            "control_class": self.control_class.value if self.control_class else None,
            "invoked": self.invoked,
            "reason": self.reason,
        }


class ControlClassifier:
    """Classifies controls by keywords in their visible text.

    Dangerous keywords are checked first so that a control mentioning both
    kinds ("Continue & Submit") is dangerous.
    """

    def __init__(
        self,
        dangerous_keywords: Sequence[str] = DANGEROUS_KEYWORDS,
        proceed_keywords: Sequence[str] = PROCEED_KEYWORDS,
    ):
        self.dangerous_keywords = tuple(k.lower() for k in dangerous_keywords)
        self.proceed_keywords = tuple(k.lower() for k in proceed_keywords)

    def classify_text(self, text: str) -> ControlClassification:
        text_lower = (text or "").lower()

        for keyword in self.dangerous_keywords:
            if keyword in text_lower:
                return ControlClassification(text, ControlClass.DANGEROUS, keyword)

        for keyword in self.proceed_keywords:
            if keyword in text_lower:
                return ControlClassification(text, ControlClass.PROCEED, keyword)

        return ControlClassification(text, ControlClass.NEUTRAL)


class SafetyGate:
    """Only gate through which the engine may invoke a control.

    Controls classified dangerous are never invoked automatically. No option
    changes that; the dangerous keyword set always takes precedence.
    """

    def __init__(self, classifier: Optional[ControlClassifier] = None):
        self.classifier = classifier or ControlClassifier()
        self.audit_log: List[AutoInvokeRecord] = []
        self.logger = logger.bind(component="safety_gate")

    def classify(self, control: Control) -> ControlClass:
        return self.classifier.classify_text(control.text).control_class

    def may_auto_invoke(self, control: Control) -> bool:
        if self.classify(control) != ControlClass.PROCEED:
            return False
        return bool(control.visible and control.enabled)

    def find_dangerous(self, controls: Sequence[Control]) -> List[Control]:
        return [c for c in controls if self.classify(c) == ControlClass.DANGEROUS]

    def select_proceed_control(self, controls: Sequence[Control]) -> Optional[Control]:
        """First control in surface order that may be auto-invoked."""
        for control in controls:
            classification = self.classifier.classify_text(control.text)
            if classification.is_dangerous:
                self.logger.info("Skipping dangerous control", text=control.text, keyword=classification.matched_keyword)
                continue
            if self.may_auto_invoke(control):
                return control
        return None

    async def auto_proceed(
        self,
        controls: Sequence[Control],
        delay: float = 0.0,
        session_id: Optional[str] = None,
        cancelled: Optional[Callable[[], bool]] = None,
    ) -> Optional[Control]:
        """
        Invoke at most one proceed control after a visible delay.

        Args:
            controls: Controls reported by the surface, in surface order
            delay: Seconds to wait before invoking
            session_id: Session requesting the invocation, for the audit log
            cancelled: Checked after the delay; a true result aborts the invocation

        Returns:
            The invoked control, or None when nothing was invoked
        """
        control = self.select_proceed_control(controls)
        if control is None:
            self._record(session_id, None, None, False, "no proceed control found")
            self.logger.info("No proceed control found", session_id=session_id)
            return None

        self.logger.warning(
            "Invoking proceed control after delay",
            session_id=session_id,
            control_text=control.text,
            delay_seconds=delay,
        )
        if delay > 0:
            await asyncio.sleep(delay)

        if cancelled is not None and cancelled():
            self._record(session_id, control.text, ControlClass.PROCEED, False, "session cancelled")
            self.logger.info("Auto-proceed aborted, session cancelled", session_id=session_id)
            return None

        # The surface may have changed while waiting
        if not self.may_auto_invoke(control):
            self._record(session_id, control.text, self.classify(control), False, "control no longer eligible")
            self.logger.info("Proceed control no longer eligible", session_id=session_id, control_text=control.text)
            return None

        await control.invoke()
        self._record(session_id, control.text, ControlClass.PROCEED, True, "invoked")
        self.logger.info("Proceed control invoked", session_id=session_id, control_text=control.text)
        return control

    def get_audit_log(self, limit: Optional[int] = None) -> List[AutoInvokeRecord]:
        """Get audit log entries."""
        if limit:
            return self.audit_log[-limit:]
        return self.audit_log.copy()

    def _record(
        self,
        session_id: Optional[str],
        control_text: Optional[str],
        control_class: Optional[ControlClass],
        invoked: bool,
        reason: str,
    ) -> None:
        self.audit_log.append(
            AutoInvokeRecord(
                timestamp=datetime.now(timezone.utc),
                session_id=session_id,
                control_text=control_text,
                control_class=control_class,
                invoked=invoked,
                reason=reason,
            )
        )
