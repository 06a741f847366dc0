"""Session state machine driving one semi-supervised autofill run."""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional

from jobsprint_autofill.autofill.answers import AnswerApplier, AnswerTypeClassifier, available_options
from jobsprint_autofill.autofill.approval import ApprovalHandler
from jobsprint_autofill.autofill.events import SessionEventLog
from jobsprint_autofill.autofill.question import QuestionExtractor
from jobsprint_autofill.autofill.similarity import SimilarityMatcher
from jobsprint_autofill.browser.surface import FormSurface
from jobsprint_autofill.config import settings
from jobsprint_autofill.core.exceptions import InvalidTransitionError, SurfaceError
from jobsprint_autofill.core.models import (
    ApprovalRequest,
    Decision,
    ErrorReport,
    FormField,
    Session,
    SessionState,
)
from jobsprint_autofill.core.safety import SafetyGate
from jobsprint_autofill.knowledge.base import KnowledgeBaseStore


class SessionStateMachine:
    """
    Explicit state machine over the fields of one surface.

    Fields are handled one at a time: extract the question, look it up in
    the knowledge base, optionally ask the user, apply, advance. The driver
    suspends only while waiting for a decision and while the knowledge base
    answers. Pausing keeps ``current_index`` so :meth:`resume` continues
    where the run stopped.
    """

    def __init__(
        self,
        session: Session,
        surface: FormSurface,
        knowledge_base: KnowledgeBaseStore,
        approval_handler: ApprovalHandler,
        extractor: Optional[QuestionExtractor] = None,
        matcher: Optional[SimilarityMatcher] = None,
        classifier: Optional[AnswerTypeClassifier] = None,
        safety_gate: Optional[SafetyGate] = None,
        min_question_length: Optional[int] = None,
        proceed_delay: Optional[float] = None,
    ):
        self.session = session
        self.surface = surface
        self.knowledge_base = knowledge_base
        self.approval_handler = approval_handler
        self.extractor = extractor or QuestionExtractor()
        self.matcher = matcher or SimilarityMatcher()
        self.classifier = classifier or AnswerTypeClassifier()
        self.safety_gate = safety_gate or SafetyGate()
        self.applier = AnswerApplier(surface)
        self.min_question_length = (
            settings.min_question_length if min_question_length is None else min_question_length
        )
        self.proceed_delay = settings.auto_proceed_delay if proceed_delay is None else proceed_delay
        self.events = SessionEventLog(session.id, session.surface_id)

        self._interrupt = asyncio.Event()
        self._driver_active = False
        self._cancel_requested = False
        self._waiters: List["asyncio.Future[SessionState]"] = []

    @property
    def state(self) -> SessionState:
        return self.session.state

    # ============ SIGNALS ============

    async def start(self) -> Session:
        """Scan the surface and process fields until suspension or the end."""
        if self.session.state != SessionState.IDLE:
            raise InvalidTransitionError("start", self.session.state.value)

        options = self.session.options
        if options.auto_playback:
            self.events.warning("Auto-playback enabled, fields will be filled without confirmation")
        if options.auto_proceed:
            self.events.warning("Auto-proceed enabled, a Next/Continue control will be invoked when done")

        self._transition(SessionState.SCANNING)
        try:
            fields = await self.surface.discover_fields()
            self._validate_fields(fields)
            controls = await self.surface.find_controls()
        except Exception as e:
            self._fail(e)
            return self.session

        if self.session.state != SessionState.SCANNING:
            return self.session

        self.session.fields = list(fields)
        if not fields:
            self.events.warning("No form inputs found on this surface")
            self._finish(SessionState.COMPLETED)
            return self.session

        dangerous = self.safety_gate.find_dangerous(controls)
        if dangerous:
            self.events.warning(
                f"Found {len(dangerous)} submit/review controls, these are never invoked automatically",
                controls=[c.text for c in dangerous],
            )
        self.events.success(
            f"Found {len(fields)} form inputs",
            inputs=[{"id": f.id, "kind": f.kind.value, "question": self.extractor.extract(f)} for f in fields],
        )

        self.session.current_index = 0
        self.session.processed.clear()
        self.session.skipped.clear()
        self._transition(SessionState.RUNNING)
        return await self._drive()

    async def resume(self) -> Session:
        """Continue a paused session from its retained index."""
        if self.session.state != SessionState.PAUSED:
            raise InvalidTransitionError("resume", self.session.state.value)
        self.events.info("Autofill resumed", current_index=self.session.current_index)
        self._transition(SessionState.RUNNING)
        if self._driver_active:
            # The interrupted driver is still unwinding and picks the run back up
            await self.wait_until(SessionState.PAUSED)
            return self.session
        return await self._drive()

    def pause(self) -> None:
        """Suspend a running or waiting session."""
        if self.session.state not in (SessionState.RUNNING, SessionState.WAITING_USER):
            raise InvalidTransitionError("pause", self.session.state.value)
        self.events.warning("User paused autofill")
        self._transition(SessionState.PAUSED)
        self._interrupt.set()

    def cancel(self) -> None:
        """Move straight to a terminal state, discarding any pending decision."""
        self._cancel_requested = True
        if self.session.state.is_terminal:
            return
        self.events.warning("Autofill cancelled", current_index=self.session.current_index)
        self._finish(SessionState.CANCELLED)
        self._interrupt.set()

    async def wait_until(self, *states: SessionState) -> SessionState:
        """Wait until the session is in one of ``states`` or terminal."""
        while self.session.state not in states and not self.session.state.is_terminal:
            future: "asyncio.Future[SessionState]" = asyncio.get_running_loop().create_future()
            self._waiters.append(future)
            await future
        return self.session.state

    # ============ DRIVER ============

    async def _drive(self) -> Session:
        self._driver_active = True
        try:
            while self.session.state == SessionState.RUNNING:
                if self.session.current_index >= len(self.session.fields):
                    await self._complete()
                    break
                await self._step()
        except Exception as e:
            self._fail(e)
        finally:
            self._driver_active = False
        return self.session

    async def _step(self) -> None:
        index = self.session.current_index
        field = self.session.fields[index]
        question = self.extractor.extract(field)

        self.events.info(
            f"Processing input {index + 1}/{len(self.session.fields)}",
            field_id=field.id,
            kind=field.kind.value,
            question=question,
        )

        if len(question) < self.min_question_length:
            self.events.warning("Skipping input: no question found", field_id=field.id, name=field.name)
            self._advance(index, applied=False)
            return

        entries = await self.knowledge_base.get_all()
        if self.session.state != SessionState.RUNNING:
            return

        match = self.matcher.find_best(question, entries)
        if match is None:
            self.events.info("No matching Q&A found for question", question=question)
            self._advance(index, applied=False)
            return

        answer_type = self.classifier.effective_type(field, match.entry.answer_type)
        options = available_options(field)
        self.events.success(
            "Found matching Q&A pair",
            question=question,
            matched_question=match.entry.question,
            suggested_answer=match.entry.answer,
            similarity=round(match.score, 3),
            answer_type=answer_type.value,
            available_options=options,
        )

        if not self.session.options.auto_playback:
            request = ApprovalRequest(
                session_id=self.session.id,
                question=question,
                proposed_answer=match.entry.answer,
                answer_type=answer_type,
                available_options=options,
                similarity=match.score,
                progress=self.session.progress(),
            )
            decision = await self._await_decision(request)
            if decision is None:
                return
            if decision == Decision.PAUSE:
                self.pause()
                return
            self._transition(SessionState.RUNNING)
            if decision == Decision.REJECT:
                self.events.info("User skipped input", question=question)
                self._advance(index, applied=False)
                return
        else:
            self.events.info("Auto-filling (no confirmation)", question=question, answer=match.entry.answer)

        value = self.applier.resolve(field, answer_type, match.entry.answer, options)
        if value is None:
            self.events.warning(
                "Answer could not be mapped onto the field",
                question=question,
                answer=match.entry.answer,
                available_options=options,
            )
            self._advance(index, applied=False)
            return

        await self.applier.apply_value(field, value)
        self.session.applied_values[index] = value
        self.events.success(
            "Successfully filled input",
            question=question,
            answer=value,
            auto=self.session.options.auto_playback,
        )
        self._advance(index, applied=True)

    async def _await_decision(self, request: ApprovalRequest) -> Optional[Decision]:
        """Suspend until the handler decides or the session is interrupted.

        Returns None when a pause or cancel arrived first.
        """
        self._interrupt.clear()
        self._transition(SessionState.WAITING_USER)

        decide_task = asyncio.ensure_future(self.approval_handler.decide(request))
        interrupt_task = asyncio.ensure_future(self._interrupt.wait())
        try:
            done, _ = await asyncio.wait({decide_task, interrupt_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (decide_task, interrupt_task):
                if not task.done():
                    task.cancel()

        if self.session.state != SessionState.WAITING_USER or decide_task not in done:
            return None
        return decide_task.result()

    async def _complete(self) -> None:
        self.events.success(
            "Autofill process completed",
            total=len(self.session.fields),
            processed=len(self.session.processed),
            skipped=len(self.session.skipped),
        )
        self._finish(SessionState.COMPLETED)

        if not self.session.options.auto_proceed:
            return

        self.events.info("Auto-proceed enabled, looking for a Next/Continue control")
        try:
            controls = await self.surface.find_controls()
            invoked = await self.safety_gate.auto_proceed(
                controls,
                delay=self.proceed_delay,
                session_id=self.session.id,
                cancelled=lambda: self._cancel_requested,
            )
        except Exception as e:
            # Filling already finished; the failed click is reported, not retried
            self.events.error("Error during auto-proceed", error=str(e), error_type=type(e).__name__)
            return

        if invoked is None:
            self.events.info("No proceed control invoked, staying on current page")
        else:
            self.events.success("Invoked proceed control", control_text=invoked.text)

    # ============ BOOKKEEPING ============

    def _advance(self, index: int, applied: bool) -> None:
        if applied:
            self.session.processed.add(index)
        else:
            self.session.skipped.add(index)
        self.session.current_index = index + 1

    def _validate_fields(self, fields: object) -> None:
        if not isinstance(fields, list) or not all(isinstance(f, FormField) for f in fields):
            raise SurfaceError("Form surface returned malformed field data", self.session.surface_id)

    def _fail(self, error: Exception) -> None:
        if self.session.state.is_terminal:
            self.events.info("Ignoring failure after session end", error=str(error))
            return
        self.session.error = ErrorReport(
            session_id=self.session.id,
            surface_id=self.session.surface_id,
            last_index=self.session.current_index,
            message=str(error),
            error_type=type(error).__name__,
        )
        self.events.error(
            "Fatal error in autofill process",
            error=str(error),
            error_type=type(error).__name__,
            last_index=self.session.current_index,
        )
        self._finish(SessionState.ERROR)

    def _finish(self, state: SessionState) -> None:
        self.session.finished_at = datetime.now(timezone.utc)
        self._transition(state)

    def _transition(self, new_state: SessionState) -> None:
        old_state = self.session.state
        self.session.state = new_state
        self.events.info(
            f"State changed: {old_state.value} -> {new_state.value}",
            state=new_state.value,
            progress=self.session.progress().model_dump(),
        )
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(new_state)
