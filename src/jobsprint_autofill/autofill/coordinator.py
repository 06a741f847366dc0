"""Coordinator keeping one independent autofill session per surface."""

import asyncio
from typing import Callable, Dict, List, Optional

from jobsprint_autofill.autofill.approval import ApprovalHandler
from jobsprint_autofill.autofill.session import SessionStateMachine
from jobsprint_autofill.autofill.similarity import SimilarityMatcher
from jobsprint_autofill.browser.surface import FormSurface
from jobsprint_autofill.config import settings
from jobsprint_autofill.core.exceptions import InvalidTransitionError
from jobsprint_autofill.core.models import Session, SessionOptions, SessionState
from jobsprint_autofill.knowledge.base import KnowledgeBaseStore
from jobsprint_autofill.utils.logging import get_logger, log_session_state

logger = get_logger(__name__)

ApprovalHandlerFactory = Callable[[str], ApprovalHandler]


class MultiSessionCoordinator:
    """
    Owns the sessions of all surfaces.

    Each surface identifier maps to at most one live session, driven by its
    own asyncio task. Sessions share nothing but the read path into the
    knowledge base. The latest session of a surface stays retrievable after
    it completes or fails, so callers can read its results or error report;
    cancelling removes it.
    """

    def __init__(
        self,
        knowledge_base: KnowledgeBaseStore,
        approval_handler_factory: ApprovalHandlerFactory,
        proceed_delay: Optional[float] = None,
        similarity_threshold: Optional[float] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            knowledge_base: Shared, read-mostly Q&A store
            approval_handler_factory: Builds the approval handler for a surface id
            proceed_delay: Visible delay before auto-proceed, defaults to settings
            similarity_threshold: Match threshold, defaults to settings
        """
        self.knowledge_base = knowledge_base
        self.approval_handler_factory = approval_handler_factory
        self.proceed_delay = settings.auto_proceed_delay if proceed_delay is None else proceed_delay
        self.similarity_threshold = similarity_threshold
        self._machines: Dict[str, SessionStateMachine] = {}
        self._tasks: Dict[str, "asyncio.Task[Session]"] = {}
        self.logger = logger.bind(component="session_coordinator")

    async def start(
        self,
        surface_id: str,
        surface: FormSurface,
        options: Optional[SessionOptions] = None,
    ) -> Session:
        """
        Start a session for a surface, replacing any live one.

        Returns:
            The new session; it runs on its own task
        """
        existing = self._machines.get(surface_id)
        if existing is not None:
            if not existing.state.is_terminal:
                self.logger.info("Replacing live session", surface_id=surface_id, session_id=existing.session.id)
            # A completed session may still be waiting to auto-proceed
            self.cancel(surface_id)

        if options is None:
            options = SessionOptions(auto_playback=settings.auto_playback, auto_proceed=settings.auto_proceed)

        machine = self._create_machine(surface_id, surface, options)
        self._machines[surface_id] = machine
        self._tasks[surface_id] = asyncio.create_task(machine.start())
        self.logger.info(
            "Session started",
            surface_id=surface_id,
            session_id=machine.session.id,
            auto_playback=options.auto_playback,
            auto_proceed=options.auto_proceed,
        )
        return machine.session

    def get(self, surface_id: str) -> Optional[Session]:
        machine = self._machines.get(surface_id)
        return machine.session if machine else None

    def machine(self, surface_id: str) -> Optional[SessionStateMachine]:
        return self._machines.get(surface_id)

    def cancel(self, surface_id: str) -> bool:
        """Cancel and forget the session of a surface.

        Returns True if a session existed.
        """
        machine = self._machines.pop(surface_id, None)
        task = self._tasks.pop(surface_id, None)
        if machine is None:
            return False
        machine.cancel()
        if task is not None and not task.done():
            task.cancel()
        self.logger.info(
            "Session cancelled",
            surface_id=surface_id,
            session_id=machine.session.id,
            **log_session_state(machine.session),
        )
        return True

    def pause(self, surface_id: str) -> None:
        self._require(surface_id, "pause").pause()

    def resume(self, surface_id: str) -> Session:
        machine = self._require(surface_id, "resume")
        if machine.state != SessionState.PAUSED:
            raise InvalidTransitionError("resume", machine.state.value)
        self._tasks[surface_id] = asyncio.create_task(machine.resume())
        return machine.session

    async def wait(self, surface_id: str, *states: SessionState) -> Optional[Session]:
        """Wait for the surface's session to reach one of ``states``.

        Without states, waits for the current driver task to return, which
        happens when the session pauses or ends.
        """
        machine = self._machines.get(surface_id)
        if machine is None:
            return None
        if states:
            await machine.wait_until(*states)
            return machine.session
        task = self._tasks.get(surface_id)
        if task is not None:
            await asyncio.wait({task})
        return machine.session

    def active_surfaces(self) -> List[str]:
        return [sid for sid, machine in self._machines.items() if not machine.state.is_terminal]

    async def shutdown(self) -> None:
        """Cancel every session and wait for their tasks to unwind."""
        tasks = [t for t in self._tasks.values() if not t.done()]
        for surface_id in list(self._machines):
            self.cancel(surface_id)
        if tasks:
            await asyncio.wait(tasks)

    def _create_machine(self, surface_id: str, surface: FormSurface, options: SessionOptions) -> SessionStateMachine:
        session = Session(surface_id=surface_id, options=options)
        return SessionStateMachine(
            session=session,
            surface=surface,
            knowledge_base=self.knowledge_base,
            approval_handler=self.approval_handler_factory(surface_id),
            matcher=SimilarityMatcher(self.similarity_threshold),
            proceed_delay=self.proceed_delay,
        )

    def _require(self, surface_id: str, signal: str) -> SessionStateMachine:
        machine = self._machines.get(surface_id)
        if machine is None:
            raise InvalidTransitionError(signal, "missing")
        return machine
