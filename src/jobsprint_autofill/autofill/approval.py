"""User-approval collaborators for suspended sessions."""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from jobsprint_autofill.core.models import ApprovalRequest, Decision
from jobsprint_autofill.utils.logging import get_logger

logger = get_logger(__name__)


class ApprovalHandler(ABC):
    """Receives one approval request per suspension and returns one decision."""

    @abstractmethod
    async def decide(self, request: ApprovalRequest) -> Decision:
        pass


class AutoDecisionHandler(ApprovalHandler):
    """Answers every request with the same decision."""

    def __init__(self, decision: Decision = Decision.APPROVE):
        self.decision = decision
        self.requests: List[ApprovalRequest] = []

    async def decide(self, request: ApprovalRequest) -> Decision:
        self.requests.append(request)
        return self.decision


class PendingApprovalHandler(ApprovalHandler):
    """
    Holds requests until an outside caller responds.

    Suits overlay-style UIs that render the pending request and call
    :meth:`respond` when the user clicks Apply, Skip or Pause.
    """

    def __init__(self):
        self._pending: Dict[str, "asyncio.Future[Decision]"] = {}
        self._requests: Dict[str, ApprovalRequest] = {}
        self.logger = logger.bind(component="pending_approval")

    async def decide(self, request: ApprovalRequest) -> Decision:
        future: "asyncio.Future[Decision]" = asyncio.get_running_loop().create_future()
        self._pending[request.session_id] = future
        self._requests[request.session_id] = request
        self.logger.info(
            "Waiting for user decision",
            session_id=request.session_id,
            question=request.question,
            progress=f"{request.progress.current + 1}/{request.progress.total}",
        )
        try:
            return await future
        finally:
            self._pending.pop(request.session_id, None)
            self._requests.pop(request.session_id, None)

    def pending_request(self, session_id: str) -> Optional[ApprovalRequest]:
        return self._requests.get(session_id)

    def get_pending_requests(self) -> List[ApprovalRequest]:
        return list(self._requests.values())

    def respond(self, session_id: str, decision: Decision) -> bool:
        """
        Resolve the pending request of a session.

        Returns:
            True if a pending request was resolved
        """
        future = self._pending.get(session_id)
        if future is None or future.done():
            return False
        future.set_result(decision)
        return True


class ConsoleApprovalHandler(ApprovalHandler):
    """Asks for each decision on the terminal."""

    CHOICES = {"a": Decision.APPROVE, "s": Decision.REJECT, "p": Decision.PAUSE}

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    async def decide(self, request: ApprovalRequest) -> Decision:
        self.console.print(self._render(request))
        choice = await asyncio.to_thread(
            Prompt.ask,
            "[bold]Apply[/bold] (a), [bold]Skip[/bold] (s) or [bold]Pause[/bold] (p)",
            choices=list(self.CHOICES),
            default="a",
            console=self.console,
        )
        return self.CHOICES[choice]

    def _render(self, request: ApprovalRequest) -> Panel:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold cyan")
        table.add_column()
        table.add_row("Question", escape(request.question))
        table.add_row("Suggested answer", f"[green]{escape(request.proposed_answer)}[/green]")
        if request.available_options:
            table.add_row("Available options", escape(", ".join(request.available_options)))
        table.add_row("Similarity", f"{request.similarity:.2f}")
        title = f"Autofill Suggestion {request.progress.current + 1} / {request.progress.total}"
        return Panel(table, title=title, border_style="green")
