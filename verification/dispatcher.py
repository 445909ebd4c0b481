# --- File: verification/dispatcher.py ---
import asyncio
import logging
from typing import Callable, List, Optional, Set

from verification.base_verifier import VerificationCollaborator, VerificationOutcome, VerificationRequest

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[str, str, VerificationOutcome], None]


class VerificationDispatcher:
    """
    Runs verification requests against a collaborator as asyncio tasks and hands
    each outcome to the completion callback.

    Requests submitted where no event loop is reachable are parked until `drain()`.
    Finished tasks are dropped immediately; a collaborator that never answers only
    leaves its own task pending.
    """
    def __init__(self, collaborator: VerificationCollaborator, on_complete: Optional[CompletionCallback] = None):
        self.collaborator = collaborator
        self._on_complete = on_complete
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: Set[asyncio.Task] = set()
        self._deferred: List[VerificationRequest] = []

    def bind(self, on_complete: CompletionCallback):
        self._on_complete = on_complete

    def attach_loop(self, loop: asyncio.AbstractEventLoop):
        """Lets threads without a running loop (e.g. sync request handlers) schedule onto this loop."""
        self._loop = loop

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def deferred(self) -> int:
        return len(self._deferred)

    def submit(self, request: VerificationRequest):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            self._spawn(loop, request)
        elif self._loop is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._spawn, self._loop, request)
        else:
            logger.warning(f"No running event loop; deferring verification of document {request.document_id} until drain().")
            self._deferred.append(request)

    def _spawn(self, loop: asyncio.AbstractEventLoop, request: VerificationRequest):
        task = loop.create_task(self._run(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"Verification task scheduled for document {request.document_id} (in flight: {len(self._tasks)})")

    async def _run(self, request: VerificationRequest):
        try:
            outcome = await self.collaborator.verify(request)
        except asyncio.CancelledError:
            logger.info(f"Verification of document {request.document_id} cancelled; it stays pending.")
            raise
        except Exception as e:
            logger.exception(f"Verification collaborator failed for document {request.document_id}; it stays pending: {e}")
            return

        if self._on_complete is None:
            logger.error(f"No completion callback bound; dropping outcome for document {request.document_id}.")
            return
        try:
            self._on_complete(request.deal_id, request.document_id, outcome)
        except Exception as e:
            logger.exception(f"Completion callback failed for document {request.document_id}: {e}")

    async def drain(self):
        """Starts any deferred requests and waits until nothing is in flight."""
        loop = asyncio.get_running_loop()
        deferred, self._deferred = self._deferred, []
        for request in deferred:
            self._spawn(loop, request)
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self):
        """Cancels outstanding work. Affected documents simply remain pending."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        if self._deferred:
            logger.warning(f"Discarding {len(self._deferred)} deferred verification request(s) at shutdown.")
            self._deferred = []
