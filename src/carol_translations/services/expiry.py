"""Background sweep that rejects proposals whose voting window elapsed.

Disabled by default, in which case proposals that never reach quorum simply
stay pending. Enable with ``PROPOSAL_EXPIRY_ENABLED=true``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractContextManager

from sqlalchemy.orm import Session

from carol_translations.core.errors import StoreError
from carol_translations.core.settings import settings
from carol_translations.db.session import session_scope
from carol_translations.services.proposals import ProposalWorkflow

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Session]]


def run_expiry_sweep(session_factory: SessionFactory = session_scope) -> list[int]:
    """Expire stale proposals once, using a session of its own."""
    with session_factory() as db:
        return ProposalWorkflow(db).expire_stale_proposals()


class ProposalExpiryWorker:
    """Periodically expires stale proposals.

    The sweep itself is blocking database work, so it runs in a thread to
    keep the event loop free for request handlers.
    """

    def __init__(
        self,
        interval_seconds: float | None = None,
        session_factory: SessionFactory = session_scope,
    ) -> None:
        self.interval = max(
            0.1,
            float(interval_seconds or settings.proposal_expiry_interval_seconds),
        )
        self._session_factory = session_factory
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.to_thread(run_expiry_sweep, self._session_factory)
            except StoreError as e:
                logger.warning("ProposalExpiryWorker sweep failed: %s", e)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except TimeoutError:
                continue
