"""Proposal expiry sweep worker.

Background loop that expires every active proposal past its voting
window. Lazy expiry on read and vote covers the gap between sweeps, so
the sweep cadence only bounds how long an unread proposal stays active
in storage.
"""

from __future__ import annotations

import asyncio
import contextlib
import time

from structlog import get_logger

from civic_consensus.application.services.proposal_service import ProposalService

logger = get_logger()


class ProposalExpiryWorker:
    """Runs ``expire_stale_proposals`` on a fixed interval.

    Example:
        >>> worker = ProposalExpiryWorker(proposal_service, interval_seconds=3600)
        >>> await worker.start()
        >>> ...
        >>> await worker.stop()
    """

    def __init__(self, proposals: ProposalService, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._proposals = proposals
        self.interval_seconds = interval_seconds
        self._is_running = False
        self._task: asyncio.Task[None] | None = None
        self._log = logger.bind(component="proposal_expiry_worker")

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def start(self) -> None:
        """Start the background sweep. A second call is a no-op."""
        if self._is_running:
            self._log.warning("expiry_worker_already_running")
            return

        self._is_running = True
        self._task = asyncio.create_task(self._loop())
        self._log.info("expiry_worker_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Stop the background sweep and wait for it to finish."""
        if not self._is_running:
            self._log.debug("expiry_worker_not_running")
            return

        self._is_running = False
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        self._log.info("expiry_worker_stopped")

    async def run_once(self) -> int:
        """Run one sweep.

        Returns:
            Number of proposals expired.
        """
        start_time = time.monotonic()
        expired = await self._proposals.expire_stale_proposals()
        self._log.info(
            "expiry_sweep_completed",
            expired=len(expired),
            latency_ms=round((time.monotonic() - start_time) * 1000, 2),
        )
        return len(expired)

    async def _loop(self) -> None:
        while self._is_running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                # The next sweep retries; lazy expiry still applies meanwhile
                self._log.error("expiry_sweep_failed", error=str(e), exc_info=True)

            try:
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                break

        self._log.debug("expiry_loop_ended")
