"""
Acquisition controller for http-music.

Fetches (and optionally converts) exactly one track at a time so that the next
track can be made ready while the current one plays.

Signals:
- acquired(resource): the latest non-canceled attempt produced a resource
- failed(error): the latest non-canceled attempt raised AcquisitionError
- discarded(resource): a canceled attempt produced a resource; it is never
  played and is deleted by the controller

Cancellation is cooperative. cancel() flags the in-flight attempt; the
transfer itself runs to completion and its result is routed to ``discarded``.
"""

import asyncio
import logging
from typing import Optional, Union

from http_music.broadcast_core.downloaders import AcquisitionError, Downloader, Resource, delete_resource
from http_music.broadcast_core.signals import Signal

logger = logging.getLogger(__name__)

Outcome = Union[Resource, AcquisitionError]


class _Attempt:
    __slots__ = ("arg", "canceled", "finished", "task")

    def __init__(self, arg: str):
        self.arg = arg
        self.canceled = False
        self.finished = False
        self.task: Optional[asyncio.Task] = None


class AcquisitionController:
    """
    Single-flight acquisition of local resources.

    An outcome produced while nobody is waiting is latched and handed to the
    next await_result() call. Starting a new attempt or canceling drops the
    latch (a latched resource is discarded).
    """

    def __init__(self):
        self.acquired = Signal("acquired")
        self.failed = Signal("failed")
        self.discarded = Signal("discarded")
        self._attempt: Optional[_Attempt] = None
        self._latched: Optional[Outcome] = None
        self._background_tasks = set()
        self.discarded.connect(self._delete_discarded)

    @property
    def in_flight(self) -> bool:
        attempt = self._attempt
        return attempt is not None and not attempt.canceled and not attempt.finished

    @property
    def has_result(self) -> bool:
        return self._latched is not None

    def start(self, downloader: Downloader, arg: str) -> None:
        """
        Begin acquiring ``arg`` with ``downloader``.

        Raises:
            RuntimeError: If a non-canceled attempt is still in flight
        """
        if self.in_flight:
            raise RuntimeError("An acquisition is already in progress")

        self._drop_latched()
        attempt = _Attempt(arg)
        self._attempt = attempt
        attempt.task = asyncio.get_running_loop().create_task(self._run(attempt, downloader))
        logger.info(f"[ACQUIRE] Acquiring {arg}")

    async def _run(self, attempt: _Attempt, downloader: Downloader) -> None:
        try:
            resource = await downloader(attempt.arg)
        except AcquisitionError as e:
            self._finish(attempt, e)
        except Exception as e:
            error = AcquisitionError(attempt.arg, f"Downloader failed: {e}")
            error.__cause__ = e
            self._finish(attempt, error)
        else:
            self._finish(attempt, resource)

    def _finish(self, attempt: _Attempt, outcome: Outcome) -> None:
        attempt.finished = True
        if attempt.canceled:
            if isinstance(outcome, Resource):
                logger.debug(f"[ACQUIRE] Canceled acquisition finished, discarding {outcome.path}")
                self.discarded.emit(outcome)
            else:
                logger.debug(f"[ACQUIRE] Canceled acquisition failed: {outcome}")
            return

        self._latched = outcome
        if isinstance(outcome, Resource):
            logger.info(f"[ACQUIRE] Acquired {attempt.arg} -> {outcome.path}")
            self.acquired.emit(outcome)
        else:
            logger.warning(f"[ACQUIRE] Failed: {outcome}")
            self.failed.emit(outcome)

    def cancel(self) -> None:
        """
        Cancel the in-flight attempt, or discard a latched but unclaimed result.

        No-op once the result has been claimed by await_result().
        """
        if self._attempt is not None and not self._attempt.finished:
            if not self._attempt.canceled:
                logger.info(f"[ACQUIRE] Canceled {self._attempt.arg}")
            self._attempt.canceled = True
        self._drop_latched()

    def _drop_latched(self) -> None:
        latched, self._latched = self._latched, None
        if isinstance(latched, Resource):
            self.discarded.emit(latched)

    def _delete_discarded(self, resource: Resource) -> None:
        task = asyncio.get_running_loop().create_task(delete_resource(resource))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    def _claim(self) -> Resource:
        outcome, self._latched = self._latched, None
        if isinstance(outcome, AcquisitionError):
            raise outcome
        return outcome

    async def await_result(self) -> Resource:
        """
        Wait for the next acquired/failed outcome.

        Returns:
            The acquired resource (ownership passes to the caller)

        Raises:
            AcquisitionError: If the attempt failed
        """
        while self._latched is None:
            future = asyncio.get_running_loop().create_future()

            def on_outcome(outcome: Outcome) -> None:
                if not future.done():
                    future.set_result(outcome)

            unsubscribe_acquired = self.acquired.connect(on_outcome, once=True)
            unsubscribe_failed = self.failed.connect(on_outcome, once=True)
            try:
                await future
            finally:
                unsubscribe_acquired()
                unsubscribe_failed()
            # A start() or cancel() before we resumed drops the outcome; keep waiting

        return self._claim()

    async def shutdown(self) -> None:
        """Abort any in-flight transfer and delete unclaimed results."""
        attempt = self._attempt
        self.cancel()
        if attempt is not None and not attempt.finished:
            attempt.task.cancel()
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait for the current attempt (canceled or not) and pending deletions."""
        if self._attempt is not None:
            await asyncio.gather(self._attempt.task, return_exceptions=True)
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
