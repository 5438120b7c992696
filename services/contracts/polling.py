"""
Document Readiness Polling

PandaDoc processes an uploaded PDF asynchronously; a document can only
be sent once it reaches a ready state. PollPolicy captures the waiting
rules (interval, ceiling, which statuses are ready or terminal) and
runs the wait/check loop against an injectable clock so it can be
driven by a virtual clock in tests.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional, TypeVar

from .exceptions import DocumentProcessingError, DocumentTimeoutError
from .types import DocumentStatus

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_POLL_INTERVAL = 6.0
DEFAULT_POLL_TIMEOUT = 60.0

READY_STATUSES = frozenset({DocumentStatus.DRAFT, DocumentStatus.SENT})
TERMINAL_STATUSES = frozenset({DocumentStatus.ERROR})


class SystemClock:
    """Wall clock backed by time.monotonic / time.sleep."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


@dataclass(frozen=True)
class PollPolicy:
    """
    Fixed-interval polling with a hard ceiling.

    Attributes:
        interval: Seconds to wait before each status check
        timeout: Maximum total seconds to keep polling
        ready_statuses: Statuses that end polling successfully
        terminal_statuses: Statuses that end polling with a failure
    """
    interval: float = DEFAULT_POLL_INTERVAL
    timeout: float = DEFAULT_POLL_TIMEOUT
    ready_statuses: FrozenSet[str] = READY_STATUSES
    terminal_statuses: FrozenSet[str] = TERMINAL_STATUSES

    def is_ready(self, status: Optional[str]) -> bool:
        return status in self.ready_statuses

    def is_terminal(self, status: Optional[str]) -> bool:
        return status in self.terminal_statuses

    def wait_until_ready(
        self,
        document_id: str,
        fetch: Callable[[], Optional[T]],
        status_of: Callable[[T], Optional[str]],
        clock=None
    ) -> T:
        """
        Poll ``fetch`` until the result's status is ready.

        ``fetch`` may return None for a failed read; that counts as
        "not ready yet", not as an error.

        Raises:
            DocumentProcessingError: A terminal status was reported
            DocumentTimeoutError: The ceiling passed without a ready status
        """
        clock = clock or SystemClock()
        start = clock.now()
        last_status = None
        checks = 0

        while clock.now() - start < self.timeout:
            clock.sleep(self.interval)
            checks += 1
            result = fetch()
            if result is None:
                logger.debug(f"Document {document_id}: status read failed (check {checks}), retrying")
                continue

            last_status = status_of(result)
            if self.is_ready(last_status):
                logger.info(f"Document {document_id} ready ({last_status}) after {checks} check(s)")
                return result
            if self.is_terminal(last_status):
                logger.error(f"Document {document_id} processing failed with status {last_status}")
                raise DocumentProcessingError(
                    f"PandaDoc document processing failed ({last_status})"
                )
            logger.debug(f"Document {document_id} still {last_status} (check {checks})")

        logger.error(
            f"Document {document_id} not ready after {self.timeout:g}s "
            f"({checks} checks, last status {last_status})"
        )
        raise DocumentTimeoutError(
            f"Document did not reach ready state in time (last status: {last_status})"
        )
