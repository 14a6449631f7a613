"""
Module: drain.py
Description: Idempotent queue drain tolerant of the SQS purge rate limit.

SQS accepts one PurgeQueue per queue every 60 seconds. A purge issued
inside that window is rejected with PurgeQueueInProgress and may have
no effect at all, so the drain always finishes by receiving and
deleting until a receive comes back empty.

Key Components:
- QueueDrainer: Purge, then manual receive-and-delete rounds
- DrainReport: What a drain call did
- drain_queue(): Convenience wrapper with default settings

Dependencies: botocore, time
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from botocore.exceptions import ClientError

from harness.errors import DrainFailedError
from sqs_queue.sqs import MAX_RECEIVE_BATCH, SQSClient, is_purge_in_progress
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DrainReport:
    """
    Summary of one drain call.

    Attributes:
        queue_url: Drained queue
        purged: Native purge was accepted
        purge_in_progress: Native purge was rejected as already running
        rounds: Manual receive rounds, including the final empty one
        deleted: Messages deleted by the manual rounds
    """

    queue_url: str
    purged: bool
    purge_in_progress: bool
    rounds: int
    deleted: int


class QueueDrainer:
    """
    Empties a queue of all currently visible messages.

    Example:
        >>> drainer = QueueDrainer(sqs_client, settle_seconds=2.0)
        >>> report = drainer.drain(queue_url)
        >>> report.deleted
        0
    """

    def __init__(
        self,
        sqs_client: SQSClient,
        settle_seconds: float = 2.0,
        batch_size: int = MAX_RECEIVE_BATCH,
        sleep: Optional[Callable[[float], None]] = None
    ):
        """
        Initialize the drainer.

        Args:
            sqs_client: Client used for purge, receive and delete
            settle_seconds: Pause before each receive round, long enough
                for SQS message accounting to catch up with the purge
            batch_size: Messages per receive round, 1 to 10
            sleep: Sleep function (tests may inject one)

        Raises:
            ValueError: If settle_seconds or batch_size is out of range
        """
        if settle_seconds < 0:
            raise ValueError("settle_seconds must be non-negative")
        if not 1 <= batch_size <= MAX_RECEIVE_BATCH:
            raise ValueError(f"batch_size must be between 1 and {MAX_RECEIVE_BATCH}")

        self.sqs_client = sqs_client
        self.settle_seconds = settle_seconds
        self.batch_size = batch_size
        self._sleep = sleep or time.sleep

    def drain(self, queue_url: str) -> DrainReport:
        """
        Purge the queue, then delete whatever is still visible.

        Args:
            queue_url: Queue to drain

        Returns:
            DrainReport for this call

        Raises:
            DrainFailedError: On any purge, receive or delete failure
                other than a purge already in progress
        """
        if not queue_url or not isinstance(queue_url, str):
            raise ValueError("queue_url must be a non-empty string")

        purged, purge_in_progress = self._purge(queue_url)

        rounds = 0
        deleted = 0
        while True:
            self._sleep(self.settle_seconds)
            rounds += 1

            try:
                messages = self.sqs_client.receive(queue_url, max_messages=self.batch_size)
                for message in messages:
                    self.sqs_client.delete(queue_url, message.receipt_handle)
            except ClientError as e:
                raise DrainFailedError(queue_url, e.response['Error']['Code']) from e

            approximate_count = len(messages)
            deleted += approximate_count
            logger.debug(
                "Drain round completed",
                queue_url=queue_url,
                round=rounds,
                deleted=approximate_count
            )
            if approximate_count == 0:
                break

        report = DrainReport(
            queue_url=queue_url,
            purged=purged,
            purge_in_progress=purge_in_progress,
            rounds=rounds,
            deleted=deleted
        )
        logger.info(
            "Queue drained",
            queue_url=queue_url,
            purged=purged,
            purge_in_progress=purge_in_progress,
            rounds=rounds,
            deleted=deleted
        )
        return report

    def _purge(self, queue_url: str):
        try:
            self.sqs_client.purge(queue_url)
        except ClientError as e:
            if is_purge_in_progress(e):
                logger.info("Purge already in progress, draining manually", queue_url=queue_url)
                return False, True
            raise DrainFailedError(queue_url, e.response['Error']['Code']) from e
        return True, False


def drain_queue(sqs_client: SQSClient, queue_url: str, **kwargs) -> DrainReport:
    """Drain queue_url with a one-off QueueDrainer."""
    return QueueDrainer(sqs_client, **kwargs).drain(queue_url)
