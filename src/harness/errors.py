"""
Module: errors.py
Description: Error taxonomy for the delivery harness.

Key Components:
- ExchangeTimeoutError: No delivery or delivery error within the budget
- DrainFailedError: Drain failure other than a purge already in progress
- CriticalPumpFault: Unrecoverable receive-loop fault (diagnostic channel)
- MessageDecodeError: Received body is not a valid message envelope

Delivery errors raised by message handlers are not wrapped; exchanges
re-raise the original exception object.
"""

from typing import Optional

from models.budget import RetryBudget


class HarnessError(Exception):
    """Base class for harness errors."""


class ExchangeTimeoutError(HarnessError, TimeoutError):
    """Raised when an exchange sees no event within its retry budget."""

    def __init__(self, budget: RetryBudget):
        self.budget = budget
        super().__init__(
            f"Receiving a message timed out after {budget.max_attempts} attempts "
            f"({budget.worst_case_seconds:.2f}s)"
        )


class DrainFailedError(HarnessError):
    """Raised when a queue cannot be drained."""

    def __init__(self, queue_url: str, reason: str):
        self.queue_url = queue_url
        self.reason = reason
        super().__init__(f"Failed to drain {queue_url}: {reason}")


class CriticalPumpFault(HarnessError):
    """Unrecoverable receive-loop fault, reported apart from delivery errors."""

    def __init__(self, queue_url: str, consecutive_failures: int, last_error: Optional[BaseException] = None):
        self.queue_url = queue_url
        self.consecutive_failures = consecutive_failures
        self.last_error = last_error
        super().__init__(
            f"Receiving from {queue_url} failed {consecutive_failures} times in a row: {last_error}"
        )


class MessageDecodeError(HarnessError, ValueError):
    """Raised by the pump when a received body cannot be decoded."""

    def __init__(self, raw_body: str, reason: str):
        self.raw_body = raw_body
        super().__init__(f"Could not decode received message: {reason}")
