"""
Module: outcome.py
Description: Tagged result of one synchronous exchange.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from harness.errors import ExchangeTimeoutError
from models.budget import RetryBudget
from models.message import TransportMessage


class OutcomeKind(str, Enum):
    DELIVERED = "delivered"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ExchangeOutcome:
    """
    Result of an exchange: delivered message, delivery error or timeout.

    Built by ExchangeCoordinator only. unwrap() turns it back into the
    return-or-raise form test code asserts on.
    """

    kind: OutcomeKind
    budget: RetryBudget
    attempts: int
    message: Optional[TransportMessage] = None
    error: Optional[BaseException] = None

    @classmethod
    def delivered(cls, message: TransportMessage, budget: RetryBudget, attempts: int) -> "ExchangeOutcome":
        return cls(OutcomeKind.DELIVERED, budget, attempts, message=message)

    @classmethod
    def failed(cls, error: BaseException, budget: RetryBudget, attempts: int) -> "ExchangeOutcome":
        return cls(OutcomeKind.FAILED, budget, attempts, error=error)

    @classmethod
    def timed_out(cls, budget: RetryBudget, attempts: int) -> "ExchangeOutcome":
        return cls(OutcomeKind.TIMED_OUT, budget, attempts)

    def unwrap(self) -> TransportMessage:
        """
        Return the delivered message or raise.

        Raises:
            ExchangeTimeoutError: If the exchange timed out
            Exception: The captured delivery error, unchanged
        """
        if self.kind is OutcomeKind.TIMED_OUT:
            raise ExchangeTimeoutError(self.budget)
        if self.kind is OutcomeKind.FAILED:
            raise self.error
        return self.message
