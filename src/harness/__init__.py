"""
Package: harness
Description: Synchronous test harness over the SQS delivery loop.

Bridges the background message pump to blocking test assertions:
an event broadcaster fed by the pump, a send-then-wait exchange
coordinator, an idempotent queue drain and the SQSTestContext that
wires them together.
"""

from .broadcaster import EventBroadcaster, Subscription
from .drain import DrainReport, QueueDrainer, drain_queue
from .errors import (
    CriticalPumpFault,
    DrainFailedError,
    ExchangeTimeoutError,
    HarnessError,
    MessageDecodeError,
)
from .exchange import ExchangeCoordinator
from .outcome import ExchangeOutcome, OutcomeKind

__all__ = [
    "CriticalPumpFault",
    "DrainFailedError",
    "DrainReport",
    "EventBroadcaster",
    "ExchangeCoordinator",
    "ExchangeOutcome",
    "ExchangeTimeoutError",
    "HarnessError",
    "MessageDecodeError",
    "OutcomeKind",
    "QueueDrainer",
    "Subscription",
    "drain_queue",
]
