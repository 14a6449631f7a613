"""
Package: delivery
Description: Message delivery over SQS for the harness.

Provides the background receive loop (message pump) that pushes
decoded messages to callbacks, and the dispatcher that sends them.
"""

from .dispatcher import MessageDispatcher, SendOptions
from .pump import PumpState, PushRuntimeSettings, PushSettings, SQSMessagePump

__all__ = [
    "MessageDispatcher",
    "PumpState",
    "PushRuntimeSettings",
    "PushSettings",
    "SendOptions",
    "SQSMessagePump",
]
