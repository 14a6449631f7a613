"""
Module: models
Description: Package initialization for Pydantic data models.

This package contains the value types shared by the harness:
- TransportMessage: Immutable message decoded by the pump
- RetryBudget: Bounded polling policy for exchanges

All models are exported here for convenient importing.
"""

from .budget import RetryBudget
from .message import TransportMessage

__all__ = [
    "RetryBudget",
    "TransportMessage",
]
