"""
Module: budget.py
Description: Retry budget bounding every exchange and poll loop.
"""

from pydantic import BaseModel, ConfigDict, Field


class RetryBudget(BaseModel):
    """
    Fixed (max attempts, delay) polling policy.

    max_attempts * delay_seconds is the worst-case wall-clock wait of a
    single exchange.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=100, ge=1, description="Polls before giving up")
    delay_seconds: float = Field(default=0.05, gt=0, description="Pause between polls")

    @property
    def worst_case_seconds(self) -> float:
        return self.max_attempts * self.delay_seconds
