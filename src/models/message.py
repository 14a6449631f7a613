"""
Module: message.py
Description: Transport message model and its JSON queue envelope.

Defines the immutable message value that the pump decodes from each
SQS message body and that the dispatcher encodes when sending.

Key Components:
- TransportMessage: Frozen message with id, headers and body
- to_envelope() / from_envelope(): JSON envelope codec

Dependencies: pydantic, json, uuid
"""

import json
from typing import Dict
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class TransportMessage(BaseModel):
    """
    Message carried through the queue transport.

    Instances are frozen: the pump hands the same object to every
    subscriber, so nobody may mutate it after decode.

    Attributes:
        message_id: Unique message identifier (generated when omitted)
        headers: String headers travelling with the body
        body: Message payload as text
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    message_id: str = Field(
        default_factory=lambda: uuid4().hex,
        min_length=1,
        description="Unique message identifier"
    )
    headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Message headers"
    )
    body: str = Field(
        ...,
        description="Message body"
    )

    def to_envelope(self) -> str:
        """Serialize the message as the JSON envelope sent over SQS."""
        return json.dumps(
            {
                'message_id': self.message_id,
                'headers': dict(self.headers),
                'body': self.body,
            },
            sort_keys=True
        )

    @classmethod
    def from_envelope(cls, raw_body: str) -> "TransportMessage":
        """
        Decode a JSON envelope received from SQS.

        Args:
            raw_body: SQS message body

        Returns:
            Decoded TransportMessage

        Raises:
            ValueError: If the body is not JSON or not a valid envelope
        """
        try:
            data = json.loads(raw_body)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"message body is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ValueError("message envelope must be a JSON object")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ValueError(f"message envelope is invalid: {e}") from e
