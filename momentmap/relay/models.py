"""
Pydantic models for relay wire payloads.

Inbound models validate client events; record models are what the relay stores
and broadcasts. Everything is camelCase on the wire.
"""

from __future__ import annotations

import math
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# Inbound (client -> server)

class AnnounceRequest(WireModel):
    participant_id: str = Field(min_length=1)
    nickname: str = ""
    avatar: Optional[str] = None
    status: Optional[str] = None


class PublishContentRequest(WireModel):
    title: str = ""
    body: str = ""
    location: Optional[dict[str, Any]] = None
    author: Any = None
    duration: int
    is_private: bool = False

    @field_validator("duration", mode="before")
    @classmethod
    def whole_seconds(cls, value: Any) -> int:
        """Durations are whole seconds; fractional input is truncated."""
        if isinstance(value, bool):
            raise ValueError("duration must be a number")
        try:
            seconds = float(value)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValueError(f"duration must be a number, got {value!r}") from exc
        if not math.isfinite(seconds):
            raise ValueError(f"duration must be finite, got {value!r}")
        return int(seconds)


class RoomRequest(WireModel):
    room_id: str = Field(min_length=1)


class JoinRoomRequest(RoomRequest):
    pass


class LeaveRoomRequest(RoomRequest):
    pass


class RoomMessageRequest(RoomRequest):
    content: str


class DirectMessageRequest(WireModel):
    target_participant_id: str = Field(min_length=1)
    content: str


# Stored / broadcast records

class ContentItem(WireModel):
    id: str
    title: str = ""
    body: str = ""
    location: Optional[dict[str, Any]] = None
    author: Any = None
    created_at: int
    duration: int
    is_private: bool = False

    @property
    def expires_at(self) -> int:
        return self.created_at + self.duration * 1000


class RoomMessage(WireModel):
    room_id: str
    nickname: str
    avatar: Optional[str] = None
    content: str
    timestamp: int


class DirectMessage(WireModel):
    sender: str = Field(alias="from")
    recipient: str = Field(alias="to")
    nickname: str
    avatar: Optional[str] = None
    content: str
    timestamp: int


class OutboundEvent(BaseModel):
    """Envelope for every server -> client frame."""

    type: Literal[
        "connected",
        "presenceCount",
        "contentSnapshot",
        "contentPublished",
        "contentExpired",
        "roomHistory",
        "roomMemberCount",
        "roomMessagePosted",
        "directMessageDelivered",
    ]
    data: Any = None
