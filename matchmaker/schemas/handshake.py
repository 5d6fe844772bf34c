"""Embedded handshake models shared by the session store and the device registry."""

from typing import Any

from pydantic import BaseModel, Field


class SessionDescription(BaseModel):
    """One half of a media-session negotiation (offer or answer)."""

    type: str
    sdp: str


class Handshake(BaseModel):
    """Last offer a host published, with its ICE data.

    ICE candidates and servers are relayed verbatim; their structure belongs to
    the endpoints, not to the matchmaker.
    """

    offer: SessionDescription
    ice_candidates: list[Any] = Field(default_factory=list)
    ice_servers: list[Any] = Field(default_factory=list)
