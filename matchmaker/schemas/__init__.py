"""Beanie ODM schemas for MongoDB collections."""

from .device import Device
from .device_state import DeviceState, TrialState
from .free_mode_session import FreeModeSession
from .handshake import Handshake, SessionDescription
from .init import DOCUMENT_MODELS, init_beanie_odm

__all__ = [
    "DOCUMENT_MODELS",
    "Device",
    "DeviceState",
    "FreeModeSession",
    "Handshake",
    "SessionDescription",
    "TrialState",
    "init_beanie_odm",
]
