"""Common enums used across schemas."""

from enum import Enum


class DeviceState(str, Enum):
    """Fixed-code device lifecycle states.

    State Transition Flow:

    (no document) → ONLINE ⇄ OFFLINE

    Derived from Device.is_online. A code without a document is unregistered;
    upsert() is the only way in and remove() the only way out.

    - ONLINE: Registered or heartbeat received within the offline threshold.
    - OFFLINE: Set by disconnect() or by the liveness sweeper once heartbeats stop.

    There is no terminal state; a device leaves the registry only through
    administrative removal.
    """

    ONLINE = "online"
    OFFLINE = "offline"

    def __str__(self) -> str:
        return self.value


class TrialState(str, Enum):
    """Free-mode admission state for one hardware fingerprint."""

    ELIGIBLE = "eligible"
    COOLING_DOWN = "cooling_down"
    ACTIVE_TRIAL = "active_trial"

    def __str__(self) -> str:
        return self.value


__all__ = ["DeviceState", "TrialState"]
