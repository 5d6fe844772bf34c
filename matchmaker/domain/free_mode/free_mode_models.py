"""Free-mode domain models."""

from pydantic import BaseModel

from matchmaker.schemas import TrialState


class FreeModeDecision(BaseModel):
    """Admission verdict for one fingerprint."""

    allowed: bool
    is_paid: bool
    state: TrialState
    wait_remaining_ms: int = 0
    # wait_remaining_ms rounded up, for display
    wait_minutes: int = 0
    message: str
