from .base import CamelModel


class ValidateAccountIn(CamelModel):
    company_code: str | None = None
    disk_serial: str


class ValidateAccountOut(CamelModel):
    allowed: bool
    is_paid: bool
    wait_minutes: int
    message: str
    state: str
    wait_remaining_ms: int


class EndFreeSessionIn(CamelModel):
    disk_serial: str
