from .base import CamelModel


class GenerateCodeOut(CamelModel):
    code: str
    available: bool = True


class CheckCodeOut(CamelModel):
    code: str
    available: bool
    owner: str | None = None
