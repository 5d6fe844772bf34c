from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from matchmaker.shared.api.utils import ApiSuccess

T = TypeVar("T")


class CamelModel(BaseModel):
    """Wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SuccessOut(CamelModel):
    success: bool = True


class ApiOut(ApiSuccess, Generic[T]):
    """Standard API envelope used by administrative routers."""

    results: T  # type: ignore[valid-type]
